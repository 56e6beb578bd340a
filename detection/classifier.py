"""
Heuristic card classifier.

Decides whether a cropped region looks like a card. The geometric rule is
cheap and covers most cases; when it rejects, the decision is deferred to an
injected oracle, the extension point for a learned classifier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

import config

logger = logging.getLogger(__name__)


class CardOracle(Protocol):
    """Fallback classifier consulted when the heuristic rejects a crop."""

    def is_card(self, image: np.ndarray) -> bool:
        """Return True if the crop shows a card."""


class AcceptAllOracle:
    """Oracle that accepts every crop (mock configuration)."""

    def is_card(self, image: np.ndarray) -> bool:
        return True


class RejectAllOracle:
    """Oracle that rejects every crop, leaving only the heuristic."""

    def is_card(self, image: np.ndarray) -> bool:
        return False


_ORACLES: dict[str, type] = {
    "accept_all": AcceptAllOracle,
    "reject_all": RejectAllOracle,
}


def get_oracle_by_name(name: str) -> CardOracle:
    """Instantiate a card oracle by name."""
    oracle_cls = _ORACLES.get(name)
    if oracle_cls is None:
        raise ValueError(f"Unknown card oracle: {name}")
    return oracle_cls()


def passes_card_heuristic(
    width: float,
    height: float,
    min_aspect: float,
    max_aspect: float,
    min_size: float,
) -> bool:
    """Aspect ratio within [min_aspect, max_aspect] and both sides >= min_size."""
    if height <= 0:
        return False
    aspect_ratio = width / height
    return (
        min_aspect <= aspect_ratio <= max_aspect
        and width >= min_size
        and height >= min_size
    )


@dataclass
class CardClassifier:
    """Card-likeness check with an oracle fallback."""

    oracle: CardOracle = field(default_factory=AcceptAllOracle)
    min_aspect_ratio: float = config.CARD_MIN_ASPECT_RATIO
    max_aspect_ratio: float = config.CARD_MAX_ASPECT_RATIO
    min_size: int = config.CLASSIFIER_MIN_SIZE

    def is_card_like(self, crop: np.ndarray) -> bool:
        if crop is None or crop.size == 0:
            return False
        height, width = crop.shape[:2]
        if passes_card_heuristic(
            width, height, self.min_aspect_ratio, self.max_aspect_ratio, self.min_size
        ):
            return True

        try:
            return bool(self.oracle.is_card(crop))
        except Exception as exc:
            logger.warning("Card oracle %s failed: %s", type(self.oracle).__name__, exc)
            return False
