"""
Card records, filtering and the thread-safe card store.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import config
import db
from detection.types import ExtractedCardInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Card:
    """A recorded card."""

    image_identifier: str
    player_name: str
    year: int
    team: str
    scanned_date: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> Card:
        return cls(
            id=row["id"],
            image_identifier=row["image_identifier"],
            player_name=row["player_name"],
            year=row["year"],
            team=row["team"],
            scanned_date=row["scanned_date"],
        )

    @classmethod
    def from_info(cls, image_identifier: str, info: ExtractedCardInfo) -> Card:
        """Build a card, substituting placeholders for missing fields."""
        return cls(
            image_identifier=image_identifier,
            player_name=info.player_name or config.UNKNOWN_PLAYER,
            year=info.year if info.year is not None else config.UNKNOWN_YEAR,
            team=info.team or config.UNKNOWN_TEAM,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "image_identifier": self.image_identifier,
            "player_name": self.player_name,
            "year": self.year,
            "team": self.team,
            "scanned_date": self.scanned_date,
        }


@dataclass(frozen=True)
class CardFilter:
    """Case-insensitive substring match on name and team, exact match on year.

    An empty filter matches every card.
    """

    player_name: str = ""
    year: Optional[int] = None
    team: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.player_name and self.year is None and not self.team

    def matches(self, card: Card) -> bool:
        if self.player_name and self.player_name.casefold() not in card.player_name.casefold():
            return False
        if self.year is not None and card.year != self.year:
            return False
        if self.team and self.team.casefold() not in card.team.casefold():
            return False
        return True

    def apply(self, cards: Iterable[Card]) -> list[Card]:
        cards = list(cards)
        if self.is_empty:
            return cards
        return [card for card in cards if self.matches(card)]


class CardStore:
    """SQLite-backed card store with a lock around every access."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    @classmethod
    def open(cls, db_path: Path | str | None = None) -> CardStore:
        return cls(db.get_connection(Path(db_path) if db_path is not None else None))

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> CardStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def contains(self, image_identifier: str) -> bool:
        with self._lock:
            return db.card_exists(self._conn, image_identifier)

    def add(self, card: Card) -> Card | None:
        """Insert a card. Returns the stored card, or None for a known identifier."""
        with self._lock:
            card_id = db.insert_card(
                self._conn,
                card.image_identifier,
                card.player_name,
                card.year,
                card.team,
                card.scanned_date,
            )
            if card_id is None:
                return None
            row = db.get_card(self._conn, card_id)
        return Card.from_row(row)

    def list_cards(self, card_filter: CardFilter | None = None) -> list[Card]:
        with self._lock:
            rows = db.list_cards(self._conn)
        cards = [Card.from_row(row) for row in rows]
        return (card_filter or CardFilter()).apply(cards)

    def delete(self, card_id: int) -> bool:
        with self._lock:
            return db.delete_card(self._conn, card_id)

    def identifiers(self) -> set[str]:
        with self._lock:
            return db.list_image_identifiers(self._conn)


def record_card(store: CardStore, image_identifier: str, info: ExtractedCardInfo) -> Card | None:
    """Persist extracted card info unless the image was already recorded."""
    card = Card.from_info(image_identifier, info)
    stored = store.add(card)
    if stored is None:
        logger.debug("Card for %s already recorded", image_identifier)
    else:
        logger.info(
            "Recorded card %s: %s (%s, %s)",
            stored.id,
            stored.player_name,
            stored.year,
            stored.team,
        )
    return stored
