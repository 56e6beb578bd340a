"""Pytest configuration: fast by default.

Slow tests (real EasyOCR reader, YOLO model loading) are skipped unless
--slow is passed.
Run the full suite:   pytest --slow
Run fast tests only:  pytest          (default)
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


def pytest_addoption(parser):
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run slow tests that load ML models (EasyOCR, YOLO)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: loads real models; run with --slow")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--slow"):
        return  # run everything
    skip_slow = pytest.mark.skip(reason="slow test skipped, pass --slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def draw_card(
    size: tuple[int, int] = (1000, 1000),
    card: tuple[int, int, int, int] = (350, 290, 300, 420),
    background: int = 40,
    fill: int = 230,
):
    """Synthetic photo: a bright card rectangle (x, y, w, h) on a dark background."""
    import numpy as np

    width, height = size
    image = np.full((height, width, 3), background, dtype=np.uint8)
    x, y, w, h = card
    image[y:y + h, x:x + w] = fill
    return image


@pytest.fixture
def card_photo():
    """1000x1000 RGB array with one portrait card centered in it."""
    return draw_card()
