"""
Card text extraction.

Key components:
- ocr: TextRecognizer wrapping EasyOCR
- parsing: Heuristic parser for player name, year and team
- teams: Team name dictionary in lookup order
"""

from .ocr import TextRecognizer, TextReader, create_reader
from .parsing import extract_year, find_team, looks_like_player_name, parse_card_text
from .teams import TEAM_NAMES

__all__ = [
    "TextRecognizer",
    "TextReader",
    "create_reader",
    "extract_year",
    "find_team",
    "looks_like_player_name",
    "parse_card_text",
    "TEAM_NAMES",
]
