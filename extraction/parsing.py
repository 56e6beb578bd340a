"""
Card text parsing.

Turns recognized text lines into structured card fields with simple,
independent heuristics. Each field takes the first line that satisfies its
rule; a single line may fill more than one field.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from detection.types import ParsedCardText, RecognizedTextLine

from .teams import TEAM_NAMES

# Accepted card years: 1900-2039
YEAR_PATTERN = re.compile(r"\b(19\d{2}|20[0-3]\d)\b")

# Broader pattern used to keep dated lines out of player names
YEAR_LIKE_PATTERN = re.compile(r"\b(19|20)\d{2}\b")


def _line_text(line: RecognizedTextLine | str) -> str:
    return line.text if isinstance(line, RecognizedTextLine) else str(line)


def extract_year(text: str) -> int | None:
    """Return the first 4-digit year in [1900, 2039] found in text."""
    match = YEAR_PATTERN.search(text)
    return int(match.group(1)) if match else None


def find_team(text: str, team_names: Sequence[str] = TEAM_NAMES) -> str | None:
    """Return the first dictionary entry contained in text (case-insensitive).

    Note: containment also fires when a player's name includes a team name
    (e.g. a surname that matches a city or nickname). This is a known
    limitation of the heuristic.
    """
    lowered = text.casefold()
    for team in team_names:
        if team.casefold() in lowered:
            return team
    return None


def is_capitalized_name(text: str) -> bool:
    """Two or more tokens, each starting uppercase or of length <= 1."""
    words = text.split()
    if len(words) < 2:
        return False
    return all(word[0].isupper() or len(word) <= 1 for word in words)


def looks_like_player_name(text: str, team_names: Sequence[str] = TEAM_NAMES) -> bool:
    """Capitalized multi-word text that is neither dated nor a team."""
    if not is_capitalized_name(text):
        return False
    if YEAR_LIKE_PATTERN.search(text):
        return False
    return find_team(text, team_names) is None


def parse_card_text(
    lines: Iterable[RecognizedTextLine | str],
    team_names: Sequence[str] = TEAM_NAMES,
) -> ParsedCardText:
    """Parse recognized lines into player name, year and team.

    Lines are evaluated in the order given; no top-to-bottom ordering is
    assumed.

    Args:
        lines: Recognized lines (``RecognizedTextLine`` or plain strings).
        team_names: Team dictionary in lookup order.

    Returns:
        ParsedCardText with ``all_text`` set to the lines joined by newlines.
    """
    player_name: str | None = None
    year: int | None = None
    team: str | None = None
    texts: list[str] = []

    for line in lines:
        raw = _line_text(line)
        texts.append(raw)
        text = raw.strip()

        if year is None:
            year = extract_year(text)

        if team is None:
            team = find_team(text, team_names)

        if player_name is None and looks_like_player_name(text, team_names):
            player_name = text

    return ParsedCardText(
        player_name=player_name,
        year=year,
        team=team,
        all_text="\n".join(texts).strip(),
    )
