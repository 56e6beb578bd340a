"""Cards command CLI parsing and control flow."""

from __future__ import annotations

import argparse
import json
import logging

from cards import CardFilter, CardStore

logger = logging.getLogger(__name__)


def add_cards_subparser(subparsers: argparse._SubParsersAction) -> None:
    cards_parser = subparsers.add_parser(
        "cards",
        help="Browse recorded cards (list/delete)",
    )
    cards_subparsers = cards_parser.add_subparsers(
        dest="cards_command",
        help="Cards command",
    )

    cards_list = cards_subparsers.add_parser(
        "list",
        help="List recorded cards, newest first",
    )
    cards_list.add_argument("--player", default="", help="Player name contains (case-insensitive)")
    cards_list.add_argument("--year", type=int, default=None, help="Exact card year")
    cards_list.add_argument("--team", default="", help="Team contains (case-insensitive)")
    cards_list.add_argument(
        "--json",
        action="store_true",
        help="Print cards as JSON on stdout",
    )
    cards_list.set_defaults(_cmd=cmd_cards_list)

    cards_delete = cards_subparsers.add_parser(
        "delete",
        help="Delete a card by ID",
    )
    cards_delete.add_argument("card_id", type=int, help="Card ID to delete")
    cards_delete.set_defaults(_cmd=cmd_cards_delete)

    cards_parser.set_defaults(_cards_parser=cards_parser)


def cmd_cards_list(args: argparse.Namespace) -> int:
    card_filter = CardFilter(player_name=args.player, year=args.year, team=args.team)
    with CardStore.open(args.db) as store:
        cards = store.list_cards(card_filter)

    if args.json:
        print(json.dumps([card.to_dict() for card in cards], indent=2))
        return 0

    if not cards:
        logger.info("No cards found.")
        return 0

    logger.info("%-6s %-28s %-6s %-26s %s", "ID", "Player", "Year", "Team", "Scanned")
    logger.info("%s", "-" * 90)
    for card in cards:
        logger.info(
            "%-6s %-28s %-6s %-26s %s",
            card.id,
            card.player_name[:28],
            card.year,
            card.team[:26],
            card.scanned_date or "(unknown)",
        )
    return 0


def cmd_cards_delete(args: argparse.Namespace) -> int:
    with CardStore.open(args.db) as store:
        deleted = store.delete(args.card_id)

    if not deleted:
        logger.error("Card %s not found.", args.card_id)
        return 1
    logger.info("Deleted card %s.", args.card_id)
    return 0
