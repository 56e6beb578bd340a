"""Subcommands for the cardscan command line."""
