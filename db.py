"""Database helper module for the card store."""

import sqlite3
from pathlib import Path
from typing import Optional

import config

SCHEMA = """
CREATE TABLE IF NOT EXISTS cards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    image_identifier TEXT NOT NULL UNIQUE,
    player_name TEXT NOT NULL,
    year INTEGER NOT NULL,
    team TEXT NOT NULL,
    scanned_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_cards_player_name ON cards(player_name);
CREATE INDEX IF NOT EXISTS idx_cards_scanned_date ON cards(scanned_date);
"""


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Get a database connection, creating the schema if needed.

    The connection may be used from other threads; callers serialize access
    (see ``cards.CardStore``).
    """
    path = Path(db_path) if db_path is not None else config.DB_PATH
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    init_database(conn)
    return conn


def init_database(conn: sqlite3.Connection) -> None:
    """Initialize the database with the schema."""
    conn.executescript(SCHEMA)
    conn.commit()


def insert_card(
    conn: sqlite3.Connection,
    image_identifier: str,
    player_name: str,
    year: int,
    team: str,
    scanned_date: Optional[str] = None,
) -> Optional[int]:
    """Insert a card and return its ID. Returns None if the image was already recorded."""
    cursor = conn.cursor()
    try:
        if scanned_date is None:
            cursor.execute(
                """
                INSERT INTO cards (image_identifier, player_name, year, team)
                VALUES (?, ?, ?, ?)
                """,
                (image_identifier, player_name, year, team),
            )
        else:
            cursor.execute(
                """
                INSERT INTO cards (image_identifier, player_name, year, team, scanned_date)
                VALUES (?, ?, ?, ?, ?)
                """,
                (image_identifier, player_name, year, team, scanned_date),
            )
        conn.commit()
        return cursor.lastrowid
    except sqlite3.IntegrityError:
        # Identifier already stored
        conn.rollback()
        return None


def card_exists(conn: sqlite3.Connection, image_identifier: str) -> bool:
    """Check if an image has already produced a card."""
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM cards WHERE image_identifier = ?", (image_identifier,))
    return cursor.fetchone() is not None


def get_card(conn: sqlite3.Connection, card_id: int) -> Optional[dict]:
    """Get a card by its ID."""
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM cards WHERE id = ?", (card_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def list_cards(conn: sqlite3.Connection) -> list[dict]:
    """List all cards, most recently scanned first."""
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM cards ORDER BY scanned_date DESC, id DESC")
    return [dict(row) for row in cursor.fetchall()]


def delete_card(conn: sqlite3.Connection, card_id: int) -> bool:
    """Delete a card. Returns True if a row was removed."""
    cursor = conn.cursor()
    cursor.execute("DELETE FROM cards WHERE id = ?", (card_id,))
    conn.commit()
    return cursor.rowcount > 0


def list_image_identifiers(conn: sqlite3.Connection) -> set[str]:
    """Get the identifiers of all images that produced a card."""
    cursor = conn.cursor()
    cursor.execute("SELECT image_identifier FROM cards")
    return {row[0] for row in cursor.fetchall()}
