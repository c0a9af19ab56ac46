"""
Fixture databases.

The files are written with the standard library's sqlite3 module so the tests
read real on-disk layouts; the engine itself never touches sqlite3.
"""

import sqlite3
from pathlib import Path

import pytest

from pagesql.log import setup_logging

APPLES = [
    (1, "Granny Smith", "Light Green"),
    (2, "Fuji", "Red"),
    (3, "Honeycrisp", "Blush Red"),
    (4, "Golden Delicious", "Yellow"),
]

ORANGES = [
    (1, "Mandarin", "great for snacking"),
    (2, "Tangelo", "sweet and tart"),
    (3, "Blood Orange", None),
]

COMPANIES = [
    (1, "Acme", "chile"),
    (2, "Globex", "eritrea"),
    (3, "Initech", "chile"),
    (4, "Umbrella", "micronesia"),
    (5, "Hooli", "chile"),
]

CATEGORIES = ["red", "green", "blue", "yellow", "purple", "orange", "teal"]
ITEM_COUNT = 3000
EVENT_KINDS = ["click", "view", "buy"]
EVENT_COUNT = 500


def item(i: int) -> tuple:
    return (i, f"item-{i:05d}", CATEGORIES[i % len(CATEGORIES)], i % 5, i / 4)


def create_database(path: Path, script: str, page_size: int, rows: dict[str, list[tuple]]) -> Path:
    connection = sqlite3.connect(path)
    try:
        connection.execute(f"PRAGMA page_size = {page_size}")
        connection.executescript(script)
        for insert, values in rows.items():
            connection.executemany(insert, values)
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    setup_logging("WARNING", "console")


@pytest.fixture
def sample_db(tmp_path: Path) -> Path:
    """Three small tables, 4096-byte pages, one single-column index"""
    path = create_database(
        tmp_path / "sample.db",
        """
        CREATE TABLE apples
        (
            id integer primary key autoincrement,
            name text,
            color text
        );
        CREATE TABLE oranges
        (
            id integer primary key autoincrement,
            name text,
            description text
        );
        CREATE TABLE companies (id integer primary key, name text, country text);
        CREATE INDEX idx_companies_country on companies (country);
        """,
        page_size=4096,
        rows={
            "INSERT INTO apples VALUES (?, ?, ?)": APPLES,
            "INSERT INTO oranges VALUES (?, ?, ?)": ORANGES,
            "INSERT INTO companies VALUES (?, ?, ?)": COMPANIES,
        },
    )
    connection = sqlite3.connect(path)
    try:
        # Existing rows keep their shorter records
        connection.execute("ALTER TABLE oranges ADD COLUMN origin text")
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture
def big_db(tmp_path: Path) -> Path:
    """Tables large enough for multi-level table and index b-trees"""
    return create_database(
        tmp_path / "big.db",
        """
        CREATE TABLE items (id integer primary key, name text, category text, grade integer, score real);
        CREATE INDEX idx_items_category ON items (category);
        CREATE INDEX idx_items_grade ON items (grade);
        CREATE INDEX idx_items_name_category ON items (name, category);
        CREATE TABLE events (kind text, payload blob);
        """,
        page_size=512,
        rows={
            "INSERT INTO items VALUES (?, ?, ?, ?, ?)": [
                item(i) for i in range(1, ITEM_COUNT + 1)
            ],
            "INSERT INTO events VALUES (?, ?)": [
                (EVENT_KINDS[i % len(EVENT_KINDS)], bytes([i % 256]) * 3)
                for i in range(1, EVENT_COUNT + 1)
            ],
        },
    )


@pytest.fixture
def overflow_db(tmp_path: Path) -> Path:
    return create_database(
        tmp_path / "overflow.db",
        "CREATE TABLE notes (id integer primary key, body text);",
        page_size=512,
        rows={"INSERT INTO notes VALUES (?, ?)": [(1, "short"), (2, "x" * 2000)]},
    )


FRUITS = [
    (1, "apple", "Red", "apple"),
    (2, "Banana", "Yellow", "Banana"),
    (3, "cherry", "Red", "cherry"),
    (4, "Apricot", "Orange", "Apricot"),
]


@pytest.fixture
def fruits_db(tmp_path: Path) -> Path:
    """Indexes whose keys are not stored in ascending BINARY order"""
    return create_database(
        tmp_path / "fruits.db",
        """
        CREATE TABLE fruits (
            id integer primary key,
            name text COLLATE NOCASE,
            color text,
            label text COLLATE NOCASE
        );
        CREATE INDEX idx_fruits_color ON fruits (color DESC);
        CREATE INDEX idx_fruits_name ON fruits (name);
        CREATE INDEX idx_fruits_label ON fruits (label COLLATE BINARY);
        """,
        page_size=4096,
        rows={"INSERT INTO fruits VALUES (?, ?, ?, ?)": FRUITS},
    )
