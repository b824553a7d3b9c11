"""
SQLite track store for Pin Radio

Holds analysed tracks (path, tags, feature vector). Feature extraction
happens elsewhere; this module only persists and loads the results.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, List, Optional, Union

from loguru import logger

from pin_radio.domain.library.models import Track

from .errors import ConfigurationError

SCHEMA_VERSION = 1


@contextmanager
def get_db_connection(db_path: Union[str, Path]):
    """Get a database connection with proper cleanup."""
    conn = sqlite3.connect(str(db_path), timeout=30.0)
    conn.row_factory = sqlite3.Row

    try:
        yield conn
    finally:
        conn.close()


def init_database(db_path: Union[str, Path]) -> None:
    """Create the track store schema if it doesn't exist yet."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(db_path) as conn:
        create_schema(conn)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create tables on an open connection."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS tracks (
            path TEXT PRIMARY KEY,
            title TEXT,
            artist TEXT,
            genre TEXT,
            features TEXT NOT NULL, -- JSON array of floats
            analyzed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY
        )
    """)
    conn.execute(
        "INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
    )
    conn.commit()


def _row_to_track(row: sqlite3.Row) -> Track:
    return Track(
        path=row["path"],
        features=tuple(float(v) for v in json.loads(row["features"])),
        genre=row["genre"],
        title=row["title"],
        artist=row["artist"],
    )


def upsert_tracks(conn: sqlite3.Connection, tracks: Iterable[Track]) -> int:
    """Insert or replace analysed tracks.

    Returns:
        Number of tracks written
    """
    rows = [
        (
            track.path,
            track.title,
            track.artist,
            track.genre,
            json.dumps(list(track.features)),
        )
        for track in tracks
    ]
    conn.executemany(
        """
        INSERT INTO tracks (path, title, artist, genre, features)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(path) DO UPDATE SET
            title = excluded.title,
            artist = excluded.artist,
            genre = excluded.genre,
            features = excluded.features,
            analyzed_at = CURRENT_TIMESTAMP
        """,
        rows,
    )
    conn.commit()
    return len(rows)


def get_track_by_path(conn: sqlite3.Connection, path: str) -> Optional[Track]:
    """Look up a single analysed track by its library-relative path."""
    row = conn.execute("SELECT * FROM tracks WHERE path = ?", (path,)).fetchone()
    return _row_to_track(row) if row else None


def get_all_tracks(conn: sqlite3.Connection) -> List[Track]:
    """Load every analysed track, ordered by path."""
    cursor = conn.execute("SELECT * FROM tracks ORDER BY path")
    return [_row_to_track(row) for row in cursor.fetchall()]


def get_feature_dimension(conn: sqlite3.Connection) -> Optional[int]:
    """Length of the stored feature vectors, or None for an empty store."""
    row = conn.execute("SELECT features FROM tracks LIMIT 1").fetchone()
    return len(json.loads(row["features"])) if row else None


def load_library(db_path: Union[str, Path]) -> List[Track]:
    """Load the analysed library from disk.

    Raises:
        ConfigurationError: If the database is missing, empty, or mixes
            feature vectors of different lengths
    """
    if not Path(db_path).exists():
        raise ConfigurationError(
            f"Track database not found at {db_path}. Import analysed tracks first."
        )

    try:
        with get_db_connection(db_path) as conn:
            tracks = get_all_tracks(conn)
    except sqlite3.Error as e:
        raise ConfigurationError(f"Could not read track database {db_path}: {e}") from e

    if not tracks:
        raise ConfigurationError(f"Track database {db_path} contains no tracks")

    dimensions = sorted({len(track.features) for track in tracks})
    if len(dimensions) > 1:
        raise ConfigurationError(
            f"Track database {db_path} mixes feature lengths {dimensions}. Re-import the library."
        )

    logger.info(f"Loaded {len(tracks)} analysed tracks from {db_path}")
    return tracks


def parse_track_records(records: list) -> List[Track]:
    """Validate analysis records read from JSON into Tracks.

    Raises:
        ConfigurationError: If a record lacks a path or numeric features
    """
    if not isinstance(records, list):
        raise ConfigurationError("Analysis file must contain a JSON array of tracks")

    tracks = []
    dimension = None
    for index, record in enumerate(records):
        if not isinstance(record, dict) or not record.get("path"):
            raise ConfigurationError(f"Record {index} has no 'path'")
        features = record.get("features")
        if not isinstance(features, list) or not features:
            raise ConfigurationError(f"Record {index} ({record['path']}) has no features")
        try:
            features = tuple(float(v) for v in features)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Record {index} ({record['path']}) has non-numeric features"
            ) from None
        if dimension is None:
            dimension = len(features)
        elif len(features) != dimension:
            raise ConfigurationError(
                f"Record {index} ({record['path']}) has {len(features)} features, expected {dimension}"
            )
        tracks.append(
            Track(
                path=record["path"],
                features=features,
                genre=record.get("genre"),
                title=record.get("title"),
                artist=record.get("artist"),
            )
        )
    return tracks


def import_tracks_from_json(db_path: Union[str, Path], json_path: Union[str, Path]) -> int:
    """Import analysed tracks from a JSON export into the store.

    Returns:
        Number of tracks imported

    Raises:
        ConfigurationError: If the file is unreadable or invalid, or its
            feature length differs from the tracks already stored
    """
    try:
        with open(json_path, "r", encoding="utf-8") as f:
            records = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Could not open analysis file {json_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Could not parse analysis file {json_path}: {e}") from e

    tracks = parse_track_records(records)

    init_database(db_path)
    with get_db_connection(db_path) as conn:
        stored = get_feature_dimension(conn)
        if stored is not None and tracks and len(tracks[0].features) != stored:
            raise ConfigurationError(
                f"{json_path} has {len(tracks[0].features)} features per track, "
                f"but {db_path} holds {stored}"
            )
        count = upsert_tracks(conn, tracks)

    logger.info(f"Imported {count} tracks from {json_path} into {db_path}")
    return count
