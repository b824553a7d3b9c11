"""Tests for the analysed track store."""

import json

import pytest

from pin_radio.core.database import (
    get_all_tracks,
    get_db_connection,
    get_track_by_path,
    import_tracks_from_json,
    init_database,
    load_library,
    parse_track_records,
    upsert_tracks,
)
from pin_radio.core.errors import ConfigurationError

from conftest import make_track


def write_json(path, payload):
    path.write_text(json.dumps(payload))
    return path


class TestTrackStore:
    """Tests for reading and writing tracks."""

    def test_upsert_and_read_back(self, tmp_path):
        db_path = tmp_path / "library.db"
        init_database(db_path)
        tracks = [
            make_track("b.flac", 1.0, 2.0, genre="rock", title="B", artist="Band"),
            make_track("a.flac", 0.5, 0.25),
        ]

        with get_db_connection(db_path) as conn:
            assert upsert_tracks(conn, tracks) == 2
            stored = get_all_tracks(conn)

        # Ordered by path
        assert [t.path for t in stored] == ["a.flac", "b.flac"]
        assert stored[1] == tracks[0]

    def test_upsert_replaces_existing_path(self, tmp_path):
        db_path = tmp_path / "library.db"
        init_database(db_path)

        with get_db_connection(db_path) as conn:
            upsert_tracks(conn, [make_track("a.flac", 0.0, genre="rock")])
            upsert_tracks(conn, [make_track("a.flac", 9.0, genre="jazz")])
            track = get_track_by_path(conn, "a.flac")
            assert len(get_all_tracks(conn)) == 1

        assert track.features == (9.0,)
        assert track.genre == "jazz"

    def test_unknown_path(self, tmp_path):
        db_path = tmp_path / "library.db"
        init_database(db_path)
        with get_db_connection(db_path) as conn:
            assert get_track_by_path(conn, "nope.flac") is None


class TestLoadLibrary:
    """Tests for load_library function."""

    def test_missing_database(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_library(tmp_path / "missing.db")

    def test_empty_database(self, tmp_path):
        db_path = tmp_path / "library.db"
        init_database(db_path)
        with pytest.raises(ConfigurationError):
            load_library(db_path)

    def test_loads_tracks(self, tmp_path):
        db_path = tmp_path / "library.db"
        init_database(db_path)
        with get_db_connection(db_path) as conn:
            upsert_tracks(conn, [make_track("a.flac", 1.0)])

        assert [t.path for t in load_library(db_path)] == ["a.flac"]

    def test_mixed_feature_lengths(self, tmp_path):
        db_path = tmp_path / "library.db"
        init_database(db_path)
        with get_db_connection(db_path) as conn:
            upsert_tracks(conn, [make_track("a.flac", 1.0, 2.0), make_track("b.flac", 1.0, 2.0, 3.0)])

        with pytest.raises(ConfigurationError):
            load_library(db_path)


class TestImport:
    """Tests for importing analysis exports."""

    def test_import_creates_database(self, tmp_path):
        source = write_json(
            tmp_path / "analysis.json",
            [
                {"path": "a.flac", "features": [0, 1], "genre": "rock", "title": "A"},
                {"path": "b.flac", "features": [2, 3]},
            ],
        )
        db_path = tmp_path / "nested" / "library.db"

        assert import_tracks_from_json(db_path, source) == 2

        tracks = load_library(db_path)
        assert tracks[0].features == (0.0, 1.0)
        assert tracks[0].title == "A"
        assert tracks[1].genre is None

    def test_second_import_must_match_stored_feature_length(self, tmp_path):
        db_path = tmp_path / "library.db"
        first = write_json(tmp_path / "first.json", [{"path": "a.flac", "features": [0, 1]}])
        second = write_json(tmp_path / "second.json", [{"path": "b.flac", "features": [0, 1, 2]}])
        import_tracks_from_json(db_path, first)

        with pytest.raises(ConfigurationError):
            import_tracks_from_json(db_path, second)

        assert [t.path for t in load_library(db_path)] == ["a.flac"]

    def test_reimport_with_same_feature_length(self, tmp_path):
        db_path = tmp_path / "library.db"
        first = write_json(tmp_path / "first.json", [{"path": "a.flac", "features": [0, 1]}])
        second = write_json(tmp_path / "second.json", [{"path": "b.flac", "features": [2, 3]}])
        import_tracks_from_json(db_path, first)

        assert import_tracks_from_json(db_path, second) == 1
        assert len(load_library(db_path)) == 2

    def test_unparseable_file(self, tmp_path):
        source = tmp_path / "analysis.json"
        source.write_text("[{")
        with pytest.raises(ConfigurationError):
            import_tracks_from_json(tmp_path / "library.db", source)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            import_tracks_from_json(tmp_path / "library.db", tmp_path / "nope.json")

    @pytest.mark.parametrize(
        "records",
        [
            {"path": "a.flac", "features": [1]},
            [{"features": [1]}],
            [{"path": "a.flac"}],
            [{"path": "a.flac", "features": []}],
            [{"path": "a.flac", "features": [1, "loud"]}],
            [{"path": "a.flac", "features": [1, 2]}, {"path": "b.flac", "features": [1]}],
        ],
    )
    def test_invalid_records(self, records):
        with pytest.raises(ConfigurationError):
            parse_track_records(records)
