from __future__ import annotations

import threading
from collections.abc import Iterator
from pathlib import Path

import pytest

from chunkscribe.components.segment_store import SegmentStore, SqliteSegmentStore, TempDirSegmentStore
from chunkscribe.contracts.artifacts import WAV_MIME_TYPE
from chunkscribe.contracts.errors import SegmentStoreError


@pytest.fixture(params=["tempdir", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[SegmentStore]:
    if request.param == "tempdir":
        created: SegmentStore = TempDirSegmentStore(parent_dir=tmp_path / "segments")
    else:
        created = SqliteSegmentStore(tmp_path / "db" / "segments.sqlite3")
    yield created
    created.clear()


def test_round_trip_keeps_data_and_display_name(store: SegmentStore) -> None:
    store.save(0, b"RIFF-first", "chunk_0_talk.mp3.wav")

    segment = store.get(0)

    assert segment is not None
    assert segment.key == 0
    assert segment.data == b"RIFF-first"
    assert segment.display_name == "chunk_0_talk.mp3.wav"
    assert segment.mime_type == WAV_MIME_TYPE


def test_missing_key_returns_none(store: SegmentStore) -> None:
    store.save(0, b"a", "chunk_0_a.wav")

    assert store.get(1) is None


def test_get_before_first_save_returns_none(store: SegmentStore) -> None:
    assert store.get(0) is None


def test_save_replaces_previous_value(store: SegmentStore) -> None:
    store.save(3, b"old", "chunk_3_old.wav")
    store.save(3, b"new", "chunk_3_new.wav")

    segment = store.get(3)

    assert segment is not None
    assert segment.data == b"new"
    assert segment.display_name == "chunk_3_new.wav"


def test_keys_with_shared_digits_do_not_collide(store: SegmentStore) -> None:
    store.save(1, b"one", "chunk_1_x.wav")
    store.save(10, b"ten", "chunk_10_x.wav")

    one = store.get(1)
    ten = store.get(10)

    assert one is not None and one.data == b"one"
    assert ten is not None and ten.data == b"ten"


def test_clear_drops_every_key_and_is_repeatable(store: SegmentStore) -> None:
    for key in range(3):
        store.save(key, bytes([key]), f"chunk_{key}_x.wav")

    store.clear()
    store.clear()

    assert [store.get(key) for key in range(3)] == [None, None, None]


def test_clear_before_any_use_is_a_no_op(store: SegmentStore) -> None:
    store.clear()


def test_store_is_reusable_after_clear(store: SegmentStore) -> None:
    store.save(0, b"first run", "chunk_0_a.wav")
    store.clear()
    store.save(0, b"second run", "chunk_0_b.wav")

    segment = store.get(0)

    assert segment is not None
    assert segment.data == b"second run"


def test_concurrent_saves_of_distinct_keys(store: SegmentStore) -> None:
    errors: list[Exception] = []

    def save(key: int) -> None:
        try:
            store.save(key, f"segment {key}".encode(), f"chunk_{key}_x.wav")
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=save, args=(key,)) for key in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    for key in range(8):
        segment = store.get(key)
        assert segment is not None
        assert segment.data == f"segment {key}".encode()


@pytest.mark.parametrize("key", [-1, True, "0", 1.0])
def test_rejects_invalid_keys(store: SegmentStore, key: object) -> None:
    with pytest.raises(SegmentStoreError):
        store.save(key, b"x", "chunk.wav")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "display_name",
    ["chunk_0_a/b.wav", "../escape.wav", "", "chunk_0_" + "x" * 300 + ".mp3.wav", "chunk_0_réunion d'équipe.m4a.wav"],
)
def test_display_name_round_trips_exactly(store: SegmentStore, display_name: str) -> None:
    store.save(0, b"RIFF", display_name)

    segment = store.get(0)

    assert segment is not None
    assert segment.data == b"RIFF"
    assert segment.display_name == display_name


def test_tempdir_store_creates_directory_lazily_and_removes_it(tmp_path: Path) -> None:
    store = TempDirSegmentStore(parent_dir=tmp_path)
    assert store.directory is None

    store.save(0, b"x", "chunk_0_a.wav")
    directory = store.directory
    assert directory is not None and directory.is_dir()
    assert sorted(path.name for path in directory.iterdir()) == ["0.name", "0.wav"]

    store.clear()
    assert store.directory is None
    assert not directory.exists()


def test_tempdir_store_keeps_names_out_of_the_file_system(tmp_path: Path) -> None:
    store = TempDirSegmentStore(parent_dir=tmp_path)
    store.save(0, b"x", "../escape.wav")

    assert list(tmp_path.glob("escape.wav")) == []
    assert store.directory is not None
    assert sorted(path.name for path in store.directory.iterdir()) == ["0.name", "0.wav"]
    store.clear()


def test_sqlite_store_keeps_file_and_empties_table(tmp_path: Path) -> None:
    db_path = tmp_path / "segments.sqlite3"
    store = SqliteSegmentStore(db_path)
    store.save(0, b"x", "chunk_0_a.wav")

    store.clear()

    assert db_path.exists()
    reopened = SqliteSegmentStore(db_path)
    assert reopened.get(0) is None
    reopened.clear()
