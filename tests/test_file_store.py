"""Tests for FileStore and atomic writes."""

import json

from plugindex.infra.file_store import FileStore, write_text_atomic


class TestWriteTextAtomic:
    """Tests for write_text_atomic."""

    def test_creates_parents(self, tmp_path):
        path = tmp_path / "a" / "b" / "file.txt"
        write_text_atomic(path, "hello\n")
        assert path.read_text() == "hello\n"

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "file.txt"
        write_text_atomic(path, "one")
        write_text_atomic(path, "two")
        assert path.read_text() == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]


class TestFileStore:
    """Tests for FileStore."""

    def test_set_and_get(self, tmp_path):
        store = FileStore(tmp_path / "store.json")
        store.set("key", {"value": 1})
        assert store.get("key") == {"value": 1}
        assert json.loads((tmp_path / "store.json").read_text()) == {"key": {"value": 1}}

    def test_missing_file_reads_empty(self, tmp_path):
        store = FileStore(tmp_path / "missing.json")
        assert store.read() == {}
        assert not (tmp_path / "missing.json").exists()

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2")
        assert FileStore(path).read() == {}

    def test_non_object_reads_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]")
        assert FileStore(path).read() == {}

    def test_fresh_read_sees_other_writers(self, tmp_path):
        path = tmp_path / "store.json"
        first = FileStore(path)
        second = FileStore(path)
        first.set("a", 1)
        assert second.get("a", fresh=True) == 1
        second.set("b", 2)
        assert first.get("b") is None
        assert first.get("b", fresh=True) == 2

    def test_delete(self, tmp_path):
        store = FileStore(tmp_path / "store.json")
        store.set("a", 1)
        assert store.delete("a")
        assert not store.delete("a")
        assert "a" not in store

    def test_remove(self, tmp_path):
        store = FileStore(tmp_path / "store.json")
        store.set("a", 1)
        store.remove()
        assert not (tmp_path / "store.json").exists()
        assert store.read(fresh=True) == {}

    def test_read_returns_copy(self, tmp_path):
        store = FileStore(tmp_path / "store.json")
        store.set("a", 1)
        data = store.read()
        data["b"] = 2
        assert "b" not in store
