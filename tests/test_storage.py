import json
from pathlib import Path

from storage.json_file import JsonFileStorage
from storage.memory import MemoryStorage


def test_memory_storage_roundtrip() -> None:
    storage = MemoryStorage({"a": "1"})
    assert storage.get("a") == "1"
    storage.set("b", "2")
    storage.remove("a")
    storage.remove("missing")
    assert storage.get("a") is None
    assert storage.keys() == ["b"]


def test_json_file_storage_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "progress.json"
    JsonFileStorage(str(path)).set("course_progress_excel", '["excel-welcome"]')

    reopened = JsonFileStorage(str(path))
    assert reopened.get("course_progress_excel") == '["excel-welcome"]'
    reopened.remove("course_progress_excel")
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_json_file_storage_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "progress.json"
    path.write_text("{not json", encoding="utf-8")
    storage = JsonFileStorage(str(path))
    assert storage.get("anything") is None
    storage.set("k", "v")
    assert storage.get("k") == "v"
