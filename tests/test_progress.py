import json

from services.progress_service import ProgressTracker, progress_key
from storage.memory import MemoryStorage


def _tracker(catalog, initial=None) -> ProgressTracker:
    return ProgressTracker(MemoryStorage(initial), catalog)


def test_mark_complete_is_idempotent(catalog) -> None:
    tracker = _tracker(catalog)
    tracker.mark_complete("after-effects", "ae-welcome")
    tracker.mark_complete("after-effects", "ae-welcome")
    assert tracker.completed_chapters("after-effects") == ["ae-welcome"]
    assert json.loads(tracker.storage.get(progress_key("after-effects"))) == ["ae-welcome"]


def test_percent_complete_rounds(catalog) -> None:
    tracker = _tracker(catalog)
    assert tracker.percent_complete("premiere-pro") == 0
    tracker.mark_complete("premiere-pro", "1")
    assert tracker.percent_complete("premiere-pro") == 17
    tracker.mark_complete("premiere-pro", "2")
    assert tracker.percent_complete("premiere-pro") == 33
    tracker.mark_complete("premiere-pro", "3")
    assert tracker.percent_complete("premiere-pro") == 50


def test_complete_then_incomplete_restores_percentage(catalog) -> None:
    tracker = _tracker(catalog)
    tracker.mark_complete("excel", "excel-welcome")
    before = tracker.percent_complete("excel")
    tracker.mark_complete("excel", "excel-formula1")
    assert tracker.percent_complete("excel") == 100
    tracker.mark_incomplete("excel", "excel-formula1")
    assert tracker.percent_complete("excel") == before == 50


def test_toggle(catalog) -> None:
    tracker = _tracker(catalog)
    assert tracker.toggle("excel", "excel-welcome") is True
    assert tracker.toggle("excel", "excel-welcome") is False
    assert tracker.completed_chapters("excel") == []


def test_course_completed_needs_every_chapter(catalog) -> None:
    tracker = _tracker(catalog)
    tracker.mark_complete("after-effects", "ae-welcome")
    assert tracker.is_course_completed("after-effects") is False
    tracker.mark_complete("after-effects", "ae-anim1")
    tracker.mark_complete("after-effects", "stale-chapter")
    assert tracker.is_course_completed("after-effects") is True
    assert [c.id for c in tracker.completed_courses()] == ["after-effects"]


def test_course_without_chapters_is_never_completed(catalog) -> None:
    tracker = _tracker(catalog)
    assert tracker.is_course_completed("new-course") is False
    assert tracker.percent_complete("new-course") == 0
    assert tracker.is_course_completed("does-not-exist") is False


def test_corrupt_progress_reads_as_empty(catalog) -> None:
    tracker = _tracker(catalog, {progress_key("excel"): "{oops"})
    assert tracker.completed_chapters("excel") == []
    tracker = _tracker(catalog, {progress_key("excel"): '{"a": 1}'})
    assert tracker.completed_chapters("excel") == []


def test_legacy_premiere_progress_is_read_and_migrated(catalog) -> None:
    tracker = _tracker(catalog, {"premierepro_completed_chapters": "[1, 2, 3]"})
    assert tracker.completed_chapters("premiere-pro") == ["1", "2", "3"]
    assert tracker.percent_complete("premiere-pro") == 50

    tracker.mark_complete("premiere-pro", 4)
    assert tracker.storage.get("premierepro_completed_chapters") is None
    assert json.loads(tracker.storage.get(progress_key("premiere-pro"))) == ["1", "2", "3", "4"]


def test_next_and_adjacent_chapters(catalog) -> None:
    tracker = _tracker(catalog)
    tracker.mark_complete("premiere-pro", "1")
    assert tracker.next_chapter("premiere-pro").id == "2"
    previous, following = tracker.adjacent_chapters("premiere-pro", "3")
    assert (previous.id, following.id) == ("2", "4")
    assert tracker.adjacent_chapters("premiere-pro", "1")[0] is None
    assert tracker.adjacent_chapters("premiere-pro", "6")[1] is None
