"""
Tests for the in-memory DocumentTracker.
"""

from types import SimpleNamespace

import pytest
from lsprotocol.types import Position, PositionEncodingKind, Range
from pygls.workspace import PositionCodec

from sweep_autocomplete.models import UserActionType
from sweep_autocomplete.tracking import (
    DocumentTracker,
    apply_change,
    classify_change,
    unified_diff,
)

from .conftest import FakeClock


def _change(start: tuple[int, int], end: tuple[int, int], text: str) -> SimpleNamespace:
    return SimpleNamespace(
        range=Range(
            start=Position(line=start[0], character=start[1]),
            end=Position(line=end[0], character=end[1]),
        ),
        text=text,
    )


@pytest.fixture
def tracker(clock):
    return DocumentTracker(clock=clock)


class TestOriginalContent:
    def test_first_open_is_baseline(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "a")
        tracker.update_document("file:///a.py", "/a.py", "ab")
        assert tracker.get_original_content("file:///a.py") == "a"

    def test_reopen_keeps_baseline(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "a")
        tracker.open_document("file:///a.py", "/a.py", "changed")
        assert tracker.get_original_content("file:///a.py") == "a"

    def test_untracked_is_none(self, tracker):
        assert tracker.get_original_content("file:///missing.py") is None

    def test_close_forgets(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "a")
        tracker.close_document("file:///a.py")
        assert tracker.get_original_content("file:///a.py") is None
        assert tracker.get_recent_context_files("file:///other.py", 5) == []

    def test_update_without_open_starts_tracking(self, tracker):
        tracker.update_document("file:///a.py", "/a.py", "a")
        assert tracker.get_original_content("file:///a.py") == "a"
        assert tracker.get_edit_diff_history() == []


class TestRecentContextFiles:
    def test_excludes_current_and_orders_by_mtime(self, tracker, clock):
        for name in ("a", "b", "c"):
            tracker.open_document(f"file:///{name}.py", f"/{name}.py", name)
            clock.advance(1)
        tracker.update_document("file:///a.py", "/a.py", "a2")

        files = tracker.get_recent_context_files("file:///b.py", 5)

        assert [f.filepath for f in files] == ["/a.py", "/c.py"]
        assert files[0].content == "a2"

    def test_limit(self, tracker, clock):
        for i in range(6):
            tracker.open_document(f"file:///{i}.py", f"/{i}.py", "")
            clock.advance(1)
        assert len(tracker.get_recent_context_files("file:///x.py", 2)) == 2
        assert tracker.get_recent_context_files("file:///x.py", 0) == []


class TestDiffHistory:
    def test_records_unified_diff(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "a\n")
        tracker.update_document("file:///a.py", "/a.py", "ab\n")

        history = tracker.get_edit_diff_history()

        assert len(history) == 1
        assert history[0].filepath == "/a.py"
        assert "-a\n" in history[0].diff
        assert "+ab\n" in history[0].diff

    def test_no_record_for_identical_text(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "a")
        tracker.update_document("file:///a.py", "/a.py", "a")
        assert tracker.get_edit_diff_history() == []

    def test_bounded(self, clock):
        tracker = DocumentTracker(max_diff_history=3, clock=clock)
        tracker.open_document("file:///a.py", "/a.py", "0")
        for i in range(1, 6):
            tracker.update_document("file:///a.py", "/a.py", str(i))

        history = tracker.get_edit_diff_history()
        assert len(history) == 3
        assert "+5" in history[-1].diff

    def test_unified_diff_empty_when_equal(self):
        assert unified_diff("/a.py", "x", "x") == ""


class TestUserActions:
    def test_insert_char(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "a")
        tracker.update_document("file:///a.py", "/a.py", "ab", [_change((0, 1), (0, 1), "b")])

        actions = tracker.get_user_actions("/a.py")

        assert len(actions) == 1
        assert actions[0].action_type is UserActionType.INSERT_CHAR
        assert actions[0].offset == 1
        assert actions[0].line_number == 0

    def test_actions_scoped_by_file(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "a")
        tracker.update_document("file:///a.py", "/a.py", "ab", [_change((0, 1), (0, 1), "b")])
        assert tracker.get_user_actions("/other.py") == []

    def test_sequential_changes_use_running_text(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "ab\ncd")
        changes = [
            _change((0, 0), (1, 0), ""),  # delete "ab\n"
            _change((0, 2), (0, 2), "e"),  # append to "cd"
        ]
        tracker.update_document("file:///a.py", "/a.py", "cde", changes)

        actions = tracker.get_user_actions("/a.py")

        assert [a.action_type for a in actions] == [
            UserActionType.DELETE_SELECTION,
            UserActionType.INSERT_CHAR,
        ]
        assert actions[1].offset == 2

    def test_bounded_per_file(self, clock):
        tracker = DocumentTracker(max_user_actions=2, clock=clock)
        tracker.open_document("file:///a.py", "/a.py", "")
        text = ""
        for ch in "xyz":
            change = _change((0, len(text)), (0, len(text)), ch)
            text += ch
            tracker.update_document("file:///a.py", "/a.py", text, [change])

        actions = tracker.get_user_actions("/a.py")
        assert [a.offset for a in actions] == [1, 2]

    def test_offsets_after_astral_characters(self, tracker):
        tracker.open_document("file:///a.py", "/a.py", "\U0001F600\n\x0cb")
        tracker.update_document(
            "file:///a.py", "/a.py", "\U0001F600x\n\x0cb", [_change((0, 2), (0, 2), "x")]
        )
        tracker.update_document(
            "file:///a.py", "/a.py", "\U0001F600x\n\x0c", [_change((1, 1), (1, 2), "")]
        )

        actions = tracker.get_user_actions("/a.py")

        assert [(a.action_type, a.line_number, a.offset) for a in actions] == [
            (UserActionType.INSERT_CHAR, 0, 1),
            (UserActionType.DELETE_CHAR, 1, 4),
        ]


class TestClassifyChange:
    @pytest.mark.parametrize(
        "text, start, end, inserted, expected",
        [
            ("abc", (0, 1), (0, 1), "x", UserActionType.INSERT_CHAR),
            ("abc", (0, 1), (0, 1), "xyz", UserActionType.INSERT_SELECTION),
            ("abc", (0, 1), (0, 2), "", UserActionType.DELETE_CHAR),
            ("abc", (0, 0), (0, 3), "", UserActionType.DELETE_SELECTION),
            ("abc", (0, 0), (0, 1), "z", UserActionType.INSERT_SELECTION),
            ("abc", (0, 0), (0, 3), "z", UserActionType.DELETE_SELECTION),
        ],
    )
    def test_kinds(self, text, start, end, inserted, expected):
        action_type, _, _ = classify_change(_change(start, end, inserted), text)
        assert action_type is expected

    def test_full_document_change_not_classified(self):
        assert classify_change(SimpleNamespace(text="new"), "old") is None

    def test_empty_change_not_classified(self):
        assert classify_change(_change((0, 1), (0, 1), ""), "abc") is None


class TestApplyChange:
    def test_range_change(self):
        assert apply_change("hello world", _change((0, 6), (0, 11), "there")) == "hello there"

    def test_full_change(self):
        assert apply_change("old", SimpleNamespace(text="new")) == "new"

    def test_form_feed_does_not_split_lines(self):
        text = "a\x0cb\nc"
        assert apply_change(text, _change((1, 0), (1, 1), "C")) == "a\x0cb\nC"

    def test_utf16_ranges(self):
        text = "\U0001F600a"
        assert apply_change(text, _change((0, 2), (0, 3), "b")) == "\U0001F600b"

    def test_utf32_codec(self):
        codec = PositionCodec(encoding=PositionEncodingKind.Utf32)
        assert apply_change("\U0001F600a", _change((0, 1), (0, 2), "b"), codec) == "\U0001F600b"


def test_default_clock_is_wall_time():
    tracker = DocumentTracker()
    tracker.open_document("file:///a.py", "/a.py", "")
    assert tracker.get_recent_context_files("file:///b.py", 1)[0].mtime > 0


def test_fake_clock_advances():
    clock = FakeClock(start=0.0)
    clock.advance(2.5)
    assert clock() == 2.5
