"""
Unit tests for dipsflame.core.emitter module.

Tests cover interval clamping, depth-first emission order, frame labels
and error annotation.
"""

from typing import List, Tuple

import pytest

from dipsflame.core.emitter import FrameEmitter, adjust_to_interval, frame_info_for
from dipsflame.core.errors import FrameEmissionError, ProfileBuildError
from dipsflame.core.graph import build_call_graph
from dipsflame.core.parser import CallRecord
from dipsflame.core.profile import FrameInfo
from dipsflame.core.scheduler import Lane


def _call(call_id: str, start: int, elapsed: int, parent: str = "", context: str = "") -> CallRecord:
    return CallRecord(
        context=context or call_id,
        call_id=call_id,
        parent_call_id=parent,
        root_call_id="r",
        thread_id=1,
        start_time=start,
        elapsed=elapsed,
        app_id="7",
        host="HOSTA",
    )


def _events(lane: Lane) -> List[Tuple[str, str, int]]:
    profile = lane.build()
    return [(e.kind, profile.frame_of(e).name, e.at) for e in profile.events]


class TestAdjustToInterval:
    """Tests for the clamp helper."""

    @pytest.mark.parametrize(
        "value, low, high, expected",
        [(5, 0, 10, 5), (-1, 0, 10, 0), (11, 0, 10, 10), (0, 0, 0, 0), (3, 5, 2, 5), (9, 5, 2, 2)],
    )
    def test_clamp(self, value: int, low: int, high: int, expected: int) -> None:
        assert adjust_to_interval(value, low, high) == expected


class TestFrameInfoFor:
    """Tests for frame labels."""

    def test_labels(self) -> None:
        info = frame_info_for(_call("c1", 0, 1, context="Db.Query"))
        assert info == FrameInfo(key="App-7@HOSTA;Db.Query", name="Db.Query", file="App-7@HOSTA")


class TestFrameEmitter:
    """Tests for depth-first emission with clamping."""

    def test_nested_emission_order(self) -> None:
        graph = build_call_graph([
            _call("c3", 15, 10, parent="c2"),
            _call("c2", 10, 30, parent="c1"),
            _call("c4", 50, 40, parent="c1"),
            _call("c1", 0, 100),
        ])
        lane = Lane("Group 1", 100)
        FrameEmitter(graph).emit(3, lane, 100)

        assert _events(lane) == [
            ("O", "c1", 0),
            ("O", "c2", 10),
            ("O", "c3", 15),
            ("C", "c3", 25),
            ("C", "c2", 40),
            ("O", "c4", 50),
            ("C", "c4", 90),
            ("C", "c1", 100),
        ]
        assert lane.last_event_at == 100

    def test_child_starting_before_parent_is_clamped(self) -> None:
        graph = build_call_graph([_call("p", 20, 15), _call("c", 19, 5, parent="p")])
        lane = Lane("Group 1", 35)
        FrameEmitter(graph).emit(0, lane, 35)
        assert _events(lane) == [("O", "p", 20), ("O", "c", 20), ("C", "c", 25), ("C", "p", 35)]

    def test_child_ending_after_parent_is_clamped(self) -> None:
        graph = build_call_graph([_call("p", 0, 10), _call("c", 5, 20, parent="p")])
        lane = Lane("Group 1", 10)
        FrameEmitter(graph).emit(0, lane, 10)
        assert _events(lane)[2] == ("C", "c", 10)

    def test_overlapping_siblings_are_clamped(self) -> None:
        # the second child's logged start lies before the first child's end
        graph = build_call_graph([
            _call("p", 0, 10),
            _call("a", 0, 10, parent="p"),
            _call("b", 9, 3, parent="p"),
        ])
        lane = Lane("Group 1", 10)
        FrameEmitter(graph).emit(0, lane, 10)
        assert _events(lane) == [
            ("O", "p", 0),
            ("O", "a", 0),
            ("C", "a", 10),
            ("O", "b", 10),
            ("C", "b", 10),
            ("C", "p", 10),
        ]

    def test_top_level_clamped_to_lane_cursor(self) -> None:
        graph = build_call_graph([_call("a", 0, 10), _call("b", 8, 10)])
        lane = Lane("Group 1", 20)
        emitter = FrameEmitter(graph)
        emitter.emit(0, lane, 20)
        emitter.emit(1, lane, 20)
        assert _events(lane)[2:] == [("O", "b", 10), ("C", "b", 20)]

    def test_top_level_clamped_to_width(self) -> None:
        graph = build_call_graph([_call("a", 0, 50)])
        lane = Lane("Group 1", 30)
        FrameEmitter(graph).emit(0, lane, 30)
        assert _events(lane)[-1] == ("C", "a", 30)

    def test_children_contained_in_parent(self) -> None:
        graph = build_call_graph([
            _call("p", 100, 50),
            _call("a", 90, 30, parent="p"),
            _call("b", 140, 30, parent="p"),
            _call("b1", 130, 100, parent="b"),
        ])
        lane = Lane("Group 1", 150)
        FrameEmitter(graph).emit(0, lane, 150)

        stack: List[Tuple[str, int]] = []
        intervals = {}
        for kind, name, at in _events(lane):
            if kind == "O":
                stack.append((name, at))
            else:
                opened_name, opened_at = stack.pop()
                assert opened_name == name
                assert at >= opened_at
                intervals[name] = (opened_at, at)

        for child, parent in (("a", "p"), ("b", "p"), ("b1", "b")):
            assert intervals[parent][0] <= intervals[child][0]
            assert intervals[child][1] <= intervals[parent][1]

    def test_rejection_names_call(self) -> None:
        graph = build_call_graph([_call("p", 0, 10)])
        lane = Lane("Group 1", 10)
        # the builder has seen a later event than the lane cursor knows about
        lane.builder.enter_frame(FrameInfo(key="stray", name="stray"), 5)

        with pytest.raises(FrameEmissionError, match="Error at CallID: p") as excinfo:
            FrameEmitter(graph).emit(0, lane, 10)
        assert excinfo.value.call_id == "p"
        assert isinstance(excinfo.value.__cause__, ProfileBuildError)

    def test_innermost_call_is_named(self) -> None:
        graph = build_call_graph([_call("p", 0, 10), _call("c", 2, 3, parent="p")])
        lane = Lane("Group 1", 10)
        emitter = FrameEmitter(graph)

        original_leave = lane.builder.leave_frame

        def reject_child(frame, value):
            if frame.name == "c":
                raise ProfileBuildError("rejected")
            original_leave(frame, value)

        lane.builder.leave_frame = reject_child
        with pytest.raises(FrameEmissionError) as excinfo:
            emitter.emit(0, lane, 10)
        assert excinfo.value.call_id == "c"
        assert str(excinfo.value) == "rejected\nError at CallID: c"

    def test_chain_deeper_than_recursion_limit(self) -> None:
        depth = 2500
        records = [_call("c0", 0, 2 * depth)]
        records += [_call(f"c{i}", i, 2 * (depth - i), parent=f"c{i - 1}") for i in range(1, depth)]
        lane = Lane("Group 1", 2 * depth)
        FrameEmitter(build_call_graph(records)).emit(0, lane, 2 * depth)

        events = _events(lane)
        assert len(events) == 2 * depth
        assert events[depth - 1] == ("O", f"c{depth - 1}", depth - 1)
        assert events[depth] == ("C", f"c{depth - 1}", depth + 1)
        assert events[-1] == ("C", "c0", 2 * depth)
