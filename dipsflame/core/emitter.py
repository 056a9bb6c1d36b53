"""
dipsflame.core.emitter - Depth-first emission of call subtrees into lanes.

Log timestamps and elapsed times are rounded to whole milliseconds and taken
on different clocks, so a child can appear to start before its parent, end
after it, or overlap its previous sibling by a millisecond. Every frame is
clamped into the interval left by its lane's last event and its container's
end before it is emitted:

    start = clamp(call.start_time, lane.last_event_at, parent_end)
    end   = clamp(start + call.elapsed, start, parent_end)
"""

from __future__ import annotations

import logging
from typing import Any, List

from dipsflame.core.errors import FrameEmissionError, ProfileBuildError
from dipsflame.core.graph import CallGraph
from dipsflame.core.parser import CallRecord
from dipsflame.core.profile import FrameInfo
from dipsflame.core.scheduler import Lane

logger = logging.getLogger(__name__)


def adjust_to_interval(value: int, low: int, high: int) -> int:
    """Clamp ``value`` to ``[low, high]``, checking ``low`` first."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def frame_info_for(call: CallRecord) -> FrameInfo:
    """Get the frame identity and labels for a call."""
    return FrameInfo(key=call.frame_key, name=call.context, file=call.app_label)


class FrameEmitter:
    """Emits the subtree of a call as nested enter/leave events.

    Example:
        >>> emitter = FrameEmitter(graph)
        >>> lane = scheduler.lane_for(graph.records[i])
        >>> emitter.emit(i, lane, width)
    """

    def __init__(self, graph: CallGraph) -> None:
        self.graph = graph

    def emit(self, index: int, lane: Lane, parent_end: int) -> None:
        """Emit the call at ``index`` and all its descendants into ``lane``.

        The subtree is walked with an explicit stack, so call chains deeper
        than the interpreter recursion limit are emitted as well.

        Args:
            index: Node index of the call in the graph
            lane: Lane receiving the events
            parent_end: Clamped end of the containing frame, or the lane
                width for top-level calls

        Raises:
            FrameEmissionError: If the lane's builder rejects an event; the
                error names the call whose event was rejected
        """
        # entries are [index, frame, clamped end, next child position]
        stack: List[List[Any]] = [self._enter(index, lane, parent_end)]

        while stack:
            entry = stack[-1]
            children = self.graph.children[entry[0]]

            if entry[3] < len(children):
                child = children[entry[3]]
                entry[3] += 1
                stack.append(self._enter(child, lane, entry[2]))
                continue

            stack.pop()
            self._leave(entry[0], entry[1], entry[2], lane)

    def _enter(self, index: int, lane: Lane, parent_end: int) -> List[Any]:
        call = self.graph.records[index]
        frame = frame_info_for(call)

        start = adjust_to_interval(call.start_time, lane.last_event_at, parent_end)
        end = adjust_to_interval(start + call.elapsed, start, parent_end)

        if start != call.start_time or end != call.end_time:
            logger.debug(
                "Clamped call %s from [%d, %d] to [%d, %d]",
                call.call_id,
                call.start_time,
                call.end_time,
                start,
                end,
            )

        try:
            lane.enter_frame(frame, start)
        except ProfileBuildError as e:
            raise _emission_error(e, call) from e

        return [index, frame, end, 0]

    def _leave(self, index: int, frame: FrameInfo, end: int, lane: Lane) -> None:
        try:
            lane.leave_frame(frame, end)
        except ProfileBuildError as e:
            raise _emission_error(e, self.graph.records[index]) from e


def _emission_error(error: ProfileBuildError, call: CallRecord) -> FrameEmissionError:
    return FrameEmissionError(
        f"{error}\nError at CallID: {call.call_id}", call_id=call.call_id
    )
