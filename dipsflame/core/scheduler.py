"""
dipsflame.core.scheduler - Assignment of top-level calls to lanes.

A flamegraph timeline shows one call at a time, but top-level calls can
legitimately overlap (parallel requests). Each top-level call is put in the
first lane whose last event is not after the call's start; when no lane
qualifies a new one is opened. This is first-fit interval colouring: not
minimal for adversarial orderings, adequate for calls that arrive roughly in
chronological order.

Classes:
    Lane: Profile builder plus the time of its last emitted event
    LaneScheduler: First-fit lane assignment
"""

from __future__ import annotations

import logging
from typing import List

from dipsflame.core.parser import CallRecord
from dipsflame.core.profile import CallTreeProfileBuilder, FrameInfo, Profile

logger = logging.getLogger(__name__)


class Lane:
    """One timeline of non-overlapping calls.

    Wraps a CallTreeProfileBuilder and records the time of every event it
    forwards in ``last_event_at``.

    Attributes:
        builder: Profile builder receiving the events
        last_event_at: Time of the most recent enter or leave event
    """

    def __init__(self, name: str, width: int) -> None:
        self.builder = CallTreeProfileBuilder(width)
        self.builder.set_name(name)
        self.last_event_at = 0

    @property
    def name(self) -> str:
        return self.builder.name

    def enter_frame(self, frame: FrameInfo, value: int) -> None:
        self.last_event_at = value
        self.builder.enter_frame(frame, value)

    def leave_frame(self, frame: FrameInfo, value: int) -> None:
        self.last_event_at = value
        self.builder.leave_frame(frame, value)

    def is_free_at(self, value: int) -> bool:
        """Check whether a call starting at ``value`` fits after the last event."""
        return self.last_event_at <= value

    def build(self) -> Profile:
        return self.builder.build()


class LaneScheduler:
    """First-fit assignment of top-level calls to lanes.

    Attributes:
        width: Time range of every lane in milliseconds
        lanes: Lanes in creation order
    """

    def __init__(self, width: int) -> None:
        self.width = width
        self.lanes: List[Lane] = []

    def lane_for(self, call: CallRecord) -> Lane:
        """Get the first lane free at the call's start, opening one if needed."""
        for lane in self.lanes:
            if lane.is_free_at(call.start_time):
                return lane

        lane = Lane(f"Group {len(self.lanes) + 1}", self.width)
        self.lanes.append(lane)
        logger.debug("Opened %s for call %s at %d", lane.name, call.call_id, call.start_time)
        return lane

    def build(self) -> List[Profile]:
        """Build one profile per lane, in creation order."""
        return [lane.build() for lane in self.lanes]
