"""
dipsflame.core.profile - Evented call-tree profiles and their builder.

A profile is an ordered sequence of open/close frame events with
millisecond timestamps. The builder enforces the invariants a flamegraph
viewer relies on: event times never decrease and frames close in the
reverse order they were opened.

Classes:
    FrameInfo: Identity and labels of one frame
    FrameEvent: One open or close event
    Profile: Immutable evented profile
    ProfileGroup: Named set of profiles with an initially shown profile
    CallTreeProfileBuilder: Builds a Profile from enter/leave calls
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from dipsflame.core.errors import ProfileBuildError

OPEN = "O"
CLOSE = "C"


@dataclass(frozen=True)
class FrameInfo:
    """Identity and labels of one frame.

    Attributes:
        key: Grouping key; frames with equal keys are the same frame
        name: Display name
        file: File/group label shown next to the name
    """
    key: str
    name: str
    file: str = ""


@dataclass(frozen=True)
class FrameEvent:
    """One open ("O") or close ("C") event of a frame."""
    kind: str
    at: int
    frame: int


@dataclass(frozen=True)
class Profile:
    """Immutable evented profile.

    Attributes:
        name: Profile name (e.g. "Group 1")
        start_value: Start of the profile's time range in milliseconds
        end_value: End of the profile's time range in milliseconds
        frames: Distinct frames; events refer to them by index
        events: Open/close events in emission order
    """
    name: str
    start_value: int
    end_value: int
    frames: Tuple[FrameInfo, ...]
    events: Tuple[FrameEvent, ...]

    @property
    def total_weight(self) -> int:
        """Length of the profile's time range."""
        return self.end_value - self.start_value

    def frame_of(self, event: FrameEvent) -> FrameInfo:
        """Get the frame an event refers to."""
        return self.frames[event.frame]


@dataclass
class ProfileGroup:
    """Named set of independent profiles.

    Attributes:
        name: Group name
        index_to_view: Index of the profile shown first
        profiles: Profiles in display order
    """
    name: str
    index_to_view: int = 0
    profiles: List[Profile] = field(default_factory=list)


class CallTreeProfileBuilder:
    """Builds a Profile from nested enter/leave calls.

    Example:
        >>> builder = CallTreeProfileBuilder(value_width=100)
        >>> frame = FrameInfo(key="a", name="a")
        >>> builder.enter_frame(frame, 0)
        >>> builder.leave_frame(frame, 40)
        >>> profile = builder.build()
    """

    def __init__(self, value_width: int = 0) -> None:
        self.name = ""
        self.value_width = value_width
        self._frames: List[FrameInfo] = []
        self._frame_index: Dict[str, int] = {}
        self._events: List[FrameEvent] = []
        self._stack: List[int] = []
        self._last_value = 0

    def set_name(self, name: str) -> None:
        self.name = name

    @property
    def depth(self) -> int:
        """Number of frames currently open."""
        return len(self._stack)

    def _frame(self, frame: FrameInfo) -> int:
        index = self._frame_index.get(frame.key)
        if index is None:
            index = len(self._frames)
            self._frames.append(frame)
            self._frame_index[frame.key] = index
        return index

    def _check_order(self, value: int) -> None:
        if value < self._last_value:
            raise ProfileBuildError(
                "Samples must be provided in increasing order of cumulative value. "
                f"Last sample was {self._last_value}, this sample was {value}"
            )

    def enter_frame(self, frame: FrameInfo, value: int) -> None:
        """Open ``frame`` at time ``value``.

        Raises:
            ProfileBuildError: If ``value`` is before the previous event
        """
        self._check_order(value)
        index = self._frame(frame)
        self._events.append(FrameEvent(OPEN, value, index))
        self._stack.append(index)
        self._last_value = value

    def leave_frame(self, frame: FrameInfo, value: int) -> None:
        """Close ``frame`` at time ``value``.

        Raises:
            ProfileBuildError: If ``value`` is before the previous event or
                ``frame`` is not the innermost open frame
        """
        self._check_order(value)
        if not self._stack:
            raise ProfileBuildError(f"Tried to leave frame {frame.name!r} with no open frames")
        index = self._frame_index.get(frame.key)
        top = self._stack[-1]
        if index != top:
            raise ProfileBuildError(
                f"Tried to leave frame {frame.name!r} while frame "
                f"{self._frames[top].name!r} was at the top"
            )
        self._events.append(FrameEvent(CLOSE, value, index))
        self._stack.pop()
        self._last_value = value

    def build(self) -> Profile:
        """Produce the immutable Profile.

        Raises:
            ProfileBuildError: If frames are still open
        """
        if self._stack:
            raise ProfileBuildError(
                f"Cannot build profile with {len(self._stack)} frames still open"
            )
        return Profile(
            name=self.name,
            start_value=0,
            end_value=max(self.value_width, self._last_value),
            frames=tuple(self._frames),
            events=tuple(self._events),
        )
