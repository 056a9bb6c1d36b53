"""
dipsflame.core.stats - Per-frame time statistics over a profile group.

Aggregates the open/close events of every lane into one row per frame key:
how often the frame was entered, the time spent inside it (total) and the
time spent in it but outside its children (self). When a frame appears
nested inside itself, only the outermost occurrence counts toward total.

Classes:
    FrameStats: Aggregated timing of one frame

Functions:
    compute_frame_stats: Aggregate a ProfileGroup
    format_stats_table: Render stats as a text table
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from dipsflame.core.profile import OPEN, FrameInfo, ProfileGroup


@dataclass
class FrameStats:
    """Aggregated timing of one frame key across all lanes.

    Attributes:
        key: Frame key (``App-<appID>@<host>;<context>``)
        name: Frame display name
        file: Frame file/group label
        calls: Number of times the frame was entered
        total: Milliseconds spent inside the frame
        self_time: Milliseconds spent in the frame outside its children
        mean: Mean duration of one call in milliseconds
        max: Longest single call in milliseconds
    """
    key: str
    name: str
    file: str
    calls: int
    total: int
    self_time: int
    mean: float
    max: int


def compute_frame_stats(group: ProfileGroup) -> List[FrameStats]:
    """Aggregate frame timings over all profiles of a group.

    Args:
        group: Profile group produced by the importer

    Returns:
        One FrameStats per frame key, sorted by total time descending
    """
    key_ids: Dict[str, int] = {}
    infos: List[FrameInfo] = []

    frame_ids: List[int] = []
    durations: List[int] = []
    self_times: List[int] = []
    outermost: List[bool] = []

    for profile in group.profiles:
        # (frame id, opened at, time covered by children)
        stack: List[List[int]] = []
        open_count: Dict[int, int] = defaultdict(int)

        for event in profile.events:
            info = profile.frame_of(event)
            frame_id = key_ids.get(info.key)
            if frame_id is None:
                frame_id = key_ids[info.key] = len(infos)
                infos.append(info)

            if event.kind == OPEN:
                stack.append([frame_id, event.at, 0])
                open_count[frame_id] += 1
                continue

            frame_id, opened_at, children_time = stack.pop()
            duration = event.at - opened_at
            open_count[frame_id] -= 1
            if stack:
                stack[-1][2] += duration

            frame_ids.append(frame_id)
            durations.append(duration)
            self_times.append(duration - children_time)
            outermost.append(open_count[frame_id] == 0)

    if not infos:
        return []

    n = len(infos)
    ids = np.asarray(frame_ids, dtype=np.intp)
    dur = np.asarray(durations, dtype=np.int64)

    calls = np.bincount(ids, minlength=n)
    total = np.bincount(ids, weights=dur * np.asarray(outermost, dtype=np.int64), minlength=n)
    self_total = np.bincount(ids, weights=np.asarray(self_times, dtype=np.int64), minlength=n)
    summed = np.bincount(ids, weights=dur, minlength=n)
    longest = np.zeros(n, dtype=np.int64)
    np.maximum.at(longest, ids, dur)

    order = np.argsort(-total, kind="stable")

    return [
        FrameStats(
            key=infos[i].key,
            name=infos[i].name,
            file=infos[i].file,
            calls=int(calls[i]),
            total=int(total[i]),
            self_time=int(self_total[i]),
            mean=float(summed[i] / calls[i]) if calls[i] else 0.0,
            max=int(longest[i]),
        )
        for i in order
    ]


def format_stats_table(stats: List[FrameStats], limit: Optional[int] = None) -> str:
    """Render frame statistics as a fixed-width text table.

    Args:
        stats: Rows from compute_frame_stats
        limit: Show at most this many rows (all if None)

    Returns:
        The table as a string
    """
    rows = stats if limit is None else stats[:limit]
    header = f"{'total ms':>10} {'self ms':>10} {'calls':>7} {'mean ms':>10} {'max ms':>8}  frame"
    lines = [header, "-" * len(header)]
    for row in rows:
        lines.append(
            f"{row.total:>10} {row.self_time:>10} {row.calls:>7} "
            f"{row.mean:>10.1f} {row.max:>8}  {row.name} [{row.file}]"
        )
    return "\n".join(lines)
