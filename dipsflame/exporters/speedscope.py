"""
dipsflame.exporters.speedscope - Profile group writers for flamegraph viewers.

Two output formats are supported:

- speedscope's JSON file format, with one evented profile per lane. Load the
  file at https://www.speedscope.app or with the speedscope CLI.
- FlameGraph folded stacks (``root;child;leaf <ms>``), self-time weighted
  and aggregated across lanes, for flamegraph.pl and similar tools.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Union

from dipsflame import __version__
from dipsflame.core.profile import OPEN, ProfileGroup

logger = logging.getLogger(__name__)

SPEEDSCOPE_SCHEMA = "https://www.speedscope.app/file-format-schema.json"


def to_speedscope(group: ProfileGroup) -> Dict[str, Any]:
    """Convert a profile group to a speedscope file document.

    Frames are shared across profiles and deduplicated by frame key.

    Args:
        group: Profile group to convert

    Returns:
        Dictionary ready for ``json.dump``
    """
    shared: List[Dict[str, str]] = []
    shared_index: Dict[str, int] = {}
    profiles: List[Dict[str, Any]] = []

    for profile in group.profiles:
        remap: List[int] = []
        for frame in profile.frames:
            index = shared_index.get(frame.key)
            if index is None:
                index = shared_index[frame.key] = len(shared)
                entry = {"name": frame.name}
                if frame.file:
                    entry["file"] = frame.file
                shared.append(entry)
            remap.append(index)

        profiles.append({
            "type": "evented",
            "name": profile.name,
            "unit": "milliseconds",
            "startValue": profile.start_value,
            "endValue": profile.end_value,
            "events": [
                {"type": event.kind, "frame": remap[event.frame], "at": event.at}
                for event in profile.events
            ],
        })

    return {
        "$schema": SPEEDSCOPE_SCHEMA,
        "shared": {"frames": shared},
        "profiles": profiles,
        "name": group.name,
        "activeProfileIndex": group.index_to_view,
        "exporter": f"dipsflame@{__version__}",
    }


def to_folded(group: ProfileGroup) -> str:
    """Convert a profile group to self-weighted folded stack lines.

    Args:
        group: Profile group to convert

    Returns:
        One ``frame;frame;frame <ms>`` line per distinct stack, in first-seen
        order; stacks with zero self time are omitted
    """
    weights: "OrderedDict[str, int]" = OrderedDict()

    for profile in group.profiles:
        # (frame name, opened at, time covered by children)
        stack: List[List[Any]] = []
        for event in profile.events:
            if event.kind == OPEN:
                stack.append([profile.frame_of(event).name, event.at, 0])
                continue

            path = ";".join(entry[0] for entry in stack)
            _, opened_at, children_time = stack.pop()
            duration = event.at - opened_at
            if stack:
                stack[-1][2] += duration

            self_time = duration - children_time
            if self_time > 0:
                weights[path] = weights.get(path, 0) + self_time

    return "\n".join(f"{path} {weight}" for path, weight in weights.items())


def write_speedscope(group: ProfileGroup, output_path: Union[str, Path]) -> Path:
    """Write a profile group as a speedscope JSON file.

    Args:
        group: Profile group to write
        output_path: Destination file; parent directories are created

    Returns:
        Path of the written file
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_speedscope(group), f)
    logger.info("Speedscope profile saved: %s", path)
    return path
