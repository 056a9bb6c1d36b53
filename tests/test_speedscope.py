"""
Unit tests for dipsflame.exporters.speedscope module.

Tests cover the speedscope JSON document, folded stack output and
writing files.
"""

import json
from pathlib import Path

import pytest

from dipsflame import __version__
from dipsflame.core.importer import import_dips_profiling_texts
from dipsflame.core.parser import DipsLogParser
from dipsflame.core.profile import CallTreeProfileBuilder, FrameInfo, ProfileGroup
from dipsflame.exporters.speedscope import (
    SPEEDSCOPE_SCHEMA,
    to_folded,
    to_speedscope,
    write_speedscope,
)


@pytest.fixture
def simple_group(fixtures_dir: Path, utc_parser: DipsLogParser) -> ProfileGroup:
    text = (fixtures_dir / "simple-profiling.log").read_bytes().decode("utf-8")
    return import_dips_profiling_texts([("simple-profiling.log", text)], parser=utc_parser)


class TestToSpeedscope:
    """Tests for the speedscope document."""

    def test_top_level_fields(self, simple_group: ProfileGroup) -> None:
        doc = to_speedscope(simple_group)
        assert doc["$schema"] == SPEEDSCOPE_SCHEMA
        assert doc["name"] == "simple-profiling.log"
        assert doc["activeProfileIndex"] == 0
        assert doc["exporter"] == f"dipsflame@{__version__}"

    def test_one_evented_profile_per_lane(self, simple_group: ProfileGroup) -> None:
        profiles = to_speedscope(simple_group)["profiles"]
        assert [p["name"] for p in profiles] == ["Group 1", "Group 2"]
        for profile in profiles:
            assert profile["type"] == "evented"
            assert profile["unit"] == "milliseconds"
            assert profile["startValue"] == 0
            assert profile["endValue"] == 220

    def test_frames_shared_across_lanes(self, simple_group: ProfileGroup) -> None:
        doc = to_speedscope(simple_group)
        frames = doc["shared"]["frames"]
        assert len(frames) == 5
        assert frames[0] == {"name": "Frontend.HandleRequest", "file": "App-7@HOSTA"}

        poll = frames.index({"name": "Frontend.Poll", "file": "App-7@HOSTA"})
        assert doc["profiles"][1]["events"] == [
            {"type": "O", "frame": poll, "at": 50},
            {"type": "C", "frame": poll, "at": 110},
        ]

    def test_event_frames_resolve(self, simple_group: ProfileGroup) -> None:
        doc = to_speedscope(simple_group)
        names = [doc["shared"]["frames"][e["frame"]]["name"] for e in doc["profiles"][0]["events"]]
        assert names[:3] == ["Frontend.HandleRequest", "Service.LoadPatient", "Db.Query"]

    def test_frame_without_file(self) -> None:
        builder = CallTreeProfileBuilder()
        frame = FrameInfo(key="k", name="bare")
        builder.enter_frame(frame, 0)
        builder.leave_frame(frame, 1)
        doc = to_speedscope(ProfileGroup(name="g", profiles=[builder.build()]))
        assert doc["shared"]["frames"] == [{"name": "bare"}]

    def test_json_serializable(self, simple_group: ProfileGroup) -> None:
        doc = to_speedscope(simple_group)
        assert json.loads(json.dumps(doc)) == doc


class TestToFolded:
    """Tests for folded stack output."""

    def test_self_weighted_lines(self, simple_group: ProfileGroup) -> None:
        assert to_folded(simple_group).split("\n") == [
            "Frontend.HandleRequest;Service.LoadPatient;Db.Query 10",
            "Frontend.HandleRequest;Service.LoadPatient 20",
            "Frontend.HandleRequest;Service.SaveNote 40",
            "Frontend.HandleRequest 50",
            "Frontend.Poll 60",
        ]

    def test_zero_self_time_omitted(self) -> None:
        outer = FrameInfo(key="outer", name="outer")
        inner = FrameInfo(key="inner", name="inner")
        builder = CallTreeProfileBuilder()
        builder.enter_frame(outer, 0)
        builder.enter_frame(inner, 0)
        builder.leave_frame(inner, 5)
        builder.leave_frame(outer, 5)
        assert to_folded(ProfileGroup(name="g", profiles=[builder.build()])) == "outer;inner 5"

    def test_empty_group(self) -> None:
        assert to_folded(ProfileGroup(name="g")) == ""


class TestWriteSpeedscope:
    """Tests for write_speedscope."""

    def test_writes_json(self, simple_group: ProfileGroup, tmp_path: Path) -> None:
        path = write_speedscope(simple_group, tmp_path / "out" / "profile.speedscope.json")
        assert path.exists()
        with open(path, encoding="utf-8") as f:
            assert json.load(f) == to_speedscope(simple_group)
