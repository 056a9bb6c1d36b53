"""
Unit tests for dipsflame.core.stats module.
"""

from pathlib import Path

import pytest

from dipsflame.core.importer import import_dips_profiling_texts
from dipsflame.core.parser import DipsLogParser
from dipsflame.core.profile import CallTreeProfileBuilder, FrameInfo, ProfileGroup
from dipsflame.core.stats import compute_frame_stats, format_stats_table


@pytest.fixture
def simple_group(fixtures_dir: Path, utc_parser: DipsLogParser) -> ProfileGroup:
    text = (fixtures_dir / "simple-profiling.log").read_bytes().decode("utf-8")
    return import_dips_profiling_texts([("simple-profiling.log", text)], parser=utc_parser)


class TestComputeFrameStats:
    """Tests for compute_frame_stats."""

    def test_sorted_by_total(self, simple_group: ProfileGroup) -> None:
        stats = compute_frame_stats(simple_group)
        assert [(s.name, s.total) for s in stats] == [
            ("Frontend.HandleRequest", 120),
            ("Frontend.Poll", 60),
            ("Service.SaveNote", 40),
            ("Service.LoadPatient", 30),
            ("Db.Query", 10),
        ]

    def test_aggregates_across_calls(self, simple_group: ProfileGroup) -> None:
        handle = compute_frame_stats(simple_group)[0]
        assert handle.key == "App-7@HOSTA;Frontend.HandleRequest"
        assert handle.file == "App-7@HOSTA"
        assert handle.calls == 2
        assert handle.self_time == 50
        assert handle.mean == pytest.approx(60.0)
        assert handle.max == 100

    def test_self_time_excludes_children(self, simple_group: ProfileGroup) -> None:
        by_name = {s.name: s for s in compute_frame_stats(simple_group)}
        assert by_name["Service.LoadPatient"].self_time == 20
        assert by_name["Db.Query"].self_time == 10

    def test_self_times_add_up_to_covered_time(self, simple_group: ProfileGroup) -> None:
        stats = compute_frame_stats(simple_group)
        # lane 1 covers [0,100] and [200,220], lane 2 covers [50,110]
        assert sum(s.self_time for s in stats) == 100 + 20 + 60

    def test_self_time_never_exceeds_total(self, fixtures_dir: Path, utc_parser: DipsLogParser) -> None:
        texts = [
            (name, (fixtures_dir / name).read_bytes().decode("utf-8"))
            for name in ("frontend-profiling.log", "backend-profiling.log")
        ]
        group = import_dips_profiling_texts(texts, parser=utc_parser)
        for row in compute_frame_stats(group):
            assert 0 <= row.self_time <= row.total <= row.calls * row.max

    def test_recursive_frame_counted_once(self) -> None:
        frame = FrameInfo(key="App-1@H;Recurse", name="Recurse", file="App-1@H")
        builder = CallTreeProfileBuilder(value_width=10)
        builder.enter_frame(frame, 0)
        builder.enter_frame(frame, 2)
        builder.leave_frame(frame, 6)
        builder.leave_frame(frame, 10)
        group = ProfileGroup(name="g", profiles=[builder.build()])

        (stats,) = compute_frame_stats(group)
        assert stats.calls == 2
        assert stats.total == 10
        assert stats.self_time == 10
        assert stats.max == 10

    def test_empty_group(self) -> None:
        assert compute_frame_stats(ProfileGroup(name="g")) == []


class TestFormatStatsTable:
    """Tests for format_stats_table."""

    def test_header_and_rows(self, simple_group: ProfileGroup) -> None:
        lines = format_stats_table(compute_frame_stats(simple_group)).split("\n")
        assert "total ms" in lines[0]
        assert lines[0].endswith("frame")
        assert set(lines[1]) == {"-"}
        assert len(lines) == 2 + 5
        assert lines[2].endswith("Frontend.HandleRequest [App-7@HOSTA]")

    def test_limit(self, simple_group: ProfileGroup) -> None:
        table = format_stats_table(compute_frame_stats(simple_group), limit=2)
        assert len(table.split("\n")) == 4
        assert "Service.SaveNote" not in table
