"""
dipsflame.core - Core modules for DIPS profiling log reconstruction.

This subpackage contains the main functionality:
- parser: CallRecord and LogSource dataclasses, DipsLogParser
- graph: CallGraph, linking records by parent call id
- reconciler: primary source selection for multi-log imports
- clock: common time origin across logs
- scheduler: Lane and first-fit LaneScheduler
- emitter: FrameEmitter with interval clamping
- profile: evented Profile, ProfileGroup and CallTreeProfileBuilder
- sources: data sources the importer reads text from
- importer: the end-to-end import pipeline
- stats: per-frame timing statistics
"""

from dipsflame.core.errors import (
    DipsflameError,
    DipsFormatError,
    CallGraphError,
    ProfileBuildError,
    FrameEmissionError,
    UnrecognizedFormatError,
)
from dipsflame.core.parser import CallRecord, LogSource, DipsLogParser, is_dips_profiling
from dipsflame.core.graph import CallGraph, build_call_graph
from dipsflame.core.profile import FrameInfo, Profile, ProfileGroup, CallTreeProfileBuilder
from dipsflame.core.scheduler import Lane, LaneScheduler
from dipsflame.core.emitter import FrameEmitter
from dipsflame.core.sources import FileDataSource, TextDataSource, MultiFileDataSource
from dipsflame.core.importer import (
    build_profile_group,
    import_dips_profiling,
    import_dips_profiling_texts,
)
from dipsflame.core.stats import FrameStats, compute_frame_stats

__all__ = [
    "DipsflameError",
    "DipsFormatError",
    "CallGraphError",
    "ProfileBuildError",
    "FrameEmissionError",
    "UnrecognizedFormatError",
    "CallRecord",
    "LogSource",
    "DipsLogParser",
    "is_dips_profiling",
    "CallGraph",
    "build_call_graph",
    "FrameInfo",
    "Profile",
    "ProfileGroup",
    "CallTreeProfileBuilder",
    "Lane",
    "LaneScheduler",
    "FrameEmitter",
    "FileDataSource",
    "TextDataSource",
    "MultiFileDataSource",
    "build_profile_group",
    "import_dips_profiling",
    "import_dips_profiling_texts",
    "FrameStats",
    "compute_frame_stats",
]
