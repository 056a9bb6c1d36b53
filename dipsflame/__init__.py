"""
dipsflame - DIPS profiling log import and flamegraph timeline reconstruction.

This package parses DIPS profiling logs (one line per method call, possibly
one log per service), rebuilds the call trees, aligns the logs on a common
time origin and lays the trees out as non-overlapping timelines that
flamegraph viewers such as speedscope can render.

Example:
    >>> import asyncio
    >>> from dipsflame import FileDataSource, import_dips_profiling
    >>> group = asyncio.run(import_dips_profiling(FileDataSource("app.log")))
    >>> print([profile.name for profile in group.profiles])
"""

__version__ = "0.1.0"

from dipsflame.core.parser import CallRecord, LogSource, DipsLogParser, is_dips_profiling
from dipsflame.core.profile import Profile, ProfileGroup
from dipsflame.core.sources import FileDataSource, TextDataSource, MultiFileDataSource
from dipsflame.core.importer import import_dips_profiling, import_dips_profiling_texts
from dipsflame.core.stats import compute_frame_stats

__all__ = [
    "CallRecord",
    "LogSource",
    "DipsLogParser",
    "is_dips_profiling",
    "Profile",
    "ProfileGroup",
    "FileDataSource",
    "TextDataSource",
    "MultiFileDataSource",
    "import_dips_profiling",
    "import_dips_profiling_texts",
    "compute_frame_stats",
]
