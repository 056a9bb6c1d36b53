"""
Shared fixtures for dipsflame tests.

Call lines are built with ``make_call_line``; ``at`` is a millisecond offset
from 2019-03-14 10:00:00.000 UTC, so tests parse with ``tz=timezone.utc``.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from dipsflame.core.parser import DipsLogParser

FIXTURES_DIR = Path(__file__).parent / "fixtures"
BASE_TIME = datetime(2019, 3, 14, 10, 0, 0, tzinfo=timezone.utc)
BASE_MS = int(BASE_TIME.timestamp()) * 1000


def make_call_line(
    call_id: str,
    parent: str = "",
    root: str = "",
    at: int = 0,
    elapsed: int = 10,
    context: str = "Op",
    app: str = "1",
    host: str = "H",
    thread: str = "1",
) -> str:
    """Build one 21-column DIPS call line."""
    moment = BASE_TIME + timedelta(milliseconds=at)
    timestamp = f"{moment:%Y%m%d%H%M%S}{moment.microsecond // 1000:03d}"
    cols = [
        "1", timestamp, "TEST", app, host, "0", thread, root or call_id,
        call_id, parent, "1", str(elapsed), "", context, "S",
    ]
    return ";".join(cols) + ";;;;;;"


def make_log(*lines: str) -> str:
    """Join call lines the way DIPS writes them."""
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the directory holding sample logs."""
    return FIXTURES_DIR


@pytest.fixture
def utc_parser() -> DipsLogParser:
    """Parser reading timestamps as UTC."""
    return DipsLogParser(tz=timezone.utc)


@pytest.fixture
def call_line() -> Callable[..., str]:
    """Return the call line builder."""
    return make_call_line
