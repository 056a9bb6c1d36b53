"""
dipsflame.core.sources - Data sources the importer reads log text from.

Classes:
    ProfileDataSource: Protocol for anything that can be read as text
    FileDataSource: Log file on disk
    TextDataSource: Log text already in memory
    MultiFileDataSource: Several sources imported together
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Protocol, Sequence, Union


class ProfileDataSource(Protocol):
    """Anything the importer can read log text from."""

    def name(self) -> str:
        ...

    async def read_as_text(self) -> str:
        ...


class FileDataSource:
    """Log file on disk, read on a worker thread."""

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def name(self) -> str:
        return self.path.name

    async def read_as_text(self) -> str:
        # newline="" keeps the \r\n line terminators the format relies on
        return await asyncio.to_thread(self._read)

    def _read(self) -> str:
        with open(self.path, "r", encoding=self.encoding, newline="") as f:
            return f.read()


class TextDataSource:
    """Log text already held in memory."""

    def __init__(self, name: str, text: str) -> None:
        self._name = name
        self.text = text

    def name(self) -> str:
        return self._name

    async def read_as_text(self) -> str:
        return self.text


class MultiFileDataSource:
    """Several sources describing one set of distributed transactions."""

    def __init__(self, data_sources: Sequence[ProfileDataSource]) -> None:
        self.data_sources: List[ProfileDataSource] = list(data_sources)

    def name(self) -> str:
        return ", ".join(source.name() for source in self.data_sources)

    async def read_as_text(self) -> str:
        raise NotImplementedError("read the individual data_sources instead")


def expand(data_source: ProfileDataSource) -> List[ProfileDataSource]:
    """Get the individual sources behind ``data_source``."""
    if isinstance(data_source, MultiFileDataSource):
        return list(data_source.data_sources)
    return [data_source]


async def read_all(data_sources: Sequence[ProfileDataSource]) -> List[str]:
    """Read all sources concurrently, preserving order."""
    return list(await asyncio.gather(*(source.read_as_text() for source in data_sources)))
