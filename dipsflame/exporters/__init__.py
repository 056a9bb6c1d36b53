"""
dipsflame.exporters - Writers for imported profiles and for DIPS logs.

This subpackage provides:
- speedscope: speedscope JSON and folded stack writers for ProfileGroups
- dips_exporter: OpenTelemetry SpanExporter writing DIPS profiling logs

Example:
    >>> from dipsflame.exporters import write_speedscope
    >>> write_speedscope(group, "profile.speedscope.json")
"""

from dipsflame.exporters.speedscope import to_folded, to_speedscope, write_speedscope
from dipsflame.exporters.dips_exporter import DipsLogExporter

__all__ = ["DipsLogExporter", "to_folded", "to_speedscope", "write_speedscope"]
