"""
Reporting for selection runs.

- TraceRenderer: prints trace events as the search runs.
- PathReporter: writes the selection path and the final model to disk.
"""

from .trace_renderer import TraceRenderer, format_candidates, format_value
from .path_reporter import PathReporter, render_path

__all__ = ['TraceRenderer', 'PathReporter', 'render_path', 'format_candidates', 'format_value']
