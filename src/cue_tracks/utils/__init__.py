"""Utility functions and helpers"""

from .helpers import safe_print, run_command, sanitize_file_name, normalize_title
from .encoding import resolve_cue_text, read_cue_file

__all__ = [
    "safe_print",
    "run_command",
    "sanitize_file_name",
    "normalize_title",
    "resolve_cue_text",
    "read_cue_file",
]
