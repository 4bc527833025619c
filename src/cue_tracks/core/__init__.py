"""Core functionality modules"""

from .cue_parser import parse_cue_text
from .split_planner import (
    build_split_plan,
    build_track_sheet,
    convert_cue_to_track_sheet,
    cue_index_to_seconds,
    format_cue_time,
    seconds_to_ffmpeg_time,
)
from .plan_validator import validate_cue_against_duration
from .track_extractor import split_audio_to_tracks
from .transcoder import load_engine
from .file_finder import find_cue_image_pairs, find_album_cover
from .job_orchestrator import split_and_encode

__all__ = [
    "parse_cue_text",
    "build_split_plan",
    "build_track_sheet",
    "convert_cue_to_track_sheet",
    "cue_index_to_seconds",
    "format_cue_time",
    "seconds_to_ffmpeg_time",
    "validate_cue_against_duration",
    "split_audio_to_tracks",
    "load_engine",
    "find_cue_image_pairs",
    "find_album_cover",
    "split_and_encode",
]
