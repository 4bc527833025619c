"""Convert a parsed CUE sheet into per-track time windows"""
import math

from .cue_parser import parse_cue_text
from .models import TrackSheetRow, TrackSplitPlan
from ..utils.encoding import resolve_cue_text


FRAMES_PER_SECOND = 75


def cue_index_to_seconds(index):
    """
    Convert an ``MM:SS:FF`` CUE index to seconds (75 frames per second).

    A malformed index (missing, non-numeric or negative component) maps to 0,
    i.e. the start of the file.
    """
    parts = index.split(":")
    if len(parts) < 3:
        return 0

    try:
        minutes, seconds, frames = (float(p) for p in parts[:3])
    except ValueError:
        return 0

    values = (minutes, seconds, frames)
    if any(math.isnan(v) or math.isinf(v) or v < 0 for v in values):
        return 0

    return minutes * 60 + seconds + frames / FRAMES_PER_SECOND


def seconds_to_ffmpeg_time(sec):
    """Format seconds as ``HH:MM:SS.mmm`` for ffmpeg's -ss/-t arguments"""
    hours = math.floor(sec / 3600)
    minutes = math.floor((sec % 3600) / 60)
    seconds = sec - hours * 3600 - minutes * 60

    return f"{hours:02d}:{minutes:02d}:{seconds:06.3f}"


def format_cue_time(seconds):
    """Format seconds as a frame-rounded ``MM:SS:FF`` string"""
    total_frames = math.floor(seconds * FRAMES_PER_SECOND + 0.5)

    minutes = total_frames // (FRAMES_PER_SECOND * 60)
    secs = (total_frames % (FRAMES_PER_SECOND * 60)) // FRAMES_PER_SECOND
    frames = total_frames % FRAMES_PER_SECOND

    return f"{minutes:02d}:{secs:02d}:{frames:02d}"


def build_split_plan(sheet, total_duration_seconds=None):
    """
    Build the ordered split plan for every track that has an INDEX 01.

    Tracks keep their CUE file order; the sheet is expected to list tracks
    in playback order, so the next entry's start is the current entry's end.
    The last track ends at the album duration, or has no end when the
    duration is unknown.

    Args:
        sheet: Parsed CueSheet
        total_duration_seconds: Album duration in seconds, if known

    Returns:
        List of TrackSplitPlan
    """
    tracks_with_index = [t for t in sheet.tracks if t.index]
    starts = [cue_index_to_seconds(t.index) for t in tracks_with_index]

    plan = []
    for idx, track in enumerate(tracks_with_index):
        start = starts[idx]
        if idx < len(starts) - 1:
            end = starts[idx + 1]
        else:
            end = total_duration_seconds

        duration = max(0, end - start) if end is not None else None

        plan.append(TrackSplitPlan(
            track=track.track,
            title=track.title,
            index=track.index,
            performer=track.performer,
            date=track.date,
            genre=track.genre,
            start_seconds=start,
            end_seconds=end,
            start_time=seconds_to_ffmpeg_time(start),
            duration_seconds=duration,
            duration_time=seconds_to_ffmpeg_time(duration) if duration is not None else None,
        ))

    return plan


def build_track_sheet(sheet, plan):
    """Project a split plan into display rows, resolving album-level performers"""
    rows = []
    for entry in plan:
        duration = entry.duration_seconds or 0
        rows.append(TrackSheetRow(
            no=entry.track,
            title=entry.title or f"Track {entry.track}",
            performer=entry.performer or sheet.performer,
            index_raw=entry.index or "",
            start_seconds=entry.start_seconds,
            duration_seconds=duration,
            duration=format_cue_time(duration),
        ))
    return rows


def convert_cue_to_track_sheet(cue_data, total_duration_seconds=None):
    """
    Parse, plan and project a CUE sheet in one step.

    Args:
        cue_data: Raw CUE bytes or already decoded text
        total_duration_seconds: Album duration in seconds, if known

    Returns:
        Tuple of (CueSheet, list of TrackSheetRow, list of TrackSplitPlan)
    """
    if isinstance(cue_data, bytes):
        cue_data = resolve_cue_text(cue_data)

    sheet = parse_cue_text(cue_data)
    plan = build_split_plan(sheet, total_duration_seconds)
    return sheet, build_track_sheet(sheet, plan), plan
