"""Cross-check a split plan against the measured audio duration"""
from .models import CueValidationResult


DEFAULT_TOLERANCE_SECONDS = 2
DEFAULT_MIN_TRACK_SECONDS = 1


def validate_cue_against_duration(split_plan, audio_duration_seconds,
                                  tolerance_seconds=DEFAULT_TOLERANCE_SECONDS,
                                  min_track_seconds=DEFAULT_MIN_TRACK_SECONDS):
    """
    Validate a split plan against the real audio duration.

    Every problem is collected; nothing is raised. Extraction must only run
    when the returned result is ok.

    Args:
        split_plan: List of TrackSplitPlan
        audio_duration_seconds: Duration measured from the audio file
        tolerance_seconds: Allowed difference between the CUE end and the audio end
        min_track_seconds: Shortest acceptable track duration

    Returns:
        CueValidationResult
    """
    errors = []

    if not split_plan:
        errors.append("CUE does not have a valid track.")
        return CueValidationResult(ok=False, errors=errors)

    last = split_plan[-1]

    if last.end_seconds is None:
        errors.append(
            "The last track does not have an end time (perhaps the audio duration is unknown)."
        )
    else:
        diff = abs(audio_duration_seconds - last.end_seconds)
        if diff > tolerance_seconds:
            errors.append(
                f"Audio duration ({audio_duration_seconds:.2f}s) not compatible with CUE "
                f"(≈{last.end_seconds:.2f}s), difference {diff:.2f}s."
            )

    for entry in split_plan:
        if entry.duration_seconds is not None and entry.duration_seconds < min_track_seconds:
            errors.append(
                f"Track {entry.track} has a very short duration ({entry.duration_seconds:.2f}s)."
            )
        if entry.start_seconds >= audio_duration_seconds - tolerance_seconds:
            errors.append(
                f"Track {entry.track} starts at or after the end of the audio file "
                f"(start {entry.start_seconds:.2f}s, audio duration {audio_duration_seconds:.2f}s)."
            )

    return CueValidationResult(ok=not errors, errors=errors)
