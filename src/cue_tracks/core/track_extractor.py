"""Per-job track extraction: CUE planning, ffmpeg splitting, tagging and packaging"""
import math
import os
import time

from .archive import ZipArchiver
from .cover import is_url, load_cover_bytes, shrink_image
from .cue_parser import parse_cue_text
from .errors import CuePlanError, OutputReadError, TrackSelectionError
from .models import AlbumInfo, SplitProgress, SplitResult, TrackOutput
from .plan_validator import validate_cue_against_duration
from .split_planner import build_split_plan, build_track_sheet
from ..utils.encoding import read_cue_file
from ..utils.helpers import normalize_title, sanitize_file_name


OUTPUT_EXT = "flac"
COVER_NAME = "cover.jpg"
INPUT_PREFIX = "src_"
OUTPUT_PREFIX = "out_"
COMPRESSION_LEVEL = "8"
TOLERANCE_SECONDS = 2
MIN_TRACK_SECONDS = 1

PHASE_PREPARE_INPUT = "prepare_input"
PHASE_PREPARE_COVER = "prepare_cover"
PHASE_ANALYZE_AUDIO = "analyze_audio"
PHASE_BUILD_PLAN = "build_plan"
PHASE_PROCESSING = "processing"
PHASE_ZIPPING = "zipping"
PHASE_DONE = "done"


def _pick(override, value):
    """Prefer a non-empty override over the CUE sheet value"""
    return override if override else value


def _input_name(source_path):
    """Workspace name of the source audio, kept apart from cover, temp and output names"""
    name = sanitize_file_name(os.path.basename(source_path))
    return f"{INPUT_PREFIX}{name or 'audio'}"


def track_file_name(track_no, title):
    """Output name of a track: zero-padded number and sanitized title"""
    safe_title = sanitize_file_name(title) or f"Track {track_no}"
    return f"{track_no:02d} - {safe_title}.{OUTPUT_EXT}"


def build_metadata_args(album, album_artist, track_artist, title, track_no,
                        total_tracks, date=None, genre=None):
    """
    Build ffmpeg ``-metadata`` arguments for one track.

    Empty album, artist, date and genre values are left out entirely; title
    and track number are always written.

    Returns:
        List of ffmpeg arguments
    """
    args = []

    if album:
        args += ["-metadata", f"album={album}"]
    if album_artist:
        args += ["-metadata", f"album_artist={album_artist}"]
    if track_artist:
        args += ["-metadata", f"artist={track_artist}"]
    if date:
        args += ["-metadata", f"date={date}"]
    if genre:
        args += ["-metadata", f"genre={genre}"]
    args += ["-metadata", f"title={title}"]
    args += ["-metadata", f"track={track_no}/{total_tracks}"]

    return args


def build_split_args(input_name, entry, metadata_args, output_name):
    """ffmpeg arguments extracting one plan entry to a freshly tagged FLAC"""
    args = ["-ss", entry.start_time, "-i", input_name]
    if entry.duration_time:
        args += ["-t", entry.duration_time]
    args += [
        "-vn",
        "-map_metadata", "-1",
        "-c:a", "flac",
        "-compression_level", COMPRESSION_LEVEL,
    ]
    args += metadata_args
    args.append(output_name)
    return args


def build_cover_args(audio_name, cover_name, output_name):
    """ffmpeg arguments attaching a cover image without re-encoding either stream"""
    return [
        "-i", audio_name,
        "-i", cover_name,
        "-map", "0:a", "-map", "1:v",
        "-c:a", "copy", "-c:v", "copy",
        "-disposition:v:0", "attached_pic",
        "-metadata:s:v", "title=Album cover",
        "-metadata:s:v", "comment=Cover (front)",
        output_name,
    ]


def select_tracks(split_plan, track_numbers):
    """
    Restrict the plan to the requested track numbers.

    Raises:
        TrackSelectionError: If none of the requested numbers are in the plan
    """
    if track_numbers is None:
        return list(split_plan)

    wanted = set(track_numbers)
    selected = [entry for entry in split_plan if entry.track in wanted]
    if not selected:
        valid = ", ".join(str(entry.track) for entry in split_plan)
        raise TrackSelectionError(
            f"None of the requested tracks exist in the CUE sheet. Valid tracks: {valid}"
        )
    return selected


def split_audio_to_tracks(transcoder, source_path, cue_path, cover=None, tracks=None,
                          on_progress=None, album_info=None, log_func=None,
                          shrink=shrink_image, archiver_factory=ZipArchiver):
    """
    Split one CUE + audio image pair into tagged FLAC tracks.

    Phases run strictly in order and each one is reported through
    ``on_progress`` before its work starts: prepare_input, prepare_cover
    (only with a cover), analyze_audio, build_plan, processing (once per
    track), zipping (only for more than one track) and done.

    Args:
        transcoder: Transcoder to run ffmpeg with
        source_path: Path to the audio image file
        cue_path: Path to the CUE sheet file
        cover: Optional cover image as bytes, URL or file path
        tracks: Optional iterable of track numbers to extract
        on_progress: Optional function called with a SplitProgress
        album_info: Optional AlbumInfo overriding album-level CUE metadata
        log_func: Optional function to call for logging messages
        shrink: Function fitting cover bytes within a bounding box
        archiver_factory: Callable returning an object with add_entry/finalize

    Returns:
        SplitResult

    Raises:
        SplitError: On any failure; no partial result is returned
    """
    if log_func is None:
        log_func = lambda msg: None
    if album_info is None:
        album_info = AlbumInfo()

    state = {"done": 0, "total": 0, "eta": None}

    def report(phase, step=None, entry=None, title=None, status="processing"):
        if on_progress is None:
            return
        on_progress(SplitProgress(
            status=status,
            phase=phase,
            step=step,
            track=entry.track if entry is not None else None,
            track_title=title,
            done=state["done"],
            total=state["total"],
            eta_seconds=state["eta"],
        ))

    # Step 1: Load the source audio into the workspace
    report(PHASE_PREPARE_INPUT, "load_audio")
    input_name = _input_name(source_path)
    log_func(f"📥 Loading {os.path.basename(source_path)} as {input_name} ...")
    with open(source_path, "rb") as f:
        transcoder.write_file(input_name, f.read())

    # Step 2: Prepare the cover image
    has_cover = cover is not None
    if has_cover:
        report(PHASE_PREPARE_COVER, "fetch_cover" if is_url(cover) else "load_cover")
        cover_bytes = load_cover_bytes(cover)
        report(PHASE_PREPARE_COVER, "resize_cover")
        transcoder.write_file(COVER_NAME, shrink(cover_bytes))
        log_func(f"🖼️ Cover image prepared ({len(cover_bytes)} bytes source)")

    # Step 3: Measure the album duration
    report(PHASE_ANALYZE_AUDIO, "probe_duration")
    audio_duration_seconds = transcoder.probe_duration(input_name)
    log_func(f"⏱️ Audio duration: {audio_duration_seconds:.2f}s")

    # Step 4: Parse the CUE sheet, plan and validate
    report(PHASE_BUILD_PLAN, "parse_cue")
    cue_sheet = parse_cue_text(read_cue_file(cue_path, log_func))
    split_plan = build_split_plan(cue_sheet, audio_duration_seconds)

    if not split_plan:
        raise CuePlanError("CUE sheet has no valid INDEX 01 entry.")

    report(PHASE_BUILD_PLAN, "validate_plan")
    validation = validate_cue_against_duration(
        split_plan, audio_duration_seconds,
        tolerance_seconds=TOLERANCE_SECONDS, min_track_seconds=MIN_TRACK_SECONDS,
    )
    if not validation.ok:
        for error in validation.errors:
            log_func(f"❌ {error}")
        raise CuePlanError(
            "Audio does not match CUE:\n" + "\n".join(validation.errors),
            errors=validation.errors,
        )
    log_func(f"✅ Split plan validated: {len(split_plan)} track(s)")
    for row in build_track_sheet(cue_sheet, split_plan):
        log_func(f"  {row.no:02d}. {row.performer or '-'} - {row.title} [{row.index_raw} +{row.duration}]")

    effective_plan = select_tracks(split_plan, tracks)
    if len(effective_plan) != len(split_plan):
        log_func(f"🎯 Extracting {len(effective_plan)} of {len(split_plan)} track(s)")

    # Step 5: Extract, tag and collect every track
    total_tracks = len(split_plan)
    album = _pick(album_info.album, cue_sheet.album)
    album_artist = _pick(album_info.performer, cue_sheet.performer)
    album_date = _pick(album_info.date, cue_sheet.date)
    album_genre = _pick(album_info.genre, cue_sheet.genre)

    state["total"] = len(effective_plan)
    outputs = []
    started = time.monotonic()

    for entry in effective_plan:
        title = normalize_title(entry.title or f"Track {entry.track}")
        out_name = track_file_name(entry.track, title)
        tmp_name = f"tmp_{entry.track:02d}.{OUTPUT_EXT}"
        work_name = f"{OUTPUT_PREFIX}{out_name}"

        report(PHASE_PROCESSING, "split", entry, title)
        log_func(f"✂️ Track {entry.track:02d}: {title} ({entry.start_time}"
                 f" + {entry.duration_time or 'end of file'})")

        metadata_args = build_metadata_args(
            album=album,
            album_artist=album_artist,
            track_artist=entry.performer or album_artist,
            title=title,
            track_no=entry.track,
            total_tracks=total_tracks,
            date=entry.date or album_date,
            genre=entry.genre or album_genre,
        )
        transcoder.run(build_split_args(input_name, entry, metadata_args, tmp_name))

        if has_cover:
            report(PHASE_PROCESSING, "embed_cover", entry, title)
            transcoder.run(build_cover_args(tmp_name, COVER_NAME, work_name))
        else:
            # The workspace has no rename, copy the bytes instead
            transcoder.write_file(work_name, _read_output(transcoder, tmp_name))

        report(PHASE_PROCESSING, "collect", entry, title)
        data = _read_output(transcoder, work_name)
        transcoder.delete_file(tmp_name)
        transcoder.delete_file(work_name)

        outputs.append(TrackOutput(name=out_name, data=data, plan=entry))
        state["done"] = len(outputs)
        state["eta"] = _estimate_eta(started, state["done"], state["total"])
        log_func(f"  ✅ {out_name} ({len(data)} bytes), ETA {state['eta']}s")

    # Step 6: Package the result
    if len(outputs) == 1:
        result = SplitResult(name=outputs[0].name, data=outputs[0].data, tracks=outputs)
    else:
        report(PHASE_ZIPPING, "archive")
        archiver = archiver_factory()
        for output in outputs:
            archiver.add_entry(output.name, output.data)
        archive_name = f"{sanitize_file_name(album or '') or 'tracks'}.zip"
        result = SplitResult(
            name=archive_name, data=archiver.finalize(), tracks=outputs, archived=True
        )
        log_func(f"📦 Archived {len(outputs)} track(s) into {archive_name}")

    report(PHASE_DONE, "finished", status="done")
    return result


def _read_output(transcoder, name):
    try:
        data = transcoder.read_file(name)
    except OSError as e:
        raise OutputReadError(f"Unable to read {name} from the transcoder workspace: {e}") from e
    if not data:
        raise OutputReadError(f"ffmpeg produced an empty file: {name}")
    return data


def _estimate_eta(started, done, total):
    """Average seconds per finished track times the tracks still to go"""
    if done == 0:
        return None
    average = (time.monotonic() - started) / done
    return max(0, math.floor(average * (total - done) + 0.5))
