"""Job orchestration: every CUE+image pair found under a path, one after another"""
import os
import time
import threading
import traceback

from .errors import SplitError
from .file_finder import find_album_cover, find_cue_image_pairs
from .track_extractor import split_audio_to_tracks
from .transcoder import load_engine
from ..utils.helpers import safe_print


def get_log_dir():
    return os.environ.get("CUE_TRACKS_LOG_DIR", "/tmp/cue_tracks_logs")


def get_log_path(job_id):
    return os.path.join(get_log_dir(), f"{job_id}.log")


def _write_output(working_dir, result):
    output_path = os.path.join(working_dir, result.name)
    with open(output_path, "wb") as f:
        f.write(result.data)
    return output_path


def process_pair(engine, cue_path, image_file, working_dir, job_id, log, logfile,
                 tracks=None, cover=None, album_info=None, no_cleanup=False,
                 progress_func=None, log_prefix=""):
    """
    Split a single CUE + image file pair and write its output next to it.

    Args:
        engine: FFmpegEngine used to open a workspace
        cue_path: Path to the CUE sheet file
        image_file: Path to the audio image file (FLAC, APE, WAV, etc.)
        working_dir: Directory where the pair is located
        job_id: Unique identifier for this job
        log: Function to call for logging messages
        logfile: Path to the log file
        tracks: Optional list of track numbers to extract
        cover: Optional cover image path or URL, overrides the discovered cover
        album_info: Optional AlbumInfo overriding CUE album metadata
        no_cleanup: If True, keep the transcoder workspace after processing
        progress_func: Optional function called with each SplitProgress
        log_prefix: Prefix for log messages

    Returns:
        Dictionary with status and details
    """
    try:
        if cover is None:
            cover = find_album_cover(working_dir, lambda msg: log(f"{log_prefix} {msg}"))

        transcoder = engine.open_workspace(keep=no_cleanup, logfile=logfile)
        with transcoder:
            result = split_audio_to_tracks(
                transcoder,
                image_file,
                cue_path,
                cover=cover,
                tracks=tracks,
                on_progress=progress_func,
                album_info=album_info,
                log_func=lambda msg: log(f"{log_prefix} {msg}"),
            )

        output_path = _write_output(working_dir, result)
        log(f"{log_prefix} 💾 Wrote {os.path.basename(output_path)}")

        return {
            "status": "success",
            "cue": cue_path,
            "output": output_path,
            "archived": result.archived,
            "tracks": [
                {"name": t.name, "size": len(t.data), "plan": t.plan.to_dict()}
                for t in result.tracks
            ],
        }

    except SplitError as e:
        log(f"{log_prefix} ❌ {str(e)}")
        return {"status": "error", "cue": cue_path, "message": str(e), "log": logfile}
    except Exception as e:
        log(f"{log_prefix} 💥 Fatal error: {str(e)}")
        log(f"{log_prefix} Stack trace:\n{traceback.format_exc()}")
        return {"status": "error", "cue": cue_path, "message": str(e), "log": logfile}


def split_and_encode(album_path, job_id=None, tracks=None, cover=None, album_info=None,
                     no_cleanup=False, engine=None, progress_func=None):
    """
    Main orchestration function for processing all CUE+image pairs in a directory tree.

    Pairs are processed sequentially: each one gets its own transcoder
    workspace on the shared ffmpeg engine.

    Args:
        album_path: Root directory to search for CUE+image pairs
        job_id: Unique identifier for this job
        tracks: Optional list of track numbers to extract from every pair
        cover: Optional cover image path or URL used for every pair
        album_info: Optional AlbumInfo overriding CUE album metadata
        no_cleanup: If True, keep transcoder workspaces after processing
        engine: FFmpegEngine to use (defaults to the shared engine)
        progress_func: Optional function called with (pair index, pair count, SplitProgress)

    Returns:
        Dictionary with overall status and details
    """
    logdir = get_log_dir()
    os.makedirs(logdir, exist_ok=True)
    logfile = get_log_path(job_id)

    # Thread-safe logging with lock
    log_lock = threading.Lock()

    def log(msg):
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        formatted_msg = f"[{timestamp}] [{job_id}] {msg}"
        with log_lock:
            safe_print(formatted_msg)
            with open(logfile, "a", encoding="utf-8", errors="replace") as f:
                f.write(formatted_msg + "\n")
                f.flush()

    try:
        log(f"🚀 Starting processing for: {album_path}")
        if tracks:
            log(f"🎯 Track selection: {', '.join(str(t) for t in tracks)}")

        if engine is None:
            engine = load_engine()
        log(f"🎬 Using {engine.version}")

        log(f"🔍 Searching for CUE + image file pairs in {album_path} and subdirectories...")
        pairs = find_cue_image_pairs(album_path, log_func=log)

        if not pairs:
            log("❌ No CUE + image file pairs found.")
            return {"status": "error", "message": "no cue+image pairs found", "log": logfile}

        log(f"✅ Found {len(pairs)} CUE + image file pair(s)")

        all_results = []
        for idx, (cue_path, image_file, working_dir) in enumerate(pairs, 1):
            pair_log_prefix = f"[Pair {idx}/{len(pairs)}]"
            log(f"{pair_log_prefix} Processing pair in: {os.path.relpath(working_dir, album_path)}")
            log(f"{pair_log_prefix} 📄 CUE file: {os.path.basename(cue_path)}")
            log(f"{pair_log_prefix} 🎵 Image file: {os.path.basename(image_file)}")

            pair_progress = None
            if progress_func:
                pair_progress = lambda progress, idx=idx: progress_func(idx, len(pairs), progress)

            result = process_pair(
                engine, cue_path, image_file, working_dir, job_id, log, logfile,
                tracks=tracks, cover=cover, album_info=album_info,
                no_cleanup=no_cleanup, progress_func=pair_progress,
                log_prefix=pair_log_prefix,
            )

            if result["status"] != "success":
                log(f"{pair_log_prefix} ❌ Failed to process this pair")
            else:
                log(f"{pair_log_prefix} ✅ Successfully processed this pair")
            all_results.append(result)

        failed_count = sum(1 for r in all_results if r["status"] != "success")
        success_count = len(all_results) - failed_count

        log(f"📊 Overall summary: {success_count} successful, {failed_count} failed out of {len(pairs)} pair(s)")

        if failed_count == len(all_results):
            return {
                "status": "error",
                "message": f"all {len(pairs)} pair(s) failed",
                "log": logfile,
                "details": all_results
            }
        elif failed_count > 0:
            return {
                "status": "partial",
                "message": f"{success_count} succeeded, {failed_count} failed",
                "log": logfile,
                "details": all_results
            }
        else:
            log("✅ Job completed successfully!")
            return {"status": "success", "log": logfile, "details": all_results}

    except Exception as e:
        log(f"💥 Fatal error: {str(e)}")
        log(f"Stack trace:\n{traceback.format_exc()}")
        return {"status": "error", "message": str(e), "log": logfile}
