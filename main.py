#!/usr/bin/env python3
"""
CUE Tracks HTTP Daemon - Main Entry Point

A multi-threaded HTTP daemon that splits CUE sheet + audio image file pairs
into tagged FLAC tracks.
Features:
- Recursive search for CUE+image pairs in directory trees
- Split plan validation against the measured audio duration
- Multi-threaded job queue with live per-track progress and ETA
- Cover art embedding, partial track selection, ZIP packaging
"""
import os
import sys
import argparse
import signal
import queue
import threading

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from cue_tracks.utils.helpers import safe_print
from cue_tracks.utils.database import get_database
from cue_tracks.core.job_orchestrator import get_log_dir
from cue_tracks.core.transcoder import load_engine
from cue_tracks.api.server import start_server
from cue_tracks.workers.processor import start_workers, stop_workers


# Global state
task_queue = queue.Queue()
shutdown_event = threading.Event()


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully"""
    signal_name = signal.Signals(signum).name
    safe_print(f"\n🛑 Received {signal_name} signal, initiating graceful shutdown...")
    shutdown_event.set()


def _env_flag(name, default="false"):
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


def parse_arguments(argv=None):
    """Parse command line arguments and environment variables"""
    # Read defaults from environment variables
    env_port = int(os.environ.get("PORT", "8080"))
    env_threads = int(os.environ.get("THREADS", "1"))
    env_ffmpeg = os.environ.get("FFMPEG_BINARY", "ffmpeg")
    env_no_cleanup = _env_flag("NO_CLEANUP")
    env_keep_days = int(os.environ.get("JOB_RETENTION_DAYS", "30"))

    parser = argparse.ArgumentParser(
        description="CUE Tracks HTTP Daemon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --port 8080 --threads 2
  %(prog)s --ffmpeg /usr/local/bin/ffmpeg --no-cleanup

Environment Variables:
  PORT                - HTTP server port
  THREADS             - Number of job worker threads
  FFMPEG_BINARY       - ffmpeg binary name or path
  NO_CLEANUP          - Keep transcoder workspaces (true/false)
  CUE_TRACKS_DB       - SQLite job database path
  CUE_TRACKS_LOG_DIR  - Directory for per-job log files
  JOB_RETENTION_DAYS  - Days finished jobs are kept in the database
"""
    )

    parser.add_argument(
        "--port",
        type=int,
        default=env_port,
        help=f"HTTP server port (default: {env_port}, env: PORT)"
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=env_threads,
        help=f"Number of job worker threads (default: {env_threads}, env: THREADS)"
    )
    parser.add_argument(
        "--ffmpeg",
        default=env_ffmpeg,
        help=f"ffmpeg binary name or path (default: {env_ffmpeg}, env: FFMPEG_BINARY)"
    )
    parser.add_argument(
        "--no-cleanup",
        action="store_true",
        default=env_no_cleanup,
        help=f"Keep per-job transcoder workspaces for debugging (default: {env_no_cleanup}, env: NO_CLEANUP)"
    )

    parser.add_argument(
        "--keep-days",
        type=int,
        default=env_keep_days,
        help=f"Delete jobs older than this many days at startup (default: {env_keep_days}, env: JOB_RETENTION_DAYS)"
    )

    args = parser.parse_args(argv)
    if args.threads < 1:
        parser.error("--threads must be at least 1")
    if args.keep_days < 1:
        parser.error("--keep-days must be at least 1")
    return args


def print_banner(args, db_path, engine):
    """Print startup banner with configuration"""
    safe_print("=" * 60)
    safe_print("🎵 CUE Tracks HTTP Daemon")
    safe_print("=" * 60)
    safe_print(f"📋 Configuration:")
    safe_print(f"   Port: {args.port}")
    safe_print(f"   Job worker threads: {args.threads}")
    safe_print(f"   ffmpeg: {engine.binary}")
    safe_print(f"   ffmpeg version: {engine.version}")
    safe_print(f"   Keep workspaces: {args.no_cleanup}")
    safe_print(f"   Log directory: {get_log_dir()}")
    safe_print(f"   Database: {db_path}")
    safe_print(f"   Job retention: {args.keep_days} day(s)")
    safe_print("=" * 60)


def init_database(db_path, keep_days):
    """Open the job database and drop jobs past the retention window"""
    db = get_database(db_path)
    safe_print(f"💾 Database initialized at: {db_path}")
    removed = db.cleanup_old_jobs(keep_days)
    if removed:
        safe_print(f"🧹 Removed {removed} job(s) older than {keep_days} day(s)")
    return db


def main():
    """Main entry point"""
    args = parse_arguments()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    db_path = os.environ.get('CUE_TRACKS_DB', '/tmp/cue_tracks_jobs.db')
    init_database(db_path, args.keep_days)

    # Load the shared ffmpeg engine once, before any job asks for it
    engine = load_engine(args.ffmpeg)

    print_banner(args, db_path, engine)

    threads = start_workers(task_queue, shutdown_event, args, args.threads)

    # Start HTTP server (blocking)
    try:
        start_server("0.0.0.0", args.port, task_queue, shutdown_event)
    finally:
        stop_workers(task_queue, threads, args.threads)
        safe_print("👋 Shutdown complete")


if __name__ == "__main__":
    main()
