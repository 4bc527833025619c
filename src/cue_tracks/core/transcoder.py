"""ffmpeg adapter: engine singleton, per-job workspaces and duration probing"""
import os
import re
import shutil
import tempfile
import threading
from concurrent.futures import Future

from .errors import (
    DurationProbeError,
    TranscoderError,
    TranscoderUnavailableError,
)
from ..utils.helpers import run_command


DURATION_PATTERN = re.compile(r'Duration:\s+(\d+):(\d+):(\d+\.\d+)')
LOG_TAIL_LINES = 20


def parse_duration(log_lines):
    """
    Find the ``Duration: HH:MM:SS.ms`` line in an ffmpeg log.

    Args:
        log_lines: Iterable of log lines

    Returns:
        Duration in seconds, or None when no line matches
    """
    duration = None
    for line in log_lines:
        match = DURATION_PATTERN.search(line)
        if match:
            hours, minutes, seconds = match.groups()
            duration = int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    return duration


class TranscodeResult:
    """Exit code and log lines of a single ffmpeg invocation"""

    def __init__(self, exit_code, log_lines):
        self.exit_code = exit_code
        self.log_lines = log_lines


class Transcoder:
    """
    Capability the extraction pipeline drives.

    Files live in a flat, string-keyed workspace. Subclasses implement the
    file operations and ``exec``; ``run`` and ``probe_duration`` are built on
    top of them.
    """

    def write_file(self, name, data):
        raise NotImplementedError

    def read_file(self, name):
        raise NotImplementedError

    def delete_file(self, name):
        raise NotImplementedError

    def exec(self, args):
        """Run ffmpeg with ``args`` and return a TranscodeResult"""
        raise NotImplementedError

    def run(self, args):
        """
        Run ffmpeg and fail on a non-zero exit code.

        Raises:
            TranscoderError: If ffmpeg exits with a non-zero code
        """
        result = self.exec(args)
        if result.exit_code != 0:
            raise TranscoderError(
                f"ffmpeg failed with exit code {result.exit_code}",
                exit_code=result.exit_code,
                command=list(args),
                log_tail=result.log_lines[-LOG_TAIL_LINES:],
            )
        return result

    def probe_duration(self, name):
        """
        Measure the duration of a workspace file by decoding it to nowhere.

        Raises:
            DurationProbeError: If the log carries no Duration line
        """
        result = self.exec(["-i", name, "-f", "null", "-"])
        duration = parse_duration(result.log_lines)
        if duration is None:
            raise DurationProbeError("Unable to read audio duration from ffmpeg log.")
        return duration


class FFmpegTranscoder(Transcoder):
    """Transcoder backed by the ffmpeg binary and a private temporary directory"""

    def __init__(self, binary, workspace_dir, keep=False, log_func=None, logfile=None):
        self.binary = binary
        self.workspace_dir = workspace_dir
        self.keep = keep
        self.log_func = log_func
        self.logfile = logfile

    def _path(self, name):
        if not name or name in (".", "..") or os.path.basename(name) != name or "\\" in name:
            raise ValueError(f"Invalid workspace file name: {name!r}")
        return os.path.join(self.workspace_dir, name)

    def write_file(self, name, data):
        with open(self._path(name), "wb") as f:
            f.write(data)

    def read_file(self, name):
        with open(self._path(name), "rb") as f:
            return f.read()

    def delete_file(self, name):
        path = self._path(name)
        if os.path.exists(path):
            os.remove(path)

    def exec(self, args):
        cmd = [self.binary, "-hide_banner", "-nostdin", "-y"] + list(args)
        exit_code, lines = run_command(
            cmd, self.logfile, cwd=self.workspace_dir, line_func=self._emit
        )
        return TranscodeResult(exit_code, lines)

    def _emit(self, line):
        if self.log_func:
            self.log_func(f"[ffmpeg] {line}")

    def close(self):
        """Remove the workspace directory unless it should be kept"""
        if self.keep:
            if self.log_func:
                self.log_func(f"ℹ️ Keeping transcoder workspace: {self.workspace_dir}")
            return
        shutil.rmtree(self.workspace_dir, ignore_errors=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FFmpegEngine:
    """A located, working ffmpeg binary"""

    def __init__(self, binary, version):
        self.binary = binary
        self.version = version

    @classmethod
    def load(cls, binary="ffmpeg"):
        """
        Locate ffmpeg and read its version line.

        Raises:
            TranscoderUnavailableError: If the binary is missing or does not run
        """
        path = shutil.which(binary)
        if path is None:
            raise TranscoderUnavailableError(f"ffmpeg binary not found: {binary}")

        try:
            exit_code, lines = run_command([path, "-hide_banner", "-version"])
        except OSError as e:
            raise TranscoderUnavailableError(f"Unable to start {path}: {e}") from e

        if exit_code != 0 or not lines:
            raise TranscoderUnavailableError(
                f"{path} -version failed with exit code {exit_code}"
            )
        return cls(path, lines[0])

    def open_workspace(self, keep=False, log_func=None, logfile=None):
        """
        Create a transcoder bound to a fresh workspace directory.

        Args:
            keep: If True, the directory survives close() for debugging
            log_func: Optional function receiving every ffmpeg log line
            logfile: Optional path the ffmpeg output is appended to

        Returns:
            FFmpegTranscoder
        """
        workspace_dir = tempfile.mkdtemp(prefix="cue_tracks_")
        return FFmpegTranscoder(
            self.binary, workspace_dir, keep=keep, log_func=log_func, logfile=logfile
        )


# Global engine slot, filled once by the first load_engine() call
_engine_future = None
_engine_lock = threading.Lock()


def load_engine(binary=None):
    """
    Get the shared ffmpeg engine, loading it on first use.

    The first caller installs a future and performs the load; concurrent
    callers wait on that same future. A failed load stays cached until
    reset_engine() is called.

    Args:
        binary: ffmpeg binary name or path (only used by the loading call)

    Returns:
        FFmpegEngine instance
    """
    global _engine_future

    owner = False
    with _engine_lock:
        if _engine_future is None:
            _engine_future = Future()
            owner = True
        future = _engine_future

    if owner:
        if binary is None:
            binary = os.environ.get("FFMPEG_BINARY", "ffmpeg")
        try:
            future.set_result(FFmpegEngine.load(binary))
        except Exception as e:
            future.set_exception(e)

    return future.result()


def reset_engine():
    """Forget the shared engine so the next load_engine() call loads again"""
    global _engine_future
    with _engine_lock:
        _engine_future = None
