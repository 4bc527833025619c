"""Shared fixtures: an in-memory transcoder and CUE sheet builders."""

import io

import pytest
from PIL import Image

from cue_tracks.core.transcoder import TranscodeResult, Transcoder


class FakeTranscoder(Transcoder):
    """Dict-backed workspace that records every ffmpeg argument list.

    Probe calls answer with a scripted Duration line; any other call writes
    its output file (the last argument) so the pipeline can read it back.
    """

    def __init__(self, duration="00:10:00.00", fail_on_call=None, empty_output=False):
        self.files = {}
        self.calls = []
        self.duration = duration
        self.fail_on_call = fail_on_call
        self.empty_output = empty_output
        self.deleted = []
        self.closed = False

    def write_file(self, name, data):
        self.files[name] = bytes(data)

    def read_file(self, name):
        if name not in self.files:
            raise FileNotFoundError(name)
        return self.files[name]

    def delete_file(self, name):
        self.deleted.append(name)
        self.files.pop(name, None)

    def exec(self, args):
        self.calls.append(list(args))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            return TranscodeResult(1, ["Conversion failed!"])

        if args[-2:] == ["null", "-"]:
            lines = ["Input #0, flac, from 'album.flac':"]
            if self.duration is not None:
                lines.append(f"  Duration: {self.duration}, start: 0.000000, bitrate: 900 kb/s")
            return TranscodeResult(0, lines)

        output = args[-1]
        self.files[output] = b"" if self.empty_output else f"FLAC:{output}".encode()
        return TranscodeResult(0, ["size=    1024kB"])

    @property
    def split_calls(self):
        return [c for c in self.calls if "-ss" in c]

    @property
    def cover_calls(self):
        return [c for c in self.calls if "attached_pic" in c]

    def open_workspace(self, keep=False, log_func=None, logfile=None):
        return self

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FakeEngine:
    """Stands in for FFmpegEngine, handing out one shared FakeTranscoder."""

    binary = "/usr/bin/ffmpeg"
    version = "ffmpeg version 6.1-test"

    def __init__(self, transcoder):
        self.transcoder = transcoder
        self.workspaces = 0

    def open_workspace(self, keep=False, log_func=None, logfile=None):
        self.workspaces += 1
        return self.transcoder


def build_cue(tracks, album="Test Album", performer="Test Artist", file_name="album.flac",
              extra_header=""):
    """Build CUE text from (title, index) tuples; index None omits INDEX 01."""
    lines = []
    if extra_header:
        lines.append(extra_header)
    lines += [
        f'PERFORMER "{performer}"',
        f'TITLE "{album}"',
        f'FILE "{file_name}" WAVE',
    ]
    for number, (title, index) in enumerate(tracks, 1):
        lines.append(f"  TRACK {number:02d} AUDIO")
        lines.append(f'    TITLE "{title}"')
        if index is not None:
            lines.append(f"    INDEX 01 {index}")
    return "\n".join(lines) + "\n"


def minutes_index(minutes):
    return f"{minutes:02d}:00:00"


@pytest.fixture
def fake_transcoder():
    return FakeTranscoder()


@pytest.fixture
def five_track_cue():
    # Five tracks, two minutes each, ten minutes in total
    return build_cue([(f"Song {n}", minutes_index((n - 1) * 2)) for n in range(1, 6)])


@pytest.fixture
def album_dir(tmp_path, five_track_cue):
    (tmp_path / "album.flac").write_bytes(b"fLaC" + b"\x00" * 64)
    (tmp_path / "album.cue").write_text(five_track_cue, encoding="utf-8")
    return tmp_path


@pytest.fixture
def png_bytes():
    img = Image.new("RGBA", (1280, 960), (200, 30, 30, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
