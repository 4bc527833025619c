"""Tests for the ffmpeg adapter."""

import os
import threading
from unittest.mock import patch

import pytest

from cue_tracks.core import transcoder as transcoder_module
from cue_tracks.core.errors import (
    DurationProbeError,
    TranscoderError,
    TranscoderUnavailableError,
)
from cue_tracks.core.transcoder import (
    FFmpegEngine,
    FFmpegTranscoder,
    load_engine,
    parse_duration,
    reset_engine,
)

from conftest import FakeTranscoder


@pytest.fixture(autouse=True)
def clean_engine_slot():
    reset_engine()
    yield
    reset_engine()


class TestParseDuration:
    """Scraping the Duration line from the probe log."""

    def test_parses_duration(self):
        lines = [
            "Input #0, flac, from 'album.flac':",
            "  Duration: 01:02:03.45, start: 0.000000, bitrate: 912 kb/s",
        ]
        assert parse_duration(lines) == pytest.approx(3723.45)

    def test_no_duration(self):
        assert parse_duration(["Input #0, flac", "Stream #0:0: Audio: flac"]) is None

    def test_na_duration_is_ignored(self):
        assert parse_duration(["  Duration: N/A, bitrate: N/A"]) is None


class TestTranscoderBase:
    """run() and probe_duration() built on exec()."""

    def test_probe_duration(self):
        fake = FakeTranscoder(duration="00:42:10.50")
        assert fake.probe_duration("album.flac") == pytest.approx(2530.5)
        assert fake.calls == [["-i", "album.flac", "-f", "null", "-"]]

    def test_probe_without_duration_raises(self):
        fake = FakeTranscoder(duration=None)
        with pytest.raises(DurationProbeError, match="Unable to read audio duration"):
            fake.probe_duration("album.flac")

    def test_run_raises_on_failure(self):
        fake = FakeTranscoder(fail_on_call=1)
        with pytest.raises(TranscoderError) as exc_info:
            fake.run(["-i", "in.flac", "out.flac"])
        assert exc_info.value.exit_code == 1
        assert exc_info.value.command == ["-i", "in.flac", "out.flac"]
        assert exc_info.value.log_tail == ["Conversion failed!"]

    def test_run_returns_result(self):
        fake = FakeTranscoder()
        result = fake.run(["-i", "in.flac", "out.flac"])
        assert result.exit_code == 0
        assert fake.files["out.flac"] == b"FLAC:out.flac"


class TestFFmpegTranscoder:
    """Workspace file operations and command construction."""

    def test_file_round_trip_and_delete(self, tmp_path):
        t = FFmpegTranscoder("ffmpeg", str(tmp_path))
        t.write_file("a.bin", b"abc")
        assert t.read_file("a.bin") == b"abc"
        t.delete_file("a.bin")
        assert not (tmp_path / "a.bin").exists()
        t.delete_file("a.bin")

    @pytest.mark.parametrize("name", ["", "..", "../escape", "dir/file", "a\\b"])
    def test_rejects_paths(self, tmp_path, name):
        t = FFmpegTranscoder("ffmpeg", str(tmp_path))
        with pytest.raises(ValueError):
            t.write_file(name, b"x")

    def test_read_missing_raises_oserror(self, tmp_path):
        t = FFmpegTranscoder("ffmpeg", str(tmp_path))
        with pytest.raises(OSError):
            t.read_file("missing.flac")

    def test_exec_prepends_global_flags(self, tmp_path):
        lines_seen = []
        t = FFmpegTranscoder("/usr/bin/ffmpeg", str(tmp_path), log_func=lines_seen.append)

        def fake_run(cmd, logfile=None, env=None, cwd=None, line_func=None):
            line_func("Duration: 00:00:10.00")
            return 0, ["Duration: 00:00:10.00"]

        with patch.object(transcoder_module, "run_command", side_effect=fake_run) as run:
            result = t.exec(["-i", "x.flac", "-f", "null", "-"])

        cmd = run.call_args[0][0]
        assert cmd[:4] == ["/usr/bin/ffmpeg", "-hide_banner", "-nostdin", "-y"]
        assert cmd[4:] == ["-i", "x.flac", "-f", "null", "-"]
        assert run.call_args[1]["cwd"] == str(tmp_path)
        assert result.log_lines == ["Duration: 00:00:10.00"]
        assert lines_seen == ["[ffmpeg] Duration: 00:00:10.00"]

    def test_close_removes_workspace(self):
        engine = FFmpegEngine("/usr/bin/ffmpeg", "ffmpeg version test")
        with engine.open_workspace() as t:
            workspace = t.workspace_dir
            t.write_file("a.flac", b"data")
            assert os.path.isdir(workspace)
        assert not os.path.exists(workspace)

    def test_keep_preserves_workspace(self):
        engine = FFmpegEngine("/usr/bin/ffmpeg", "ffmpeg version test")
        t = engine.open_workspace(keep=True)
        t.close()
        try:
            assert os.path.isdir(t.workspace_dir)
        finally:
            os.rmdir(t.workspace_dir)


class TestEngineLoading:
    """Locating ffmpeg and the shared single-flight engine slot."""

    def test_missing_binary(self):
        with patch.object(transcoder_module.shutil, "which", return_value=None):
            with pytest.raises(TranscoderUnavailableError, match="not found"):
                FFmpegEngine.load("ffmpeg-does-not-exist")

    def test_reads_version(self):
        with patch.object(transcoder_module.shutil, "which", return_value="/opt/ffmpeg"), \
                patch.object(transcoder_module, "run_command",
                             return_value=(0, ["ffmpeg version 6.1", "built with gcc"])):
            engine = FFmpegEngine.load()
        assert engine.binary == "/opt/ffmpeg"
        assert engine.version == "ffmpeg version 6.1"

    def test_version_failure(self):
        with patch.object(transcoder_module.shutil, "which", return_value="/opt/ffmpeg"), \
                patch.object(transcoder_module, "run_command", return_value=(1, [])):
            with pytest.raises(TranscoderUnavailableError):
                FFmpegEngine.load()

    def test_load_engine_is_memoized(self):
        engine = FFmpegEngine("/opt/ffmpeg", "ffmpeg version 6.1")
        with patch.object(FFmpegEngine, "load", return_value=engine) as load:
            assert load_engine("ffmpeg") is engine
            assert load_engine("other") is engine
        assert load.call_count == 1

    def test_concurrent_callers_share_one_load(self):
        engine = FFmpegEngine("/opt/ffmpeg", "ffmpeg version 6.1")
        release = threading.Event()
        calls = []

        def slow_load(binary):
            calls.append(binary)
            release.wait(timeout=5)
            return engine

        results = []
        with patch.object(FFmpegEngine, "load", side_effect=slow_load):
            threads = [
                threading.Thread(target=lambda: results.append(load_engine("ffmpeg")))
                for _ in range(5)
            ]
            for t in threads:
                t.start()
            release.set()
            for t in threads:
                t.join(timeout=5)

        assert calls == ["ffmpeg"]
        assert len(results) == 5
        assert all(r is engine for r in results)

    def test_failed_load_is_memoized_until_reset(self):
        error = TranscoderUnavailableError("ffmpeg binary not found: ffmpeg")
        with patch.object(FFmpegEngine, "load", side_effect=error) as load:
            with pytest.raises(TranscoderUnavailableError):
                load_engine()
            with pytest.raises(TranscoderUnavailableError):
                load_engine()
        assert load.call_count == 1

        engine = FFmpegEngine("/opt/ffmpeg", "ffmpeg version 6.1")
        reset_engine()
        with patch.object(FFmpegEngine, "load", return_value=engine):
            assert load_engine() is engine

    def test_env_binary_default(self, monkeypatch):
        monkeypatch.setenv("FFMPEG_BINARY", "/custom/ffmpeg")
        engine = FFmpegEngine("/custom/ffmpeg", "ffmpeg version 6.1")
        with patch.object(FFmpegEngine, "load", return_value=engine) as load:
            load_engine()
        load.assert_called_once_with("/custom/ffmpeg")
