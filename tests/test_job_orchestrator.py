"""Tests for directory-level job orchestration."""

import os

import pytest

from cue_tracks.core.job_orchestrator import get_log_path, process_pair, split_and_encode
from cue_tracks.core.models import AlbumInfo

from conftest import FakeEngine, FakeTranscoder, build_cue


@pytest.fixture(autouse=True)
def log_dir(tmp_path_factory, monkeypatch):
    path = tmp_path_factory.mktemp("logs")
    monkeypatch.setenv("CUE_TRACKS_LOG_DIR", str(path))
    return path


def make_disc(folder, titles):
    folder.mkdir(parents=True, exist_ok=True)
    tracks = [(title, f"{n * 2:02d}:00:00") for n, title in enumerate(titles)]
    (folder / "disc.cue").write_text(build_cue(tracks, file_name="disc.flac"), encoding="utf-8")
    (folder / "disc.flac").write_bytes(b"audio")


class TestLogPaths:

    def test_log_path_uses_env_dir(self, log_dir):
        assert get_log_path("7") == os.path.join(str(log_dir), "7.log")


class TestSplitAndEncode:
    """Pairs are processed in order and summarized like the job API reports them."""

    def test_single_pair_success(self, album_dir, log_dir):
        engine = FakeEngine(FakeTranscoder())

        result = split_and_encode(str(album_dir), job_id="1", engine=engine)

        assert result["status"] == "success"
        assert result["log"] == os.path.join(str(log_dir), "1.log")
        detail = result["details"][0]
        assert detail["status"] == "success"
        assert detail["archived"] is True
        assert detail["output"] == str(album_dir / "Test Album.zip")
        assert [t["name"] for t in detail["tracks"]] == [f"{n:02d} - Song {n}.flac" for n in range(1, 6)]
        assert detail["tracks"][1]["plan"]["start_time"] == "00:02:00.000"
        assert (album_dir / "Test Album.zip").is_file()
        assert engine.transcoder.closed

    def test_log_file_is_written(self, album_dir, log_dir):
        split_and_encode(str(album_dir), job_id="2", engine=FakeEngine(FakeTranscoder()))

        content = (log_dir / "2.log").read_text(encoding="utf-8")
        assert "[2] 🚀 Starting processing" in content
        assert "ffmpeg version 6.1-test" in content
        assert "Job completed successfully" in content

    def test_track_selection_writes_single_file(self, album_dir):
        result = split_and_encode(str(album_dir), job_id="3", tracks=[4],
                                  engine=FakeEngine(FakeTranscoder()))

        detail = result["details"][0]
        assert detail["archived"] is False
        assert detail["output"] == str(album_dir / "04 - Song 4.flac")
        assert (album_dir / "04 - Song 4.flac").read_bytes() == b"FLAC:tmp_04.flac"

    def test_no_pairs(self, tmp_path):
        result = split_and_encode(str(tmp_path), job_id="4", engine=FakeEngine(FakeTranscoder()))
        assert result["status"] == "error"
        assert result["message"] == "no cue+image pairs found"

    def test_partial_failure(self, tmp_path):
        make_disc(tmp_path / "CD1", ["A", "B"])
        make_disc(tmp_path / "CD2", ["C", "D"])
        # The probe of CD2 reports a shorter file than its CUE describes
        (tmp_path / "CD2" / "disc.cue").write_text(
            build_cue([("C", "00:00:00"), ("D", "10:00:00")], file_name="disc.flac"),
            encoding="utf-8",
        )

        result = split_and_encode(str(tmp_path), job_id="5", engine=FakeEngine(FakeTranscoder()))

        assert result["status"] == "partial"
        assert result["message"] == "1 succeeded, 1 failed"
        failed = result["details"][1]
        assert failed["status"] == "error"
        assert failed["message"].startswith("Audio does not match CUE")

    def test_all_pairs_failed(self, album_dir):
        engine = FakeEngine(FakeTranscoder(duration=None))

        result = split_and_encode(str(album_dir), job_id="6", engine=engine)

        assert result["status"] == "error"
        assert result["message"] == "all 1 pair(s) failed"
        assert "Unable to read audio duration" in result["details"][0]["message"]

    def test_progress_is_tagged_with_pair(self, tmp_path):
        make_disc(tmp_path / "CD1", ["A", "B"])
        make_disc(tmp_path / "CD2", ["C", "D"])
        seen = []

        split_and_encode(str(tmp_path), job_id="7", engine=FakeEngine(FakeTranscoder()),
                         progress_func=lambda idx, count, progress: seen.append((idx, count, progress.phase)))

        assert seen[0] == (1, 2, "prepare_input")
        assert seen[-1] == (2, 2, "done")
        assert {idx for idx, _, _ in seen} == {1, 2}

    def test_engine_load_failure(self, album_dir, monkeypatch):
        from cue_tracks.core import job_orchestrator
        from cue_tracks.core.errors import TranscoderUnavailableError

        def broken_engine():
            raise TranscoderUnavailableError("ffmpeg binary not found: ffmpeg")

        monkeypatch.setattr(job_orchestrator, "load_engine", broken_engine)

        result = split_and_encode(str(album_dir), job_id="8")

        assert result["status"] == "error"
        assert "not found" in result["message"]


class TestProcessPair:
    """Per-pair overrides and error mapping."""

    def run_pair(self, album_dir, transcoder, **kwargs):
        messages = []
        result = process_pair(
            FakeEngine(transcoder),
            str(album_dir / "album.cue"),
            str(album_dir / "album.flac"),
            str(album_dir),
            "9",
            messages.append,
            "/tmp/9.log",
            **kwargs,
        )
        return result, messages

    def test_discovered_cover_is_used(self, album_dir, png_bytes):
        (album_dir / "folder.png").write_bytes(png_bytes)
        transcoder = FakeTranscoder()

        result, _ = self.run_pair(album_dir, transcoder, tracks=[1])

        assert result["status"] == "success"
        assert len(transcoder.cover_calls) == 1

    def test_album_override(self, album_dir):
        transcoder = FakeTranscoder()

        self.run_pair(album_dir, transcoder, tracks=[1], album_info=AlbumInfo(album="Deluxe"))

        assert "album=Deluxe" in transcoder.split_calls[0]

    def test_track_selection_error(self, album_dir):
        result, messages = self.run_pair(album_dir, FakeTranscoder(), tracks=[9])

        assert result["status"] == "error"
        assert result["log"] == "/tmp/9.log"
        assert "Valid tracks: 1, 2, 3, 4, 5" in result["message"]
        assert any("❌" in m for m in messages)

    def test_unexpected_error_is_reported(self, album_dir):
        class ExplodingTranscoder(FakeTranscoder):
            def write_file(self, name, data):
                raise RuntimeError("disk on fire")

        result, messages = self.run_pair(album_dir, ExplodingTranscoder())

        assert result == {
            "status": "error",
            "cue": str(album_dir / "album.cue"),
            "message": "disk on fire",
            "log": "/tmp/9.log",
        }
        assert any("Stack trace" in m for m in messages)
