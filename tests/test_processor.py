"""Tests for the queue workers."""

import queue
import threading
from types import SimpleNamespace

import pytest

from cue_tracks.utils.database import get_database, reset_database
from cue_tracks.workers import processor
from cue_tracks.workers.processor import run_job, start_workers, stop_workers

from conftest import FakeEngine, FakeTranscoder


@pytest.fixture
def job_db(tmp_path, monkeypatch):
    reset_database()
    monkeypatch.setenv("CUE_TRACKS_DB", str(tmp_path / "jobs.db"))
    monkeypatch.setenv("CUE_TRACKS_LOG_DIR", str(tmp_path / "logs"))
    yield get_database()
    reset_database()


@pytest.fixture
def fake_engine(monkeypatch):
    """Route split_and_encode to an in-memory engine."""
    engine = FakeEngine(FakeTranscoder())
    real_split = processor.split_and_encode

    def split_with_fake_engine(*args, **kwargs):
        return real_split(*args, engine=engine, **kwargs)

    monkeypatch.setattr(processor, "split_and_encode", split_with_fake_engine)
    return engine


class TestRunJob:
    """A job's outcome and live progress end up in the store."""

    def test_success_is_stored(self, job_db, fake_engine, album_dir):
        job_db.create_job("1", str(album_dir), {"tracks": [1, 2]})

        result = run_job("1", str(album_dir), {"tracks": [1, 2]}, SimpleNamespace(no_cleanup=False))

        assert result["status"] == "success"
        job = job_db.get_job("1")
        assert job["status"] == "success"
        assert job["details"][0]["output"].endswith("Test Album.zip")
        assert job["progress"]["phase"] == "done"
        assert job["progress"]["pair"] == 1
        assert job["progress"]["pairs"] == 1
        assert job["progress"]["done"] == 2

    def test_album_override_is_applied(self, job_db, fake_engine, album_dir):
        job_db.create_job("1", str(album_dir))
        options = {"tracks": [1], "album": {"album": "Deluxe", "genre": "Jazz"}}

        run_job("1", str(album_dir), options, SimpleNamespace(no_cleanup=False))

        split = fake_engine.transcoder.split_calls[0]
        assert "album=Deluxe" in split
        assert "genre=Jazz" in split

    def test_failure_is_stored(self, job_db, fake_engine, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        job_db.create_job("1", str(empty))

        run_job("1", str(empty), {}, SimpleNamespace(no_cleanup=False))

        job = job_db.get_job("1")
        assert job["status"] == "error"
        assert job["message"] == "no cue+image pairs found"


class TestWorkers:
    """Queue consumption and shutdown."""

    def test_worker_processes_queue(self, job_db, fake_engine, album_dir):
        task_queue = queue.Queue()
        shutdown_event = threading.Event()
        args = SimpleNamespace(no_cleanup=False)
        job_db.create_job("1", str(album_dir))

        threads = start_workers(task_queue, shutdown_event, args, 1)
        task_queue.put(("1", str(album_dir), {"tracks": [3]}))
        task_queue.join()
        stop_workers(task_queue, threads, 1)

        assert not threads[0].is_alive()
        assert job_db.get_job("1")["status"] == "success"
        assert (album_dir / "03 - Song 3.flac").is_file()
