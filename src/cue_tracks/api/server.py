"""HTTP server implementation"""
import os
import json
from http.server import BaseHTTPRequestHandler, HTTPServer

from ..core.job_orchestrator import get_log_path
from ..utils.helpers import safe_print
from ..utils.database import get_database


def parse_process_request(body):
    """
    Validate the body of a POST /process request.

    Args:
        body: Raw request body bytes

    Returns:
        Tuple of (path, options dictionary)

    Raises:
        ValueError: If the body is not valid or misses the path
    """
    data = json.loads(body)
    if not isinstance(data, dict) or not isinstance(data.get("path"), str) or not data["path"]:
        raise ValueError("missing path")

    options = {}
    tracks = data.get("tracks")
    if tracks is not None:
        if not isinstance(tracks, list) or not all(
            isinstance(t, int) and not isinstance(t, bool) for t in tracks
        ):
            raise ValueError("tracks must be a list of track numbers")
        options["tracks"] = tracks

    cover = data.get("cover")
    if cover is not None:
        if not isinstance(cover, str) or not cover:
            raise ValueError("cover must be a path or URL")
        options["cover"] = cover

    album = data.get("album")
    if album is not None:
        if not isinstance(album, dict):
            raise ValueError("album must be an object")
        options["album"] = {
            k: str(album[k]) for k in ("album", "performer", "date", "genre") if album.get(k)
        }

    return data["path"], options


class CueSplitHandler(BaseHTTPRequestHandler):
    """HTTP request handler for CUE splitting operations"""

    # Class variable to hold the task queue
    task_queue = None

    def log_message(self, format, *args):
        """Override to provide more detailed logging"""
        safe_print(f"[HTTP] {self.address_string()} - {format % args}")

    def _json(self, data, code=200):
        """Send JSON response"""
        body = json.dumps(data).encode()
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_POST(self):
        """Handle POST requests"""
        if self.path == "/process":
            length = int(self.headers.get("Content-Length", 0))
            body = self.rfile.read(length)
            try:
                path, options = parse_process_request(body)
            except ValueError as e:
                safe_print(f"❌ Invalid request: {e}")
                return self._json({"error": f"invalid request: {e}"}, 400)

            db = get_database()
            job_id = db.get_next_job_id()
            db.create_job(job_id, path, options)

            if self.task_queue:
                self.task_queue.put((job_id, path, options))

            safe_print(f"📥 New job queued: {job_id} for path: {path}")
            return self._json({"job_id": job_id, "status": "queued"})

        self._json({"error": "unknown endpoint"}, 404)

    def do_GET(self):
        """Handle GET requests"""
        if self.path == "/status":
            db = get_database()
            all_jobs = db.get_all_jobs()
            return self._json(all_jobs)
        elif self.path.startswith("/status/"):
            job_id = self.path.split("/")[-1]
            db = get_database()
            job = db.get_job(job_id)
            if job:
                self._json({"job_id": job_id, **job})
            else:
                self._json({"error": "job not found"}, 404)
        elif self.path.startswith("/log/"):
            job_id = os.path.basename(self.path)
            log_path = get_log_path(job_id)
            if job_id and os.path.exists(log_path):
                with open(log_path, "r", encoding="utf-8", errors="replace") as f:
                    self._json({"job_id": job_id, "log": f.read()})
            else:
                self._json({"error": "log not found"}, 404)
        else:
            self._json({"message": "endpoints: /process, /status, /status/<jobid>, /log/<jobid>"}, 200)


def start_server(host, port, task_queue, shutdown_event):
    """
    Start the HTTP server.

    Args:
        host: Host address to bind to
        port: Port number to listen on
        task_queue: Queue for submitting processing tasks
        shutdown_event: Threading event for graceful shutdown

    Returns:
        HTTPServer instance
    """
    CueSplitHandler.task_queue = task_queue

    server = HTTPServer((host, port), CueSplitHandler)
    server.timeout = 1.0  # Poll every second to check shutdown_event

    safe_print(f"🚀 Server listening on {host}:{port}")
    safe_print("📡 API Endpoints:")
    safe_print("   POST /process       - Submit a new CUE split job")
    safe_print("   GET  /status        - Check status of all jobs")
    safe_print("   GET  /status/<id>   - Check status and progress of specific job")
    safe_print("   GET  /log/<id>      - Retrieve log for specific job")
    safe_print("=" * 60)
    safe_print("🟢 Server is ready to accept requests")

    try:
        while not shutdown_event.is_set():
            server.handle_request()  # Will timeout after 1 second if no request
    except KeyboardInterrupt:
        safe_print("\n🛑 Keyboard interrupt received...")
    finally:
        safe_print("🔄 Shutting down server...")
        server.server_close()

    return server


def update_result(job_id, updates):
    """Update job result in database"""
    db = get_database()
    db.update_job(job_id, updates)


def update_progress(job_id, progress):
    """Store the latest progress event of a job in the database"""
    db = get_database()
    db.update_progress(job_id, progress)
