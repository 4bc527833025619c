"""SQLite database for persistent job storage and live progress"""
import sqlite3
import json
import threading
import os
from contextlib import contextmanager


DEFAULT_DB_PATH = "/tmp/cue_tracks_jobs.db"
JSON_FIELDS = ("options", "details", "progress")


class JobDatabase:
    """Thread-safe SQLite database for job persistence"""

    def __init__(self, db_path=DEFAULT_DB_PATH):
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self.local = threading.local()
        self._init_db()

    def _get_connection(self):
        """Get a thread-local database connection"""
        if not hasattr(self.local, 'connection'):
            self.local.connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )
            self.local.connection.row_factory = sqlite3.Row
        return self.local.connection

    @contextmanager
    def _get_cursor(self):
        """Context manager for database operations"""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _init_db(self):
        """Initialize database schema"""
        with self._get_cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    job_id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    path TEXT NOT NULL,
                    options TEXT,
                    message TEXT,
                    log TEXT,
                    details TEXT,
                    progress TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_jobs_status
                ON jobs(status)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_jobs_created_at
                ON jobs(created_at DESC)
            """)

    @staticmethod
    def _row_to_job(row):
        job = dict(row)
        for field in JSON_FIELDS:
            if job.get(field):
                try:
                    job[field] = json.loads(job[field])
                except json.JSONDecodeError:
                    pass
        return job

    def create_job(self, job_id, path, options=None):
        """
        Create a new job entry.

        Args:
            job_id: Unique job identifier
            path: Path to process
            options: Optional dictionary of job options (track selection, cover)

        Returns:
            Dictionary with job information
        """
        with self._get_cursor() as cursor:
            cursor.execute("""
                INSERT INTO jobs (job_id, status, path, options)
                VALUES (?, ?, ?, ?)
            """, (job_id, "queued", path, json.dumps(options or {})))

        return {"job_id": job_id, "status": "queued", "path": path}

    def get_job(self, job_id):
        """
        Get a specific job by ID.

        Args:
            job_id: Job identifier

        Returns:
            Dictionary with job information or None if not found
        """
        with self._get_cursor() as cursor:
            cursor.execute("""
                SELECT job_id, status, path, options, message, log, details, progress
                FROM jobs
                WHERE job_id = ?
            """, (job_id,))

            row = cursor.fetchone()
            if row:
                return self._row_to_job(row)
            return None

    def get_all_jobs(self):
        """
        Get all jobs.

        Returns:
            Dictionary mapping job_id to job information
        """
        with self._get_cursor() as cursor:
            cursor.execute("""
                SELECT job_id, status, path, options, message, log, details, progress
                FROM jobs
                ORDER BY created_at DESC
            """)

            jobs = {}
            for row in cursor.fetchall():
                job = self._row_to_job(row)
                job_id = job.pop('job_id')
                jobs[job_id] = job

            return jobs

    def update_job(self, job_id, updates):
        """
        Update a job's information.

        Args:
            job_id: Job identifier
            updates: Dictionary of fields to update

        Returns:
            True if job was found and updated, False otherwise
        """
        allowed_fields = {'status', 'message', 'log', 'details', 'progress'}
        update_fields = {k: v for k, v in updates.items() if k in allowed_fields}

        if not update_fields:
            return True  # No valid fields to update

        for field in JSON_FIELDS:
            if field in update_fields:
                update_fields[field] = json.dumps(update_fields[field])

        set_clause = ", ".join(f"{field} = ?" for field in update_fields)
        values = list(update_fields.values())
        values.append(job_id)

        with self._get_cursor() as cursor:
            cursor.execute(f"""
                UPDATE jobs
                SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                WHERE job_id = ?
            """, values)

            return cursor.rowcount > 0

    def update_progress(self, job_id, progress):
        """
        Store the latest progress event of a running job.

        Args:
            job_id: Job identifier
            progress: Dictionary form of the progress event

        Returns:
            True if job was found and updated, False otherwise
        """
        return self.update_job(job_id, {"progress": progress})

    def get_next_job_id(self):
        """
        Get the next job ID (sequential).

        Returns:
            Next job ID as string
        """
        with self._get_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) as count FROM jobs")
            row = cursor.fetchone()
            return str(row['count'] + 1)

    def cleanup_old_jobs(self, days=30):
        """
        Delete jobs older than specified days.

        Args:
            days: Number of days to keep jobs

        Returns:
            Number of deleted jobs
        """
        with self._get_cursor() as cursor:
            cursor.execute("""
                DELETE FROM jobs
                WHERE created_at < datetime('now', '-' || ? || ' days')
            """, (days,))

            return cursor.rowcount

    def close(self):
        """Close the database connection"""
        if hasattr(self.local, 'connection'):
            self.local.connection.close()
            delattr(self.local, 'connection')


# Global database instance
_db_instance = None
_db_lock = threading.Lock()


def get_database(db_path=None):
    """
    Get the global database instance (singleton).

    Args:
        db_path: Path to database file (only used on first call)

    Returns:
        JobDatabase instance
    """
    global _db_instance

    if _db_instance is None:
        with _db_lock:
            if _db_instance is None:
                if db_path is None:
                    db_path = os.environ.get('CUE_TRACKS_DB', DEFAULT_DB_PATH)
                _db_instance = JobDatabase(db_path)

    return _db_instance


def reset_database():
    """Close and forget the global database instance"""
    global _db_instance
    with _db_lock:
        if _db_instance is not None:
            _db_instance.close()
        _db_instance = None
