"""In-memory ZIP assembly for split tracks"""
import io
import zipfile


class ZipArchiver:
    """Collects named byte buffers and produces a single ZIP archive"""

    def __init__(self):
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", compression=zipfile.ZIP_DEFLATED)
        self._data = None

    def add_entry(self, name, data):
        if self._data is not None:
            raise RuntimeError("Archive already finalized")
        self._zip.writestr(name, data)

    def finalize(self):
        """Close the archive and return its bytes"""
        if self._data is None:
            self._zip.close()
            self._data = self._buffer.getvalue()
        return self._data
