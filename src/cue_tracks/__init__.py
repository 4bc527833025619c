"""
CUE Tracks - split CUE sheet + audio image pairs into tagged FLAC tracks

This package provides functionality to:
- Parse CUE sheets (with legacy code page recovery) into split plans
- Validate split plans against the measured audio duration
- Drive ffmpeg through per-track extraction, tagging and cover embedding
- Serve a multi-threaded HTTP job daemon with persistent job progress
"""

__version__ = "1.0.0"
__author__ = "CUE Tracks Project"
