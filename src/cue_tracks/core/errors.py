"""Exceptions raised by the splitting pipeline"""


class SplitError(Exception):
    """Base error for a track extraction job."""


class TranscoderError(SplitError):
    """Raised when an ffmpeg invocation exits with a non-zero code."""

    def __init__(self, message, exit_code=None, command=None, log_tail=None):
        super().__init__(message)
        self.exit_code = exit_code
        self.command = command or []
        self.log_tail = log_tail or []


class TranscoderUnavailableError(SplitError):
    """Raised when the ffmpeg binary cannot be located or started."""


class DurationProbeError(SplitError):
    """Raised when the audio duration cannot be read from the probe log."""


class CuePlanError(SplitError):
    """Raised when the CUE sheet yields no usable or no valid split plan."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class TrackSelectionError(SplitError):
    """Raised when none of the requested track numbers exist in the plan."""


class OutputReadError(SplitError):
    """Raised when a finished track cannot be read back from the workspace."""


class CoverArtError(SplitError):
    """Raised when the cover image cannot be fetched or re-encoded."""
