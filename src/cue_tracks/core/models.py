"""Data types shared by the parser, planner and extraction pipeline"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional


@dataclass
class CueTrack:
    """A TRACK entry of a CUE sheet. Only tracks with an INDEX 01 are schedulable."""
    track: int
    title: Optional[str] = None
    performer: Optional[str] = None
    index: Optional[str] = None
    date: Optional[str] = None
    genre: Optional[str] = None


@dataclass
class CueSheet:
    """Album metadata plus the tracks in the order they appear in the CUE file."""
    file: Optional[str] = None
    album: Optional[str] = None
    performer: Optional[str] = None
    date: Optional[str] = None
    genre: Optional[str] = None
    catalog: Optional[str] = None
    comment: Optional[str] = None
    disc_number: Optional[float] = None
    total_discs: Optional[float] = None
    tracks: List[CueTrack] = field(default_factory=list)


@dataclass
class TrackSplitPlan:
    """Time window of one schedulable track, ready for ffmpeg's -ss/-t arguments."""
    track: int
    start_seconds: float
    end_seconds: Optional[float]
    start_time: str
    duration_seconds: Optional[float]
    duration_time: Optional[str]
    title: Optional[str] = None
    index: Optional[str] = None
    performer: Optional[str] = None
    date: Optional[str] = None
    genre: Optional[str] = None

    def to_dict(self):
        return asdict(self)


@dataclass
class TrackSheetRow:
    no: int
    title: str
    performer: Optional[str]
    index_raw: str
    start_seconds: float
    duration_seconds: float
    duration: str


@dataclass
class CueValidationResult:
    ok: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class AlbumInfo:
    """Caller-supplied album metadata. Non-empty fields win over the CUE sheet."""
    album: Optional[str] = None
    performer: Optional[str] = None
    date: Optional[str] = None
    genre: Optional[str] = None


@dataclass
class SplitProgress:
    status: str
    phase: str
    step: Optional[str] = None
    track: Optional[int] = None
    track_title: Optional[str] = None
    done: int = 0
    total: int = 0
    eta_seconds: Optional[int] = None

    def to_dict(self):
        return asdict(self)


@dataclass
class TrackOutput:
    name: str
    data: bytes
    plan: TrackSplitPlan


@dataclass
class SplitResult:
    """
    Final output of an extraction job.

    A single produced track is returned as-is (``archived`` is False and
    ``name``/``data`` are the track file). Otherwise ``data`` holds a ZIP
    archive of every entry in ``tracks``.
    """
    name: str
    data: bytes
    tracks: List[TrackOutput]
    archived: bool = False
