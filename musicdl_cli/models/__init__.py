"""
Data Models Layer.

This package contains the Pydantic and dataclass models that define the core
data structures used throughout the application: configuration, search
candidates, tag sets and fetch outcomes.
"""

from .candidate import Candidate, CandidateKind, ReleaseInfo, TrackInfo, VideoInfo
from .config import AppConfig
from .tags import AssetKind, DownloadResult, FetchOutcome, TagSet

__all__ = [
    "AppConfig",
    "AssetKind",
    "Candidate",
    "CandidateKind",
    "DownloadResult",
    "FetchOutcome",
    "ReleaseInfo",
    "TagSet",
    "TrackInfo",
    "VideoInfo",
]
