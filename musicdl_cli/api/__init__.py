"""
Metadata API Layer.

This package handles all communication with the remote metadata services
(MusicBrainz, LRCLIB, Cover Art Archive).
"""

from .client import MetadataAPIClient
from .rate_limiter import AdaptiveRateLimiter

__all__ = ["AdaptiveRateLimiter", "MetadataAPIClient"]
