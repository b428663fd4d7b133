"""Segmentation, pagination and orchestration runtime.

Architecture:
    The runtime consists of:
    - estimator.py: Daily volume estimates (VolumeEstimator)
    - segmenter.py: Interval segmentation (IntervalSegmenter, SegmentationPolicy)
    - paginator.py: Cursor pagination past the per-query cap (CursorPaginator)
    - orchestrator.py: Concurrent fetch with retry/backoff (FetchOrchestrator)
    - rate_limit.py: Shared request rate limiter
    - telemetry.py: Structured logging
"""

from __future__ import annotations

from .estimator import DailyVolumeEstimator, KnownDatesEstimator, VolumeEstimator
from .orchestrator import FetchOrchestrator
from .paginator import CursorMode, CursorPaginator
from .rate_limit import RequestRateLimiter
from .segmenter import Granularity, GranularityTier, IntervalSegmenter, SegmentationPolicy

__all__ = [
    "CursorMode",
    "CursorPaginator",
    "DailyVolumeEstimator",
    "FetchOrchestrator",
    "Granularity",
    "GranularityTier",
    "IntervalSegmenter",
    "KnownDatesEstimator",
    "RequestRateLimiter",
    "SegmentationPolicy",
    "VolumeEstimator",
]
