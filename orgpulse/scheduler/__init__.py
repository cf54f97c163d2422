"""
orgpulse — Scheduler

Detection runs per organization, multi-organization fan-out, analysis job
records and the pipeline composition root.
"""

from .jobs import AnalysisJobStore
from .pipeline import Pipeline, build_pipeline
from .processor import PatternDetectionProcessor, ProgressCallback
from .runner import DetectionRunner

__all__ = [
    "AnalysisJobStore",
    "DetectionRunner",
    "PatternDetectionProcessor",
    "Pipeline",
    "ProgressCallback",
    "build_pipeline",
]
