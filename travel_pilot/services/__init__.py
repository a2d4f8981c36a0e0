"""Service layer exports."""

from .analysis import (
    AnalysisOrchestrator,
    AnalysisState,
    AnalysisStatus,
    ConcurrentSubmitError,
)
from .image_acquisition import AcquiredImage, ImageAcquisition, ImageAcquisitionError
from .scan_sessions import ScanSession, ScanSessionStore

__all__ = [
    "AcquiredImage",
    "AnalysisOrchestrator",
    "AnalysisState",
    "AnalysisStatus",
    "ConcurrentSubmitError",
    "ImageAcquisition",
    "ImageAcquisitionError",
    "ScanSession",
    "ScanSessionStore",
]
