"""Use-case services wiring the core to its collaborators."""

from .compiler import FileCompiler
from .events import EventPublisher, InProcessPublisher
from .listing import ListService
from .recon_manager import ReconManager
from .reconciliation import ReconciliationService

__all__ = [
    "FileCompiler",
    "EventPublisher",
    "InProcessPublisher",
    "ListService",
    "ReconManager",
    "ReconciliationService",
]
