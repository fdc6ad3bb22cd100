"""Background workers for the registrations service."""

from .base import BaseWorker
from .dispatch_reaper import DispatchRunReaper
from .manager import WorkerManager, worker_manager

__all__ = ["BaseWorker", "DispatchRunReaper", "WorkerManager", "worker_manager"]
