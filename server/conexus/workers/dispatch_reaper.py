"""Worker that forgets finished dispatch runs."""

import logging
from datetime import timedelta
from typing import Optional

from ..core.config import settings
from ..services.dispatch_service import DispatchRegistry, dispatch_registry
from .base import BaseWorker

logger = logging.getLogger(__name__)


class DispatchRunReaper(BaseWorker):
    """Prunes completed dispatch runs once their retention period has passed."""

    def __init__(
        self,
        registry: Optional[DispatchRegistry] = None,
        interval_seconds: Optional[float] = None,
        retention_seconds: Optional[int] = None,
    ):
        super().__init__(
            name="dispatch_reaper",
            interval_seconds=interval_seconds or settings.dispatch_reaper_interval_seconds,
        )
        self.registry = registry or dispatch_registry
        self.retention = timedelta(
            seconds=settings.dispatch_run_retention_seconds if retention_seconds is None else retention_seconds
        )

    async def process(self) -> None:
        removed = self.registry.prune(self.retention)
        if removed:
            logger.info(
                "Pruned finished dispatch runs",
                extra={"removed": removed, "remaining": len(self.registry)}
            )
