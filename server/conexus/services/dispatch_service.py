"""Notification dispatcher: bounded-concurrency batch sends with progress tracking."""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Protocol, Sequence
from uuid import UUID, uuid4

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import NotFoundError
from ..core.observability import metrics_collector
from ..models.event import Event
from ..models.registration import Registration
from ..schemas.dispatch import DispatchState

logger = logging.getLogger(__name__)


class TransientDispatchError(Exception):
    """A single notification could not be delivered.

    Attributes:
        status_code: HTTP status returned by the endpoint, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class NotificationTarget:
    """Everything a sender needs about one recipient."""

    registration_id: str
    name: str
    email: str
    event_title: str


class NotificationSender(Protocol):
    async def send(self, target: NotificationTarget) -> None:
        """Deliver one notification or raise."""


class HttpNotificationSender:
    """Posts certificate notifications to the delivery endpoint.

    Any transport failure or non-2xx answer is raised as
    ``TransientDispatchError``; retry policy belongs to the caller.
    """

    def __init__(self, endpoint_url: str | None = None, timeout: float | None = None) -> None:
        """Initialize the sender.

        Args:
            endpoint_url: Delivery endpoint; defaults to the configured URL.
            timeout: Per-request timeout in seconds.
        """
        self.endpoint_url = endpoint_url or settings.notification_endpoint_url
        self.timeout = timeout or settings.dispatch_send_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
            )
        return self._client

    async def send(self, target: NotificationTarget) -> None:
        """Send one notification.

        Raises:
            TransientDispatchError: If the endpoint is unreachable or refuses the request.
        """
        payload = {
            "registrationId": target.registration_id,
            "name": target.name,
            "email": target.email,
            "eventTitle": target.event_title,
        }

        try:
            response = await self._get_client().post(self.endpoint_url, json=payload)
        except httpx.RequestError as e:
            raise TransientDispatchError(f"Notification endpoint unreachable: {e}") from e

        if response.is_error:
            raise TransientDispatchError(
                f"Notification endpoint returned status {response.status_code}",
                status_code=response.status_code,
            )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@dataclass(frozen=True)
class DispatchRunSnapshot:
    """Consistent view of a run's counters."""

    run_id: str
    state: DispatchState
    processed: int
    total: int
    errors: int


class BatchDispatchRun:
    """
    One batch of notifications sent by a fixed pool of workers.

    Every target is attempted exactly once. A failed or timed-out send is
    counted and skipped; nothing aborts the batch. Counters are only
    written from the event loop, and ``snapshot`` may be called from any
    thread.
    """

    def __init__(
        self,
        targets: Sequence[NotificationTarget],
        sender: NotificationSender,
        pool_width: Optional[int] = None,
        send_timeout: Optional[float] = None,
        run_id: Optional[str] = None,
    ):
        self.run_id = run_id or uuid4().hex
        self.targets = tuple(targets)
        self.total = len(self.targets)
        self.sender = sender
        self.pool_width = pool_width or settings.dispatch_pool_width
        self.send_timeout = send_timeout or settings.dispatch_send_timeout_seconds
        self.created_at = datetime.utcnow()
        self.completed_at: Optional[datetime] = None

        self._state = DispatchState.IDLE
        self._processed = 0
        self._errors = 0
        self._counter_lock = threading.Lock()
        self._done = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> DispatchState:
        with self._counter_lock:
            return self._state

    @property
    def is_complete(self) -> bool:
        return self.state is DispatchState.COMPLETE

    def snapshot(self) -> DispatchRunSnapshot:
        """Read state and counters together."""
        with self._counter_lock:
            return DispatchRunSnapshot(
                run_id=self.run_id,
                state=self._state,
                processed=self._processed,
                total=self.total,
                errors=self._errors,
            )

    def start(self) -> None:
        """
        Start sending on the running event loop.

        Raises:
            RuntimeError: If the run was already started
        """
        with self._counter_lock:
            if self._state is not DispatchState.IDLE:
                raise RuntimeError(f"Dispatch run {self.run_id} already started")
            self._state = DispatchState.SENDING

        logger.info(
            "Dispatch run started",
            extra={"run_id": self.run_id, "total": self.total, "pool_width": self.pool_width}
        )

        if self.total == 0:
            self._mark_complete()
            return

        metrics_collector.dispatch_run_started()
        self._task = asyncio.create_task(self._run_pool(), name=f"dispatch-{self.run_id}")

    async def wait(self, timeout: Optional[float] = None) -> DispatchRunSnapshot:
        """Wait until every target has been attempted."""
        await asyncio.wait_for(self._done.wait(), timeout=timeout)
        return self.snapshot()

    async def cancel(self) -> None:
        """Stop in-flight sends. Only used on shutdown."""
        if self._task is None or self._task.done():
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.warning(
                "Dispatch run cancelled",
                extra={"run_id": self.run_id, **self._counters()}
            )

    async def _run_pool(self) -> None:
        queue: asyncio.Queue[NotificationTarget] = asyncio.Queue()
        for target in self.targets:
            queue.put_nowait(target)

        workers = [
            asyncio.create_task(self._worker(queue, index))
            for index in range(min(self.pool_width, self.total))
        ]

        try:
            await asyncio.gather(*workers)
        except asyncio.CancelledError:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            metrics_collector.dispatch_run_finished()

    async def _worker(self, queue: "asyncio.Queue[NotificationTarget]", index: int) -> None:
        while True:
            try:
                target = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            failed = True
            try:
                await asyncio.wait_for(self.sender.send(target), timeout=self.send_timeout)
                failed = False
            except asyncio.TimeoutError:
                logger.warning(
                    "Notification send timed out",
                    extra={
                        "run_id": self.run_id,
                        "registration_id": target.registration_id,
                        "timeout_seconds": self.send_timeout,
                        "worker": index
                    }
                )
            except Exception as e:
                # Counted and skipped; one recipient never aborts the batch
                logger.warning(
                    "Notification send failed",
                    extra={
                        "run_id": self.run_id,
                        "registration_id": target.registration_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "worker": index
                    }
                )

            self._record_attempt(failed)

    def _record_attempt(self, failed: bool) -> None:
        with self._counter_lock:
            self._processed += 1
            if failed:
                self._errors += 1
            finished = self._processed == self.total

        metrics_collector.record_notification("failed" if failed else "sent")

        if finished:
            self._mark_complete()

    def _mark_complete(self) -> None:
        with self._counter_lock:
            self._state = DispatchState.COMPLETE
            self.completed_at = datetime.utcnow()

        self._done.set()
        logger.info("Dispatch run complete", extra={"run_id": self.run_id, **self._counters()})

    def _counters(self) -> dict:
        snapshot = self.snapshot()
        return {"processed": snapshot.processed, "total": snapshot.total, "errors": snapshot.errors}


class DispatchRegistry:
    """Owns dispatch runs and hands out their handles."""

    def __init__(self):
        self._runs: Dict[str, BatchDispatchRun] = {}
        self._lock = threading.Lock()

    def start(
        self,
        targets: Sequence[NotificationTarget],
        sender: NotificationSender,
        pool_width: Optional[int] = None,
        send_timeout: Optional[float] = None,
    ) -> BatchDispatchRun:
        """Create, register and start a run."""
        run = BatchDispatchRun(targets, sender, pool_width=pool_width, send_timeout=send_timeout)
        with self._lock:
            self._runs[run.run_id] = run
        run.start()
        return run

    def get(self, run_id: str) -> BatchDispatchRun:
        """
        Look up a run by handle.

        Raises:
            NotFoundError: If the handle is unknown or was pruned
        """
        with self._lock:
            run = self._runs.get(run_id)
        if run is None:
            raise NotFoundError(resource_type="dispatch_run", resource_id=run_id)
        return run

    def prune(self, older_than: timedelta, now: Optional[datetime] = None) -> int:
        """Forget completed runs that finished before ``now - older_than``."""
        cutoff = (now or datetime.utcnow()) - older_than
        with self._lock:
            expired = [
                run_id for run_id, run in self._runs.items()
                if run.is_complete and run.completed_at is not None and run.completed_at <= cutoff
            ]
            for run_id in expired:
                del self._runs[run_id]
        return len(expired)

    async def shutdown(self) -> None:
        """Cancel runs that are still sending."""
        with self._lock:
            runs = list(self._runs.values())
        await asyncio.gather(*(run.cancel() for run in runs), return_exceptions=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)


# Global registry and sender, replaceable through FastAPI dependency overrides
dispatch_registry = DispatchRegistry()
_notification_sender: Optional[HttpNotificationSender] = None


def get_dispatch_registry() -> DispatchRegistry:
    return dispatch_registry


def get_notification_sender() -> NotificationSender:
    global _notification_sender
    if _notification_sender is None:
        _notification_sender = HttpNotificationSender()
    return _notification_sender


async def close_notification_sender() -> None:
    global _notification_sender
    if _notification_sender is not None:
        await _notification_sender.close()
        _notification_sender = None


class DispatchService:
    """Service that turns registration IDs into dispatch runs."""

    def __init__(
        self,
        db: AsyncSession,
        registry: Optional[DispatchRegistry] = None,
        sender: Optional[NotificationSender] = None,
    ):
        self.db = db
        self.registry = registry or dispatch_registry
        self.sender = sender or get_notification_sender()

    async def resolve_targets(self, target_ids: Iterable[UUID]) -> List[NotificationTarget]:
        """
        Load recipients in request order, dropping repeated IDs.

        Raises:
            NotFoundError: If any registration does not exist
        """
        ordered_ids = list(dict.fromkeys(target_ids))
        if not ordered_ids:
            return []

        result = await self.db.execute(
            select(Registration, Event.title)
            .join(Event, Event.id == Registration.event_id)
            .where(Registration.id.in_(ordered_ids))
        )
        found = {
            registration.id: NotificationTarget(
                registration_id=str(registration.id),
                name=registration.owner_name,
                email=registration.owner_email,
                event_title=title,
            )
            for registration, title in result.all()
        }

        missing = [target_id for target_id in ordered_ids if target_id not in found]
        if missing:
            raise NotFoundError(resource_type="registration", resource_id=str(missing[0]))

        return [found[target_id] for target_id in ordered_ids]

    async def dispatch_batch(self, target_ids: Iterable[UUID]) -> BatchDispatchRun:
        """
        Start notifying a batch of registrations.

        Returns immediately with the run handle; progress is polled through
        ``get_run_status``.

        Args:
            target_ids: Registrations to notify

        Returns:
            The started run

        Raises:
            NotFoundError: If any registration does not exist
        """
        targets = await self.resolve_targets(target_ids)
        run = self.registry.start(targets, self.sender)

        logger.info(
            "Dispatch batch accepted",
            extra={"run_id": run.run_id, "total": run.total}
        )

        return run

    def get_run_status(self, run_id: str) -> DispatchRunSnapshot:
        """
        Current state of a run.

        Raises:
            NotFoundError: If the handle is unknown
        """
        return self.registry.get(run_id).snapshot()
