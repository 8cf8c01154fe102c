"""
Post-commit ledger notifications.

Use cases publish events only after their unit of work has committed.
Publishing just enqueues; a separate dispatcher drains the queue on a
background schedule and delivers each event:

    Use case ──commit──▶ QueuedEventSink ──queue──▶ NotificationDispatcher
                                                        │
                                                  ┌─────┴──────────┐
                                                  │ Channels:      │
                                                  │  • Log         │
                                                  │  • Webhook     │
                                                  └────────────────┘

Nothing in this module ever raises into a financial operation: publish
failures and delivery failures are logged and counted, then dropped.

Usage:
    sink = QueuedEventSink()
    dispatcher = NotificationDispatcher(sink, webhook_urls=[...])
    dispatcher.start()      # drain every poll_seconds
    ...
    dispatcher.stop()       # final flush, then shutdown
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.domain.ledger.entities import EventKind, LedgerEvent
from app.domain.ledger.ports import EventSink
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


def _json_safe(value: Any) -> Any:
    """Convert Decimals and datetimes inside a payload for JSON transport."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def event_to_dict(event: LedgerEvent) -> dict:
    """Serialize a LedgerEvent for JSON transport."""
    return {
        "account_number": event.account_number,
        "kind": event.kind.value,
        "occurred_at": event.occurred_at.isoformat() if event.occurred_at else None,
        "payload": _json_safe(event.payload),
    }


# ══════════════════════════════════════════════════════════════════════
# Sink
# ══════════════════════════════════════════════════════════════════════


class QueuedEventSink(EventSink):
    """EventSink that only enqueues; delivery happens elsewhere.

    Args:
        maxsize: Queue bound; events beyond it are dropped with a warning.
        clock: Timestamp source for ``occurred_at``.
    """

    def __init__(
        self, maxsize: int = 10_000, clock: Clock = utcnow
    ) -> None:
        self._queue: queue.Queue[LedgerEvent] = queue.Queue(maxsize=maxsize)
        self._clock = clock
        self.dropped = 0

    def publish(
        self, account_number: str, kind: EventKind, payload: dict[str, Any]
    ) -> None:
        """Enqueue an event without blocking. Never raises."""
        event = LedgerEvent(
            account_number=account_number,
            kind=kind,
            payload=dict(payload),
            occurred_at=self._clock(),
        )
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.warning(
                "Notification queue full; dropped %s for %s", kind.value, account_number
            )

    def take(self, limit: int) -> list[LedgerEvent]:
        """Remove and return up to ``limit`` queued events."""
        batch: list[LedgerEvent] = []
        while len(batch) < limit:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return batch

    def pending(self) -> int:
        return self._queue.qsize()


# ══════════════════════════════════════════════════════════════════════
# Dispatcher
# ══════════════════════════════════════════════════════════════════════


@dataclass
class DeliveryResult:
    """Result of delivering one event to one channel."""

    channel: str
    success: bool
    error: str | None = None
    latency_ms: float = 0.0


@dataclass
class DrainSummary:
    """Summary of one drain pass."""

    events: int = 0
    results: list[DeliveryResult] = field(default_factory=list)

    @property
    def failures(self) -> int:
        return sum(1 for r in self.results if not r.success)


class NotificationDispatcher:
    """Background worker that delivers queued ledger events.

    Args:
        sink: The queue events are drained from.
        webhook_urls: URLs each event is POSTed to as JSON.
        poll_seconds: Interval between drain passes.
        batch_size: Maximum events handled per pass.
        timeout: HTTP timeout in seconds for webhook calls.
        http_client: Optional pre-built ``httpx.Client`` (tests inject a mock transport).
            An injected client is never closed by the dispatcher.
    """

    def __init__(
        self,
        sink: QueuedEventSink,
        webhook_urls: Optional[list[str]] = None,
        poll_seconds: float = 2.0,
        batch_size: int = 100,
        timeout: float = 5.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._sink = sink
        self._webhook_urls: list[str] = []
        for url in webhook_urls or []:
            self.add_webhook(url)
        self._poll_seconds = poll_seconds
        self._batch_size = batch_size
        self._timeout = timeout
        self._client: httpx.Client | None = http_client
        self._owns_client = http_client is None
        self._scheduler: BackgroundScheduler | None = None
        self._drain_lock = threading.Lock()
        self._stats = {
            "events_delivered": 0,
            "webhook_calls": 0,
            "errors": 0,
        }

    @property
    def stats(self) -> dict:
        return dict(self._stats)

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def add_webhook(self, url: str) -> None:
        """Register a webhook URL.

        Raises:
            ValueError: If the URL is not http/https.
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            msg = f"Invalid webhook URL scheme: {parsed.scheme}"
            raise ValueError(msg)
        if url not in self._webhook_urls:
            self._webhook_urls.append(url)
            logger.info("Webhook registered: %s", url)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start draining on an interval."""
        if self._scheduler is not None:
            logger.warning("NotificationDispatcher already running.")
            return

        self._scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        self._scheduler.add_job(
            self.drain,
            IntervalTrigger(seconds=self._poll_seconds),
            id="drain_notifications",
            name="Ledger notification delivery",
        )
        self._scheduler.start()
        logger.info("NotificationDispatcher started (every %ss).", self._poll_seconds)

    def stop(self) -> None:
        """Stop the schedule, flush every queued event, release the HTTP client.

        The dispatcher can be started again afterwards; an owned client is
        rebuilt on the next delivery.
        """
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        while self._sink.pending():
            if not self.drain().events:
                break
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None
        logger.info("NotificationDispatcher stopped.")

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def drain(self) -> DrainSummary:
        """Deliver up to one batch of queued events. Never raises."""
        with self._drain_lock:
            events = self._sink.take(self._batch_size)
            summary = DrainSummary(events=len(events))
            for event in events:
                summary.results.append(self._log_event(event))
                for url in self._webhook_urls:
                    summary.results.append(self._send_webhook(url, event))
                self._stats["events_delivered"] += 1

        if summary.failures:
            logger.warning(
                "Delivered %d events with %d channel failures",
                summary.events,
                summary.failures,
            )
        return summary

    def _log_event(self, event: LedgerEvent) -> DeliveryResult:
        logger.info("Notify %s: %s", event.account_number, event.kind.value)
        return DeliveryResult(channel="log", success=True)

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def _send_webhook(self, url: str, event: LedgerEvent) -> DeliveryResult:
        """POST one event to a webhook URL."""
        start = time.monotonic()
        try:
            resp = self._http().post(
                url,
                json=event_to_dict(event),
                headers={"X-Ledger-Event": event.kind.value},
            )
            resp.raise_for_status()
            self._stats["webhook_calls"] += 1
            elapsed = (time.monotonic() - start) * 1000
            return DeliveryResult(
                channel=f"webhook:{url}", success=True, latency_ms=round(elapsed, 2)
            )

        except Exception as exc:
            self._stats["errors"] += 1
            elapsed = (time.monotonic() - start) * 1000
            logger.error("Webhook POST to %s failed: %s", url, exc)
            return DeliveryResult(
                channel=f"webhook:{url}",
                success=False,
                error=str(exc),
                latency_ms=round(elapsed, 2),
            )
