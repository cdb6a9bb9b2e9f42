"""
Schedule Reminder Logging — stdlib logger setup plus a structured JSONL run log.

Implements:
- configure_logging: level + text/JSON formatter for the "schedule_reminder" logger tree
- FileLogger: Per-object-type, per-category JSONL files (daily rotation)
- AsyncLogQueue: In-memory queue with background flush (100ms / 50 entries)
- Log entry builders for run, configuration, timing and notification events
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

logger = logging.getLogger("schedule_reminder.engine.logging")

# Valid object types and their permitted categories
OBJECT_TYPE_CATEGORIES = {
    "runs": ["execution"],
    "configurations": ["execution", "errors"],
    "timings": ["errors"],
    "notifications": ["execution", "errors"],
}


# ---------------------------------------------------------------------------
# stdlib logger setup
# ---------------------------------------------------------------------------

class JsonFormatter(logging.Formatter):
    """One JSON object per line — for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str, separators=(",", ":"))


def configure_logging(level: str = "INFO", fmt: str = "text") -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Safe to call multiple times — replaces the handler it installed before.
    """
    root = logging.getLogger("schedule_reminder")
    root.setLevel(level.upper())

    for handler in list(root.handlers):
        if getattr(handler, "_schedule_reminder", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    handler._schedule_reminder = True
    root.addHandler(handler)
    return root


# ---------------------------------------------------------------------------
# Structured run log
# ---------------------------------------------------------------------------

class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Appends run log entries to <log_dir>/<object_type>/<category>/<YYYY-MM-DD>.jsonl.

    One lock per target file; the date in the file name is the local date at
    write time, so files roll over at midnight.
    """

    def __init__(self, log_dir: str = "logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[Path, threading.Lock] = defaultdict(threading.Lock)
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / obj_type / cat).mkdir(parents=True, exist_ok=True)

    def path_for(self, object_type: str, category: str, day: Optional[date] = None) -> Path:
        day = day or date.today()
        return self._log_dir / object_type / category / f"{day.isoformat()}.jsonl"

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Append entries, opening each target file once per batch."""
        by_path: Dict[Path, List[str]] = defaultdict(list)
        for entry in entries:
            by_path[self.path_for(entry.object_type, entry.category)].append(entry.to_json())

        for path, lines in by_path.items():
            with self._file_locks[path], open(path, "a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")


class AsyncLogQueue:
    """
    Bounded buffer between the orchestrator and FileLogger.

    push() never blocks; when the buffer is full the entry is dropped and
    counted. A daemon thread writes whatever has accumulated every
    flush_interval_ms, or sooner once flush_batch_size entries are waiting.
    stop() joins the thread and writes the remainder.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._writer = file_logger
        self._interval = flush_interval_ms / 1000.0
        self._batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._dropped = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="reminder-log-flush", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._flush(self._take(self._queue.qsize()))
        logger.debug(f"Run log queue stopped ({self._dropped} entries dropped)")

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False when it was dropped."""
        try:
            self._queue.put_nowait(entry)
        except Full:
            self._dropped += 1
            return False
        return True

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                first = self._queue.get(timeout=self._interval)
            except Empty:
                continue
            if self._queue.qsize() + 1 < self._batch_size:
                self._stopping.wait(self._interval)
            self._flush([first] + self._take(self._batch_size - 1))

    def _take(self, limit: int) -> List[LogEntry]:
        taken: List[LogEntry] = []
        while len(taken) < limit:
            try:
                taken.append(self._queue.get_nowait())
            except Empty:
                break
        return taken

    def _flush(self, batch: List[LogEntry]) -> None:
        if not batch:
            return
        try:
            self._writer.write_batch(batch)
        except OSError as e:
            logger.error(f"Run log write failed, {len(batch)} entries lost: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    run_id: Optional[str] = None,
    config_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    if run_id:
        entry["run_id"] = run_id
    if config_id:
        entry["config_id"] = config_id
    entry.update(extra)
    return entry


def log_run_event(
    event: str,
    run_id: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "INFO",
) -> LogEntry:
    """Build a run lifecycle entry (started, completed, aborted)."""
    data = _base_entry(event=event, level=level, run_id=run_id)
    if details:
        data["details"] = details
    return LogEntry("runs", "execution", data)


def log_configuration_processed(
    run_id: str,
    config_id: str,
    config_name: str,
    items: int,
    sent: int,
    failed: int,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a per-configuration outcome entry."""
    success = error is None
    data = _base_entry(
        event="configuration_processed" if success else "configuration_failed",
        level="INFO" if success else "ERROR",
        run_id=run_id,
        config_id=config_id,
        config_name=config_name,
        items=items,
        sent=sent,
        failed=failed,
    )
    if error:
        data["error"] = error
    return LogEntry("configurations", "execution" if success else "errors", data)


def log_timing_skipped(
    run_id: str,
    config_id: str,
    item_id: str,
    expression: str,
    error: str,
) -> LogEntry:
    """Build an entry for a timing expression that could not be evaluated."""
    data = _base_entry(
        event="timing_skipped",
        level="WARNING",
        run_id=run_id,
        config_id=config_id,
        item_id=item_id,
        expression=expression,
        error=error,
    )
    return LogEntry("timings", "errors", data)


def log_notification(
    run_id: str,
    config_id: str,
    item_id: str,
    expression: str,
    channel: str,
    success: bool,
    duration_ms: float,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a notification dispatch entry."""
    data = _base_entry(
        event="notification_sent" if success else "notification_failed",
        level="INFO" if success else "ERROR",
        run_id=run_id,
        config_id=config_id,
        item_id=item_id,
        expression=expression,
        channel=channel,
        duration_ms=duration_ms,
        success=success,
    )
    if status_code is not None:
        data["status_code"] = status_code
    if error:
        data["error"] = error
    return LogEntry("notifications", "execution" if success else "errors", data)


# ---------------------------------------------------------------------------
# Convenience: Global Log Queue Singleton
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = "logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Initialize the global run log queue."""
    global _global_queue
    file_logger = FileLogger(log_dir=log_dir)
    _global_queue = AsyncLogQueue(
        file_logger=file_logger,
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    """Get the global run log queue."""
    return _global_queue


def shutdown_logging() -> None:
    """Flush and stop the global run log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
