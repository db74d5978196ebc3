"""JSONL event logger for pipeline metrics."""

import json
import logging
import threading
import time
from pathlib import Path

log = logging.getLogger(__name__)


class MetricsLogger:
    """Thread-safe JSONL logger with periodic flushing.

    Filesystem and serialization problems are logged (rate limited) and the
    affected events dropped; metrics never fail a submission.
    """

    def __init__(self, metrics_config: dict):
        self._enabled = metrics_config.get("enabled", True)
        self._file_path = Path(metrics_config.get("file", "metrics.jsonl"))
        try:
            flush_interval = int(metrics_config.get("flush_interval", 10))
        except (TypeError, ValueError):
            flush_interval = 10
        self._flush_interval = max(1, flush_interval)

        self._buffer: list[str] = []
        self._lock = threading.Lock()
        # Serializes file writes so a flush returns only after earlier ones landed
        self._write_lock = threading.Lock()
        self._event_count = 0
        self._last_warn_s = 0.0
        self._warn_interval_s = 30.0

        if self._enabled:
            try:
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError:
                self._enabled = False
                self._warn("metrics path is not writable; disabling metrics")

    @property
    def enabled(self) -> bool:
        return self._enabled

    def log(self, event_type: str, **data) -> None:
        """Record an event with a wall-clock timestamp."""
        if not self._enabled:
            return

        entry = {"timestamp": time.time(), "event": event_type, **data}
        try:
            line = json.dumps(entry, ensure_ascii=False, default=lambda o: float(o))
        except (TypeError, ValueError, OverflowError):
            self._warn("metrics serialization failed; dropping event")
            return

        with self._lock:
            self._buffer.append(line)
            self._event_count += 1
            flush_due = self._event_count % self._flush_interval == 0

        if flush_due:
            # Callers sit on the event loop; the file write happens off it
            threading.Thread(target=self.flush, daemon=True).start()

    def flush(self) -> None:
        """Write all buffered events to disk. Blocks; call off the event loop."""
        with self._write_lock:
            with self._lock:
                lines, self._buffer = self._buffer, []
            if not lines:
                return
            try:
                with open(self._file_path, "a", encoding="utf-8") as f:
                    for line in lines:
                        f.write(line + "\n")
            except (OSError, ValueError):
                # Dropped either way to avoid unbounded growth while the disk is unwritable
                self._warn("metrics flush failed; dropping buffered events")

    def _warn(self, message: str) -> None:
        now = time.monotonic()
        if now - self._last_warn_s < self._warn_interval_s:
            return
        self._last_warn_s = now
        log.warning(message)
