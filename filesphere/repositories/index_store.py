from __future__ import annotations
"""
index_store.py: authoritative in-memory map of id -> FileRecord.

Single writer (the index service pump), many readers. Every call takes the
lock so it observes a consistent snapshot; consecutive calls may see
different states (pages can shift when records arrive between them).
"""

import logging
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from filesphere.models import FileRecord, Position
from filesphere.schemas import FileAddedMessage, FileRemovedMessage, ScanCompleteMessage

log = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class IndexStore:
    def __init__(self) -> None:
        self._records: Dict[str, FileRecord] = {}
        self._last_scan_time: Optional[str] = None
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    # ---- Observers --------------------------------------------------------- #

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, message: Dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._listeners)
        for listener in targets:
            try:
                listener(message)
            except Exception:
                log.exception("index_store: listener failed for %s", message.get("type"))

    # ---- Writes ------------------------------------------------------------ #

    def add_or_replace(self, record: FileRecord) -> None:
        with self._lock:
            self._records[record.id] = record
        self._notify(FileAddedMessage(file=record).to_wire())

    def remove(self, file_id: str) -> bool:
        with self._lock:
            removed = self._records.pop(file_id, None)
        if removed is None:
            return False
        self._notify(FileRemovedMessage(id=file_id).to_wire())
        return True

    def mark_scan_complete(self, timestamp: str) -> None:
        with self._lock:
            self._last_scan_time = timestamp
            total = len(self._records)
        self._notify(ScanCompleteMessage(total_files=total).to_wire())

    def set_position(self, file_id: str, position: Position) -> bool:
        """Attach a position once; placed or missing records are left alone."""
        with self._lock:
            rec = self._records.get(file_id)
            if rec is None or rec.position is not None:
                return False
            self._records[file_id] = rec.model_copy(update={"position": tuple(position)})
            return True

    # ---- Reads ------------------------------------------------------------- #

    def get(self, file_id: str) -> Optional[FileRecord]:
        with self._lock:
            return self._records.get(file_id)

    def page(self, cursor: int, limit: int) -> Tuple[List[FileRecord], Optional[int]]:
        """
        Return up to `limit` records from `cursor` in enumeration order.

        next_cursor is only set when a full page came back; a short page
        (including an empty one) means "stop paging".
        """
        cursor = max(0, int(cursor))
        if limit <= 0:
            return [], None
        with self._lock:
            values = list(self._records.values())
        records = values[cursor:cursor + limit]
        next_cursor = cursor + len(records) if len(records) == limit else None
        return records, next_cursor

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def last_scan_time(self) -> Optional[str]:
        with self._lock:
            return self._last_scan_time

    def ids_under(self, directory: str) -> List[str]:
        prefix = directory.rstrip(os.sep) + os.sep
        with self._lock:
            return [r.id for r in self._records.values() if r.absolute_path.startswith(prefix)]

    def positioned(self) -> List[FileRecord]:
        with self._lock:
            return [r for r in self._records.values() if r.position is not None]

    def unpositioned(self) -> List[FileRecord]:
        with self._lock:
            return [r for r in self._records.values() if r.position is None]
