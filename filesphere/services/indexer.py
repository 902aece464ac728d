from __future__ import annotations
"""
Filesystem indexer: one initial walk plus a live watch, both feeding the same
ordered event sink (an asyncio.Queue consumed by the index service).

Threads never touch the sink directly. The walk runs via asyncio.to_thread and
the watchdog observer runs its own thread; both hand events to the loop with
call_soon_threadsafe, and the loop side drops anything arriving after stop().
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from filesphere.models import (
    DirectoryRemoved,
    EntrySkipped,
    FileDiscovered,
    FileRemoved,
    IndexEvent,
    ScanComplete,
    ScanOutcome,
)
from .identity import build_record, identify, is_hidden, now_iso

log = logging.getLogger(__name__)


@dataclass
class ScanReport:
    discovered: int = 0
    skipped: List[EntrySkipped] = field(default_factory=list)
    completed_at: Optional[str] = None
    cancelled: bool = False


def walk(root: str, cancelled: Optional[threading.Event] = None) -> Iterator[ScanOutcome]:
    """
    Depth-first walk yielding one tagged outcome per file.

    Unreadable directories and entries that vanish mid-walk come back as
    EntrySkipped; the walk carries on with the next entry. Symlinks are not
    followed.
    """
    stack = [root]
    while stack:
        if cancelled is not None and cancelled.is_set():
            return
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            yield EntrySkipped(current, f"{type(e).__name__}: {e.strerror or e}")
            continue

        subdirs = []
        for entry in entries:
            if cancelled is not None and cancelled.is_set():
                return
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    st = entry.stat(follow_symlinks=False)
                    yield FileDiscovered(build_record(entry.path, st))
            except OSError as e:
                yield EntrySkipped(entry.path, f"{type(e).__name__}: {e.strerror or e}")
        # reversed so the stack pops siblings in name order
        stack.extend(reversed(subdirs))


class _WatchHandler(FileSystemEventHandler):
    def __init__(self, root: str, emit: Callable[[IndexEvent], None]) -> None:
        self.root = root
        self.emit = emit

    def dispatch(self, event: FileSystemEvent) -> None:
        # an exception escaping here would end the observer thread
        try:
            super().dispatch(event)
        except Exception:
            log.exception("indexer: watch event %s failed", getattr(event, "event_type", "?"))

    def on_created(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(event.src_path)
        if event.is_directory:
            self._directory_added(path)
        else:
            self._discovered(path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(event.src_path)
        if event.is_directory:
            # no per-child events when a whole directory goes away
            self._directory_removed(path)
        else:
            self._removed(path)

    def on_moved(self, event: FileSystemEvent) -> None:
        src, dest = os.fsdecode(event.src_path), os.fsdecode(event.dest_path)
        if event.is_directory:
            self._directory_removed(src)
            self._directory_added(dest)
        else:
            self._removed(src)
            self._discovered(dest)

    def _inside(self, path: str) -> bool:
        try:
            return os.path.commonpath([self.root, path]) == self.root
        except ValueError:
            return False

    def _discovered(self, path: str) -> None:
        if is_hidden(path, self.root):
            return
        try:
            st = os.stat(path, follow_symlinks=False)
            record = build_record(path, st)
        except OSError as e:
            log.warning("indexer: watch could not stat %s: %s", path, e)
            return
        self.emit(FileDiscovered(record))

    def _removed(self, path: str) -> None:
        if is_hidden(path, self.root):
            return
        self.emit(FileRemoved(identify(path), path))

    def _directory_removed(self, path: str) -> None:
        if is_hidden(path, self.root):
            return
        self.emit(DirectoryRemoved(path))

    def _directory_added(self, path: str) -> None:
        if not self._inside(path) or is_hidden(path, self.root):
            return
        for outcome in walk(path):
            if isinstance(outcome, EntrySkipped):
                log.warning("indexer: skipped %s (%s)", outcome.path, outcome.reason)
            elif not is_hidden(outcome.record.absolute_path, self.root):
                self.emit(outcome)


class Indexer:
    def __init__(self, root: str, sink: asyncio.Queue) -> None:
        self.root = os.path.abspath(root)
        self.sink = sink
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._observer: Optional[Observer] = None
        self._scan_task: Optional[asyncio.Task] = None
        self._scanning = False
        self._stopped = False
        self._cancel_scan = threading.Event()

    @property
    def scanning(self) -> bool:
        return self._scanning

    @property
    def watching(self) -> bool:
        return self._observer is not None

    # ---- Lifecycle --------------------------------------------------------- #

    async def start(self) -> None:
        """Arm the live watch, then kick off the initial walk in the background."""
        self._loop = asyncio.get_running_loop()
        self._stopped = False
        self._cancel_scan.clear()
        await self._start_watch()
        self.rescan()

    async def stop(self) -> None:
        """Stop scan and watch; no event reaches the sink once this returns."""
        self._stopped = True
        self._cancel_scan.set()

        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            try:
                await asyncio.wait_for(asyncio.to_thread(observer.join), timeout=5.0)
            except asyncio.TimeoutError:
                log.warning("indexer: observer thread did not exit within timeout")

        task, self._scan_task = self._scan_task, None
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass

    def rescan(self) -> bool:
        """Schedule a full walk; returns False if one is already running."""
        if self._stopped or self._scanning:
            return False
        if self._scan_task is not None and not self._scan_task.done():
            return False
        self._scan_task = asyncio.get_running_loop().create_task(self.scan())
        return True

    async def wait_for_scan(self) -> None:
        if self._scan_task is not None:
            await asyncio.shield(self._scan_task)

    # ---- Initial / on-demand scan ----------------------------------------- #

    async def scan(self) -> Optional[ScanReport]:
        if self._scanning:
            return None
        self._scanning = True
        self._loop = asyncio.get_running_loop()
        try:
            log.info("indexer: scanning %s", self.root)
            report = await asyncio.to_thread(self._scan_sync)
            if report.cancelled:
                log.info("indexer: scan cancelled after %d files", report.discovered)
                return report
            report.completed_at = now_iso()
            self._emit(ScanComplete(report.completed_at))
            log.info(
                "indexer: scan complete (%d files, %d skipped)",
                report.discovered,
                len(report.skipped),
            )
            return report
        finally:
            self._scanning = False

    def _scan_sync(self) -> ScanReport:
        report = ScanReport()
        for outcome in walk(self.root, self._cancel_scan):
            if isinstance(outcome, EntrySkipped):
                log.warning("indexer: skipped %s (%s)", outcome.path, outcome.reason)
                report.skipped.append(outcome)
                continue
            report.discovered += 1
            self._emit_threadsafe(outcome)
        report.cancelled = self._cancel_scan.is_set()
        return report

    # ---- Live watch -------------------------------------------------------- #

    async def _start_watch(self) -> None:
        handler = _WatchHandler(self.root, self._emit_threadsafe)
        observer = Observer()
        observer.daemon = True
        try:
            observer.schedule(handler, self.root, recursive=True)
            await asyncio.to_thread(observer.start)
        except OSError as e:
            log.error("indexer: cannot watch %s: %s", self.root, e)
            return
        self._observer = observer
        log.info("indexer: watching %s", self.root)

    # ---- Sink -------------------------------------------------------------- #

    def _emit(self, event: IndexEvent) -> None:
        if self._stopped:
            return
        self.sink.put_nowait(event)

    def _emit_threadsafe(self, event: IndexEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed() or self._stopped:
            return
        try:
            loop.call_soon_threadsafe(self._emit, event)
        except RuntimeError:
            # loop shut down between the check and the call
            pass
