from __future__ import annotations
"""
IndexService: the one object the app builds at startup and hands to routes.

Owns the event sink, the store, the indexer, the spatial assigner and the
broadcast gateway. run() is the store's only writer: it drains the sink in
batches, applies each event, then places whatever the batch left without a
position.
"""

import asyncio
import logging
from typing import Optional, Sequence

from filesphere.models import (
    DirectoryRemoved,
    FileDiscovered,
    FileRecord,
    FileRemoved,
    IndexEvent,
    ScanComplete,
)
from filesphere.repositories.index_store import IndexStore
from filesphere.schemas import ConnectedMessage
from .broadcast import BroadcastGateway
from .indexer import Indexer
from .spatial import SpatialAssigner
from .visibility import LodThresholds, VisibilityResult, query

log = logging.getLogger(__name__)

_MAX_BATCH = 500


class IndexService:
    def __init__(
        self,
        root: str,
        *,
        store: Optional[IndexStore] = None,
        assigner: Optional[SpatialAssigner] = None,
        gateway: Optional[BroadcastGateway] = None,
        thresholds: Optional[LodThresholds] = None,
    ) -> None:
        self.sink: asyncio.Queue = asyncio.Queue()
        self.store = store or IndexStore()
        self.assigner = assigner or SpatialAssigner()
        self.gateway = gateway or BroadcastGateway()
        self.thresholds = thresholds or LodThresholds()
        self.indexer = Indexer(root, self.sink)
        self._pump_task: Optional[asyncio.Task] = None

        self.store.subscribe(self.gateway.publish)

    @property
    def root(self) -> str:
        return self.indexer.root

    async def start(self) -> None:
        if self._pump_task is None:
            self._pump_task = asyncio.create_task(self.run())
        await self.indexer.start()

    async def stop(self) -> None:
        await self.indexer.stop()
        task, self._pump_task = self._pump_task, None
        if task is not None:
            # apply what the indexer already queued, then stop
            await self.drain()
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.gateway.close()

    async def run(self) -> None:
        while True:
            event = await self.sink.get()
            batch = [event]
            while len(batch) < _MAX_BATCH:
                try:
                    batch.append(self.sink.get_nowait())
                except asyncio.QueueEmpty:
                    break
            try:
                self.apply_batch(batch)
            finally:
                for _ in batch:
                    self.sink.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        if self._pump_task is None:
            batch = []
            while not self.sink.empty():
                batch.append(self.sink.get_nowait())
                self.sink.task_done()
            self.apply_batch(batch)
            return
        await self.sink.join()

    def apply_batch(self, events: Sequence[IndexEvent]) -> None:
        for event in events:
            try:
                self.apply(event)
            except Exception:
                log.exception("index_service: failed to apply %s", type(event).__name__)
        try:
            self.place_unpositioned()
        except Exception:
            log.exception("index_service: positioning failed after %d events", len(events))

    def apply(self, event: IndexEvent) -> None:
        if isinstance(event, FileDiscovered):
            self.store.add_or_replace(self._keep_position(event.record))
        elif isinstance(event, FileRemoved):
            self.store.remove(event.file_id)
        elif isinstance(event, DirectoryRemoved):
            for file_id in self.store.ids_under(event.path):
                self.store.remove(file_id)
        elif isinstance(event, ScanComplete):
            self.store.mark_scan_complete(event.timestamp)
        else:
            log.warning("index_service: unknown event %r", event)

    def _keep_position(self, record: FileRecord) -> FileRecord:
        """A rediscovered file with an unchanged size keeps the position it has."""
        if record.position is not None:
            return record
        current = self.store.get(record.id)
        if current is None or current.position is None or current.size != record.size:
            return record
        return record.model_copy(update={"position": current.position})

    def place_unpositioned(self) -> int:
        placed = self.assigner.assign_batch(self.store.unpositioned())
        n = 0
        for file_id, position in placed.items():
            if self.store.set_position(file_id, position):
                n += 1
        return n

    # ---- Read-side helpers ------------------------------------------------- #

    def hello(self) -> dict:
        return ConnectedMessage(total_files=self.store.count()).to_wire()

    def rescan(self) -> bool:
        return self.indexer.rescan()

    def visible(self, viewpoint: Sequence[float], view_distance: float) -> VisibilityResult:
        return query(self.store.positioned(), viewpoint, view_distance, self.thresholds)
