from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

log = logging.getLogger(__name__)


class _Subscriber:
    def __init__(self, ws: WebSocket, queue_size: int) -> None:
        self.ws = ws
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.task: Optional[asyncio.Task] = None


class BroadcastGateway:
    """
    Fan-out of index mutations to connected WebSocket clients.

    publish() never waits: each client has its own bounded queue drained by
    a sender task. A client whose queue fills up (slow reader) or whose send
    fails (gone) is dropped instead of holding up the index.

    publish() must be called from the event loop thread.
    """

    def __init__(self, queue_size: int = 256) -> None:
        self.queue_size = max(1, int(queue_size))
        self.active: Dict[WebSocket, _Subscriber] = {}
        self._closing: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self.active)

    async def connect(self, ws: WebSocket, hello: Optional[Dict[str, Any]] = None) -> None:
        """Register, then accept. `hello` is delivered before any published message."""
        sub = _Subscriber(ws, self.queue_size)
        if hello is not None:
            sub.queue.put_nowait(hello)
        # registered before the handshake so publishes during accept() are queued
        self.active[ws] = sub
        try:
            await ws.accept()
        except Exception:
            self.active.pop(ws, None)
            raise
        if self.active.get(ws) is not sub:
            # overflowed and dropped while accepting
            return
        sub.task = asyncio.create_task(self._pump(sub))

    async def disconnect(self, ws: WebSocket) -> None:
        sub = self.active.pop(ws, None)
        if sub is not None:
            await self._teardown(sub)

    def publish(self, payload: Dict[str, Any]) -> None:
        for ws, sub in list(self.active.items()):
            try:
                sub.queue.put_nowait(payload)
            except asyncio.QueueFull:
                log.warning("broadcast: dropping slow subscriber (%d queued)", sub.queue.qsize())
                self._drop(ws)

    async def close(self) -> None:
        for ws in list(self.active):
            await self.disconnect(ws)
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    def _drop(self, ws: WebSocket) -> None:
        sub = self.active.pop(ws, None)
        if sub is None:
            return
        task = asyncio.get_running_loop().create_task(self._teardown(sub))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _teardown(self, sub: _Subscriber) -> None:
        if sub.task is not None and sub.task is not asyncio.current_task():
            sub.task.cancel()
            try:
                await sub.task
            except asyncio.CancelledError:
                pass
        try:
            await sub.ws.close()
        except Exception:
            pass

    async def _pump(self, sub: _Subscriber) -> None:
        while True:
            payload = await sub.queue.get()
            try:
                await sub.ws.send_json(payload)
            except Exception as e:
                log.info("broadcast: subscriber send failed (%s); disconnecting", type(e).__name__)
                await self.disconnect(sub.ws)
                return
