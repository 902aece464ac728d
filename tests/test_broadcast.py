import asyncio
from unittest import IsolatedAsyncioTestCase

from filesphere.services.broadcast import BroadcastGateway


class _FakeWS:
    def __init__(self, *, fail=False, block=False, accept_gate=None, refuse=False):
        self.accept_gate = accept_gate
        self.refuse = refuse
        self.sent = []
        self.accepted = False
        self.closed = False
        self.fail = fail
        self.block = block
        self._gate = asyncio.Event()

    async def accept(self):
        if self.accept_gate is not None:
            await self.accept_gate.wait()
        if self.refuse:
            raise RuntimeError("handshake failed")
        self.accepted = True

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("socket gone")
        if self.block:
            await self._gate.wait()
        self.sent.append(payload)

    async def close(self):
        self.closed = True


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


class BroadcastGatewayTests(IsolatedAsyncioTestCase):
    async def test_hello_then_fan_out(self):
        gw = BroadcastGateway(queue_size=8)
        a, b = _FakeWS(), _FakeWS()
        await gw.connect(a, hello={"type": "connected", "totalFiles": 3})
        await gw.connect(b)
        gw.publish({"type": "file-removed", "id": "x"})
        await _settle()
        self.assertTrue(a.accepted)
        self.assertEqual(a.sent, [{"type": "connected", "totalFiles": 3}, {"type": "file-removed", "id": "x"}])
        self.assertEqual(b.sent, [{"type": "file-removed", "id": "x"}])
        await gw.close()
        self.assertEqual(len(gw), 0)
        self.assertTrue(a.closed and b.closed)

    async def test_failed_send_drops_subscriber(self):
        gw = BroadcastGateway()
        bad, good = _FakeWS(fail=True), _FakeWS()
        await gw.connect(bad)
        await gw.connect(good)
        gw.publish({"type": "file-removed", "id": "1"})
        await _settle()
        self.assertNotIn(bad, gw.active)
        self.assertTrue(bad.closed)
        self.assertEqual(good.sent, [{"type": "file-removed", "id": "1"}])
        await gw.close()

    async def test_slow_subscriber_is_dropped_without_blocking(self):
        gw = BroadcastGateway(queue_size=2)
        slow, fast = _FakeWS(block=True), _FakeWS()
        await gw.connect(slow)
        await gw.connect(fast)
        for i in range(10):
            gw.publish({"type": "file-removed", "id": str(i)})
            await asyncio.sleep(0)
        await _settle()
        self.assertNotIn(slow, gw.active)
        self.assertIn(fast, gw.active)
        self.assertEqual([m["id"] for m in fast.sent], [str(i) for i in range(10)])
        await gw.close()

    async def test_publish_without_subscribers(self):
        gw = BroadcastGateway()
        gw.publish({"type": "scan-complete", "totalFiles": 0})
        await gw.disconnect(_FakeWS())
        self.assertEqual(len(gw), 0)

    async def test_messages_published_during_accept_are_delivered(self):
        gw = BroadcastGateway()
        gate = asyncio.Event()
        ws = _FakeWS(accept_gate=gate)
        connecting = asyncio.create_task(gw.connect(ws, hello={"type": "connected", "totalFiles": 0}))
        await _settle()
        self.assertFalse(ws.accepted)

        gw.publish({"type": "file-removed", "id": "during-accept"})
        gate.set()
        await connecting
        await _settle()
        self.assertEqual(
            ws.sent,
            [{"type": "connected", "totalFiles": 0}, {"type": "file-removed", "id": "during-accept"}],
        )
        await gw.close()

    async def test_failed_handshake_unregisters(self):
        gw = BroadcastGateway()
        with self.assertRaises(RuntimeError):
            await gw.connect(_FakeWS(refuse=True))
        self.assertEqual(len(gw), 0)
        gw.publish({"type": "scan-complete", "totalFiles": 0})
