import asyncio
import unittest
from unittest.mock import AsyncMock
from watchsync.clients.coordinator_client import CoordinatorClient
from watchsync.errors import TransportError
from watchsync.models import PlayIntent
from watchsync.notices import NoticeBoard

class TestCoordinatorClient(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.notices = NoticeBoard()
        self.snapshots = []
        self.counts = []
        self.client = CoordinatorClient(self.notices, self.snapshots.append, self.counts.append)

    async def test_session_state_accepts_coordinator_field_names(self):
        await self.client._on_session_state({
            "version": 3,
            "videoId": "dQw4w9WgXcQ",
            "isPlaying": True,
            "playbackTimeAtLastEvent": 10.0,
            "lastEventAt": 1000,
            "serverTime": 1200,
        })
        self.assertEqual(len(self.snapshots), 1)
        self.assertEqual(self.snapshots[0].media_id, "dQw4w9WgXcQ")
        self.assertEqual(self.snapshots[0].coordinator_time, 1200)

    async def test_malformed_session_state_dropped(self):
        await self.client._on_session_state({"version": "x"})
        await self.client._on_session_state({
            "version": 1, "isPlaying": False, "playbackTimeAtLastEvent": -1,
            "lastEventAt": 0, "coordinatorTime": 0,
        })
        self.assertEqual(self.snapshots, [])

    async def test_viewer_count_shapes(self):
        await self.client._on_viewer_count(4)
        await self.client._on_viewer_count({"count": 2})
        await self.client._on_viewer_count({"count": -1})
        self.assertEqual(self.counts, [4, 2])
        self.assertEqual(self.client.viewer_count, 2)

    async def test_send_requires_connection(self):
        with self.assertRaises(TransportError):
            await self.client.send(PlayIntent(current_time=1.0))

    async def test_send_emits_by_alias(self):
        self.client.sio.connected = True
        self.client.sio.emit = AsyncMock()
        await self.client.send(PlayIntent(current_time=1.5))
        self.client.sio.emit.assert_awaited_once_with("play", {"currentTime": 1.5})

    async def test_reconnect_requests_fresh_state(self):
        self.client.sio.connected = True
        self.client.sio.emit = AsyncMock()
        await self.client._on_connect()
        self.client.sio.emit.assert_not_awaited()

        await self.client._on_connect()
        self.client.sio.emit.assert_awaited_once_with("request-current-state", {})
        self.assertEqual(self.notices.recent()[-1].level, "success")

    async def test_connect_error_is_a_notice(self):
        await self.client._on_connect_error("refused")
        self.assertEqual(self.notices.recent()[-1].message, "Failed to connect to server. Retrying...")

    async def test_server_disconnect_reconnects(self):
        self.client.connect = AsyncMock()
        await self.client._on_disconnect(self.client.sio.reason.SERVER_DISCONNECT)
        await self.client._on_disconnect(self.client.sio.reason.TRANSPORT_ERROR)
        # let the scheduled reconnect run
        await asyncio.sleep(0.01)
        self.client.connect.assert_awaited_once()
        self.assertEqual(self.notices.recent()[-1].message, "Disconnected from server")

    async def test_close_cancels_pending_reconnect(self):
        started = asyncio.Event()

        async def slow_connect():
            started.set()
            await asyncio.sleep(10)

        self.client.connect = slow_connect
        await self.client._on_disconnect(self.client.sio.reason.SERVER_DISCONNECT)
        task = self.client._reconnect_task
        self.assertIsNotNone(task)
        await started.wait()

        await self.client.close()
        self.assertTrue(task.cancelled())
        self.assertIsNone(self.client._reconnect_task)

if __name__ == '__main__':
    unittest.main()
