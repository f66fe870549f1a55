import asyncio
import unittest
from watchsync.config import settings
from watchsync.engine import Disposition
from tests.fakes import FakeSurface, Rig, make_ready, snap

class TestLocalActionTracker(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        settings.DRIFT_THRESHOLD_SECONDS = 0.35
        settings.REMOTE_APPLY_SETTLE_SECONDS = 0.2
        settings.LOCAL_ACTION_WINDOW_SECONDS = 0.1
        self.rig = Rig()
        self.surface = FakeSurface(current_time=12.5)
        make_ready(self.rig.lifecycle, self.surface)

    async def test_play_applies_locally_then_emits(self):
        self.assertTrue(await self.rig.tracker.play())
        self.assertEqual(self.surface.commands(), ["play_video"])
        self.assertEqual(self.rig.transport.sent, [("play", {"currentTime": 12.5})])
        self.assertTrue(self.rig.state.has_user_interacted)

    async def test_pause_emits_current_time(self):
        await self.rig.tracker.pause()
        self.assertEqual(self.surface.commands(), ["pause_video"])
        self.assertEqual(self.rig.transport.sent, [("pause", {"currentTime": 12.5})])

    async def test_relative_seek(self):
        await self.rig.tracker.seek(10)
        self.assertEqual(self.surface.calls, [("seek_to", 22.5, True)])
        self.assertEqual(self.rig.transport.sent, [("seek", {"currentTime": 22.5})])

    async def test_seek_back_stops_at_zero(self):
        await self.rig.tracker.seek(-30)
        self.assertEqual(self.rig.transport.sent, [("seek", {"currentTime": 0.0})])

    async def test_echo_is_suppressed_while_action_in_flight(self):
        await self.rig.tracker.play()
        echo = snap(1, playing=True, position=12.5, last_event_at=1000, coordinator_time=1050)
        self.assertEqual(self.rig.reconciler.consume(echo), Disposition.SUPPRESSED)
        self.assertEqual(self.surface.commands(), ["play_video"])

    async def test_flag_clears_after_window(self):
        await self.rig.tracker.pause()
        self.assertTrue(self.rig.state.is_local_action_in_flight)
        await asyncio.sleep(0.15)
        self.assertFalse(self.rig.state.is_local_action_in_flight)
        self.assertEqual(self.rig.reconciler.consume(snap(1, position=40.0)), Disposition.APPLIED)

    async def test_refused_when_disconnected(self):
        self.rig.transport.connected = False
        self.assertFalse(await self.rig.tracker.play())
        self.assertEqual(self.surface.calls, [])
        self.assertFalse(self.rig.state.is_local_action_in_flight)
        self.assertFalse(self.rig.state.has_user_interacted)

    async def test_refused_without_ready_player(self):
        self.rig.lifecycle.session.ready = False
        self.assertFalse(await self.rig.tracker.pause())
        self.assertEqual(self.rig.transport.sent, [])

    async def test_command_failure_still_clears_flag(self):
        self.surface.fail_on.add("play_video")
        self.assertFalse(await self.rig.tracker.play())
        self.assertEqual(self.rig.transport.sent, [])
        self.assertEqual(self.rig.notices.recent()[-1].level, "warning")
        await asyncio.sleep(0.15)
        self.assertFalse(self.rig.state.is_local_action_in_flight)

    async def test_send_failure_is_reported(self):
        self.rig.transport.fail = True
        self.assertFalse(await self.rig.tracker.pause())
        self.assertEqual(self.surface.commands(), ["pause_video"])
        self.assertEqual(self.rig.notices.recent()[-1].message, "Disconnected from server")

    async def test_change_media_sends_position_and_state(self):
        self.rig.lifecycle.session.player_state = 1
        self.assertTrue(await self.rig.tracker.change_media(" https://youtu.be/xyz "))
        self.assertEqual(self.rig.transport.sent, [
            ("change-media", {"identifier": "https://youtu.be/xyz", "currentTime": 12.5, "isPlaying": True})
        ])
        self.assertEqual(self.surface.calls, [])

    async def test_change_media_requires_identifier_and_connection(self):
        self.assertFalse(await self.rig.tracker.change_media("   "))
        self.rig.transport.connected = False
        self.assertFalse(await self.rig.tracker.change_media("xyz"))
        self.assertEqual(self.rig.transport.sent, [])

if __name__ == '__main__':
    unittest.main()
