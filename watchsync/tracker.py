import logging
from typing import Optional, Protocol
from .config import settings
from .engine import SnapshotReconciler
from .errors import SurfaceCommandError, TransportError
from .gate import InteractionGate
from .lifecycle import PlayerLifecycleManager
from .models import (ChangeMediaIntent, Intent, PauseIntent, PlayIntent,
                     RequestCurrentStateIntent, SeekIntent)
from .notices import NoticeBoard
from .state import StateManager
from .surface import PlaybackSurface, PlayerState

logger = logging.getLogger(__name__)

class IntentSink(Protocol):
    @property
    def connected(self) -> bool: ...

    async def send(self, intent: Intent) -> None: ...

class LocalActionTracker:
    """
    User-initiated controls.

    Every control is applied to the surface straight away and then sent to the
    coordinator. While is_local_action_in_flight is set the reconciler will not
    apply normal snapshots, so the echo of our own command cannot undo it.
    """

    def __init__(self, state_manager: StateManager, lifecycle: PlayerLifecycleManager,
                 gate: InteractionGate, reconciler: SnapshotReconciler,
                 transport: IntentSink, notices: NoticeBoard):
        self.sm = state_manager
        self.lifecycle = lifecycle
        self.gate = gate
        self.reconciler = reconciler
        self.transport = transport
        self.notices = notices

    async def play(self) -> bool:
        surface = self._begin("play")
        if surface is None:
            return False
        try:
            current = surface.get_current_time()
            surface.play_video()
        except Exception as e:
            self._command_failed("play", e)
            return False
        return await self._emit(PlayIntent(current_time=current))

    async def pause(self) -> bool:
        surface = self._begin("pause")
        if surface is None:
            return False
        try:
            current = surface.get_current_time()
            surface.pause_video()
        except Exception as e:
            self._command_failed("pause", e)
            return False
        return await self._emit(PauseIntent(current_time=current))

    async def seek(self, offset: float) -> bool:
        """Relative seek; negative offsets rewind."""
        surface = self._begin("seek")
        if surface is None:
            return False
        try:
            target = max(0.0, surface.get_current_time() + offset)
            surface.seek_to(target, True)
        except Exception as e:
            self._command_failed("seek", e)
            return False
        return await self._emit(SeekIntent(current_time=target))

    async def change_media(self, identifier: str) -> bool:
        identifier = (identifier or "").strip()
        if not identifier:
            return False
        if not self.transport.connected:
            self.notices.error("Not connected to server. Please wait...")
            return False

        self.gate.open()
        current = 0.0
        surface = self.lifecycle.surface
        if surface is not None:
            try:
                current = surface.get_current_time() or 0.0
            except Exception as e:
                logger.warning(f"Could not read current time before media change: {e}")
        is_playing = bool(self.lifecycle.session and self.lifecycle.session.player_state == PlayerState.PLAYING)

        return await self._emit(ChangeMediaIntent(identifier=identifier, current_time=current, is_playing=is_playing))

    async def request_sync(self) -> bool:
        """
        Manual "click to sync": counts as a user gesture, asks the coordinator
        for fresh state and applies whatever is cached right away.
        """
        self.sm.state.is_manual_sync_requested = True
        self.gate.open()

        sent = False
        if self.transport.connected:
            sent = await self._emit(RequestCurrentStateIntent())

        if self.sm.state.pending_snapshot is not None and self.lifecycle.is_ready:
            logger.info("Applying cached session state")
            self.reconciler.flush_pending(manual=True)
        return sent

    def _begin(self, command: str) -> Optional[PlaybackSurface]:
        surface = self.lifecycle.surface
        if surface is None or not self.transport.connected:
            logger.info(f"Ignoring {command}: player ready={surface is not None} connected={self.transport.connected}")
            return None

        self.sm.pulse("is_local_action_in_flight", settings.LOCAL_ACTION_WINDOW_SECONDS)
        self.gate.open()
        return surface

    def _command_failed(self, command: str, e: Exception):
        err = SurfaceCommandError(command, e)
        logger.error(str(err), exc_info=True)
        self.notices.warning(f"Could not {command} the video")

    async def _emit(self, intent: Intent) -> bool:
        try:
            await self.transport.send(intent)
        except TransportError as e:
            logger.error(f"Failed to send {intent.event}: {e}")
            self.notices.error("Disconnected from server")
            return False
        return True
