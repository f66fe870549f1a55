import logging
from enum import Enum
from typing import Optional
from .config import settings
from .errors import SurfaceCommandError
from .gate import InteractionGate
from .lifecycle import PlayerLifecycleManager
from .models import MediaSession, Snapshot
from .notices import NoticeBoard
from .state import StateManager
from .surface import PlaybackSurface

logger = logging.getLogger(__name__)

class Disposition(str, Enum):
    STALE = "stale"
    MEDIA_CHANGE = "media_change"
    DEFERRED = "deferred"
    MANUAL_SYNC = "manual_sync"
    AWAITING_INTERACTION = "awaiting_interaction"
    APPLIED = "applied"
    SUPPRESSED = "suppressed"

def compute_target_time(snapshot: Snapshot) -> float:
    """
    Position the shared session is at, extrapolated on the coordinator's clock.

    Paused sessions are frozen at playback_time_at_last_event. Playing sessions
    advance by the time elapsed between the last event and the moment the
    coordinator built the snapshot, so client wall clocks never matter.
    """
    if not snapshot.is_playing:
        return snapshot.playback_time_at_last_event

    elapsed_ms = snapshot.coordinator_time - snapshot.last_event_at
    return snapshot.playback_time_at_last_event + (elapsed_ms / 1000.0)

def clamp_target(target: float, surface: PlaybackSurface) -> float:
    target = max(0.0, target)
    if not settings.CLAMP_TO_DURATION:
        return target

    get_duration = getattr(surface, "get_duration", None)
    if get_duration is None:
        return target
    try:
        duration = get_duration()
    except Exception as e:
        logger.debug(f"Could not read media duration: {e}")
        return target
    if duration and duration > 0 and target > duration:
        logger.debug(f"Clamping target {target:.2f}s to media duration {duration:.2f}s")
        return duration
    return target

class SnapshotReconciler:
    def __init__(self, state_manager: StateManager, lifecycle: PlayerLifecycleManager,
                 gate: InteractionGate, notices: NoticeBoard):
        self.sm = state_manager
        self.lifecycle = lifecycle
        self.gate = gate
        self.notices = notices
        self._surface_version = 0  # newest version driven onto the surface

        lifecycle.on_ready(self._on_surface_ready)
        gate.on_open(self._on_gate_open)

    def consume(self, snapshot: Snapshot) -> Disposition:
        """Sole entry point for inbound snapshots."""
        state = self.sm.state
        logger.debug(
            f"Received snapshot v{snapshot.version}: media={snapshot.media_id} "
            f"playing={snapshot.is_playing} target={compute_target_time(snapshot):.2f}s"
        )

        # 1. Version control
        if not self.sm.accept_version(snapshot.version):
            logger.debug(f"Ignoring stale snapshot v{snapshot.version} (current: v{state.last_applied_version})")
            return Disposition.STALE

        # 2. Media change
        if snapshot.media_id and snapshot.media_id != self.lifecycle.media_id:
            logger.info(f"Media changed to: {snapshot.media_id}")
            self.lifecycle.begin_transition(snapshot.media_id)
            self.sm.stash_pending(snapshot)
            if snapshot.is_playing and not state.has_user_interacted:
                self.gate.require_interaction()
            return Disposition.MEDIA_CHANGE

        # 3. Player ready check
        if not self.lifecycle.is_ready:
            logger.debug("Player not ready, storing snapshot")
            self.sm.stash_pending(snapshot)
            return Disposition.DEFERRED

        return self._dispose(snapshot)

    def _dispose(self, snapshot: Snapshot) -> Disposition:
        state = self.sm.state

        if state.is_manual_sync_requested:
            logger.info(f"Applying explicitly requested sync (v{snapshot.version})")
            state.is_manual_sync_requested = False
            self.apply(snapshot)
            return Disposition.MANUAL_SYNC

        if snapshot.is_playing and not state.has_user_interacted:
            self.sm.stash_pending(snapshot)
            self.gate.require_interaction()
            return Disposition.AWAITING_INTERACTION

        if not state.is_applying_remote_update and not state.is_local_action_in_flight:
            self.apply(snapshot)
            return Disposition.APPLIED

        logger.debug(
            f"Snapshot v{snapshot.version} not applied: applying_update={state.is_applying_remote_update} "
            f"local_action={state.is_local_action_in_flight}"
        )
        return Disposition.SUPPRESSED

    def apply(self, snapshot: Snapshot) -> bool:
        """Drive the surface to the snapshot: seek if drifted, always match play/pause."""
        surface = self.lifecycle.surface
        if surface is None:
            self.sm.stash_pending(snapshot)
            return False

        # Flag is time-bounded before any surface command can raise
        self.sm.pulse("is_applying_remote_update", settings.REMOTE_APPLY_SETTLE_SECONDS)

        # An older stashed snapshot must never be replayed over this one
        self._surface_version = max(self._surface_version, snapshot.version)
        pending = self.sm.state.pending_snapshot
        if pending is not None and pending.version <= snapshot.version:
            logger.debug(f"Dropping superseded pending snapshot v{pending.version}")
            self.sm.take_pending()

        target = clamp_target(compute_target_time(snapshot), surface)
        try:
            current = surface.get_current_time()
            drift = abs(target - current)
            if drift > settings.DRIFT_THRESHOLD_SECONDS:
                logger.info(f"Drift {drift:.2f}s detected, seeking to {target:.2f}s")
                surface.seek_to(target, True)

            if snapshot.is_playing:
                surface.play_video()
            else:
                surface.pause_video()
        except Exception as e:
            err = SurfaceCommandError("apply", e)
            logger.error(f"{err} (snapshot v{snapshot.version})", exc_info=True)
            self.notices.warning("Could not sync the player, will retry on next update")
            return False
        return True

    def flush_pending(self, manual: bool) -> Optional[Disposition]:
        """
        Replay the cached snapshot, if any.
        manual=True forces it through the manual-sync path.
        """
        if self.sm.state.pending_snapshot is None:
            return None
        if not self.lifecycle.is_ready:
            logger.debug("Player not ready, keeping pending snapshot")
            return None

        snapshot = self.sm.take_pending()
        if snapshot.version < self._surface_version:
            logger.debug(f"Discarding pending snapshot v{snapshot.version}, v{self._surface_version} already applied")
            return None
        if manual:
            self.sm.state.is_manual_sync_requested = True
        logger.info(f"Applying queued session state v{snapshot.version}")
        return self._dispose(snapshot)

    def _on_surface_ready(self, session: MediaSession):
        self.flush_pending(manual=False)

    def _on_gate_open(self):
        self.flush_pending(manual=True)
