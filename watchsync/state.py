import asyncio
import logging
from typing import Dict, Optional
from .models import ReconciliationState, Snapshot

logger = logging.getLogger(__name__)

TIMED_FLAGS = ("is_applying_remote_update", "is_local_action_in_flight")

class StateManager:
    """Single owner of the per-client ReconciliationState."""

    def __init__(self):
        self.state = ReconciliationState()
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def accept_version(self, version: int) -> bool:
        """Record version if newer than anything seen. Never regresses."""
        if version <= self.state.last_applied_version:
            return False
        self.state.last_applied_version = version
        return True

    def stash_pending(self, snapshot: Snapshot):
        if self.state.pending_snapshot is not None:
            logger.debug(f"Replacing pending snapshot v{self.state.pending_snapshot.version} with v{snapshot.version}")
        self.state.pending_snapshot = snapshot

    def take_pending(self) -> Optional[Snapshot]:
        snapshot = self.state.pending_snapshot
        self.state.pending_snapshot = None
        return snapshot

    def pulse(self, flag: str, seconds: float):
        """
        Set a suppression flag and clear it after `seconds`.
        Re-pulsing restarts the window. Requires a running event loop.
        """
        if flag not in TIMED_FLAGS:
            raise ValueError(f"{flag} is not a timed flag")

        loop = asyncio.get_running_loop()
        previous = self._timers.pop(flag, None)
        if previous is not None:
            previous.cancel()

        setattr(self.state, flag, True)
        self._timers[flag] = loop.call_later(seconds, self._clear, flag)

    def _clear(self, flag: str):
        self._timers.pop(flag, None)
        setattr(self.state, flag, False)

    def close(self):
        for flag, handle in list(self._timers.items()):
            handle.cancel()
            self._clear(flag)
