import logging
from typing import Callable, List
from .state import StateManager

logger = logging.getLogger(__name__)

class InteractionGate:
    """
    Platform autoplay policy: remotely-triggered playback waits for a user gesture.

    `has_user_interacted` lives in the shared ReconciliationState and only ever
    goes from False to True. While closed, a deferred remote play raises the
    pending-sync indicator so the UI can offer a "click to sync" prompt.
    """

    def __init__(self, state_manager: StateManager):
        self.sm = state_manager
        self.needs_user_interaction = False
        self._open_listeners: List[Callable[[], None]] = []
        self._indicator_listeners: List[Callable[[bool], None]] = []

    @property
    def is_open(self) -> bool:
        return self.sm.state.has_user_interacted

    def on_open(self, listener: Callable[[], None]):
        self._open_listeners.append(listener)

    def on_indicator_change(self, listener: Callable[[bool], None]):
        self._indicator_listeners.append(listener)

    def require_interaction(self):
        """Signal that a remote play is being held back."""
        if self.is_open:
            return
        if not self.needs_user_interaction:
            logger.info("Playback is running for others, waiting for user interaction")
        self._set_indicator(True)

    def open(self) -> bool:
        """Record a user gesture. Returns True only for the gesture that opened the gate."""
        self._set_indicator(False)
        if self.sm.state.has_user_interacted:
            return False

        self.sm.state.has_user_interacted = True
        logger.info("User interaction recorded, autoplay gate open")
        for listener in list(self._open_listeners):
            listener()
        return True

    def _set_indicator(self, value: bool):
        if self.needs_user_interaction == value:
            return
        self.needs_user_interaction = value
        for listener in list(self._indicator_listeners):
            listener(value)
