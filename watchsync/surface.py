"""
Contract between the sync engine and the media player it drives.

The player itself is an external collaborator: anything that satisfies
PlaybackSurface (and a SurfaceFactory that builds it) can be plugged in.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

# Native controls stay off; the sync layer owns every control surface.
PLAYER_VARS: Dict[str, int] = {
    "autoplay": 0,
    "controls": 0,
    "disablekb": 1,
    "modestbranding": 1,
    "rel": 0,
}

class PlayerState(IntEnum):
    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5

class PlaybackSurface(Protocol):
    def get_current_time(self) -> float: ...
    def seek_to(self, seconds: float, allow_ahead: bool) -> None: ...
    def play_video(self) -> None: ...
    def pause_video(self) -> None: ...
    def destroy(self) -> None: ...

@dataclass
class SurfaceCallbacks:
    on_ready: Callable[[Any], None]
    on_state_change: Callable[[int], None]
    on_error: Callable[[Any], None]

class SurfaceHost(Protocol):
    def container(self) -> Optional[Any]:
        """Return the hosting container, or None while it is not available."""
        ...

class SurfaceFactory(Protocol):
    def construct(self, container: Any, media_id: str, config: Dict[str, int],
                  callbacks: SurfaceCallbacks) -> PlaybackSurface: ...

class SurfaceBackend:
    """
    One-shot readiness of the player library itself.
    Resolved once at startup; every session construction awaits it.
    """

    def __init__(self):
        self._ready: Optional[asyncio.Event] = None

    def _event(self) -> asyncio.Event:
        if self._ready is None:
            self._ready = asyncio.Event()
        return self._ready

    @property
    def is_ready(self) -> bool:
        return self._ready is not None and self._ready.is_set()

    def mark_ready(self):
        event = self._event()
        if event.is_set():
            logger.debug("Player backend already marked ready")
            return
        logger.info("Player backend ready")
        event.set()

    async def wait_ready(self):
        await self._event().wait()
