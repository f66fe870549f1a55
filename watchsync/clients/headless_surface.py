import asyncio
import logging
import time
from typing import Any, Dict, Optional
from ..config import settings
from ..surface import PlayerState, SurfaceCallbacks

logger = logging.getLogger(__name__)

class HeadlessSurface:
    """
    A clock-driven player with no output.
    Lets the client follow a session without a real media backend.
    """

    def __init__(self, media_id: str, callbacks: SurfaceCallbacks, duration: Optional[float] = None):
        self.media_id = media_id
        self.callbacks = callbacks
        self.duration = duration
        self.destroyed = False
        self._position = 0.0
        self._anchor = time.monotonic()
        self._playing = False

    def get_current_time(self) -> float:
        position = self._position
        if self._playing:
            position += time.monotonic() - self._anchor
        if self.duration:
            position = min(position, self.duration)
        return position

    def get_duration(self) -> Optional[float]:
        return self.duration

    def seek_to(self, seconds: float, allow_ahead: bool = True):
        self._check_alive()
        self._position = max(0.0, seconds)
        self._anchor = time.monotonic()

    def play_video(self):
        self._check_alive()
        if self._playing:
            return
        self._position = self.get_current_time()
        self._anchor = time.monotonic()
        self._playing = True
        self.callbacks.on_state_change(PlayerState.PLAYING)

    def pause_video(self):
        self._check_alive()
        if not self._playing:
            return
        self._position = self.get_current_time()
        self._playing = False
        self.callbacks.on_state_change(PlayerState.PAUSED)

    def destroy(self):
        self._playing = False
        self.destroyed = True

    def _check_alive(self):
        if self.destroyed:
            raise RuntimeError(f"Player for {self.media_id} was destroyed")

class HeadlessHost:
    def __init__(self, container_id: Optional[str] = None):
        self.container_id = container_id or settings.SURFACE_CONTAINER_ID

    def container(self) -> Optional[str]:
        return self.container_id

class HeadlessSurfaceFactory:
    def construct(self, container: Any, media_id: str, config: Dict[str, int],
                  callbacks: SurfaceCallbacks) -> HeadlessSurface:
        logger.debug(f"Constructing headless player in {container} for {media_id} with {config}")
        surface = HeadlessSurface(media_id, callbacks, duration=settings.HEADLESS_MEDIA_DURATION_SECONDS)
        surface.callbacks.on_state_change(PlayerState.CUED)
        asyncio.get_running_loop().call_later(
            settings.HEADLESS_READY_DELAY_SECONDS, callbacks.on_ready, surface
        )
        return surface
