import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional
from .config import settings
from .errors import SurfaceConstructionError
from .models import MediaSession
from .notices import NoticeBoard
from .surface import (PLAYER_VARS, PlaybackSurface, PlayerState, SurfaceBackend,
                      SurfaceCallbacks, SurfaceFactory, SurfaceHost)

logger = logging.getLogger(__name__)

class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONSTRUCTING = "constructing"
    READY = "ready"
    DESTROYED = "destroyed"
    FAILED = "failed"

class PlayerLifecycleManager:
    """
    Owns the one Playback Surface per media identity.

    A media change destroys the previous session wholesale and builds a new one.
    Readiness is only ever learned from the surface's own on_ready callback.
    """

    def __init__(self, factory: SurfaceFactory, host: SurfaceHost, backend: SurfaceBackend,
                 notices: NoticeBoard):
        self.factory = factory
        self.host = host
        self.backend = backend
        self.notices = notices
        self.state = LifecycleState.UNINITIALIZED
        self.session: Optional[MediaSession] = None
        self._construct_task: Optional[asyncio.Task] = None
        self._ready_listeners: list = []

    def on_ready(self, listener: Callable[[MediaSession], None]):
        self._ready_listeners.append(listener)

    @property
    def media_id(self) -> Optional[str]:
        return self.session.media_id if self.session else None

    @property
    def is_ready(self) -> bool:
        return bool(self.session and self.session.ready and self.session.surface is not None)

    @property
    def surface(self) -> Optional[PlaybackSurface]:
        return self.session.surface if self.is_ready else None

    def begin_transition(self, media_id: str) -> MediaSession:
        logger.info(f"Initializing player for: {media_id}")
        self._cancel_construction()
        self._destroy_session()

        session = MediaSession(media_id=media_id)
        self.session = session
        self.state = LifecycleState.CONSTRUCTING
        self._construct_task = asyncio.get_running_loop().create_task(self._construct(session))
        return session

    async def shutdown(self):
        task = self._cancel_construction()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._destroy_session()
        self.session = None

    def _cancel_construction(self) -> Optional[asyncio.Task]:
        task, self._construct_task = self._construct_task, None
        if task is not None and not task.done():
            logger.debug("Cancelling pending player construction")
            task.cancel()
            return task
        return None

    def _destroy_session(self):
        old = self.session
        if old is None:
            return
        old.ready = False
        if old.surface is not None:
            try:
                old.surface.destroy()
            except Exception as e:
                logger.error(f"Error destroying old player: {e}")
            old.surface = None
        self.state = LifecycleState.DESTROYED

    async def _construct(self, session: MediaSession):
        await self.backend.wait_ready()
        await asyncio.sleep(settings.SURFACE_CONSTRUCT_DELAY_SECONDS)

        callbacks = SurfaceCallbacks(
            on_ready=lambda surface: self._handle_ready(session, surface),
            on_state_change=lambda data: self._handle_state_change(session, data),
            on_error=lambda data: self._handle_error(session, data),
        )

        last_error: Optional[Exception] = None
        for attempt in range(1, settings.SURFACE_MAX_ATTEMPTS + 1):
            container = self.host.container()
            if container is None:
                logger.error(f"Player container not found (attempt {attempt}/{settings.SURFACE_MAX_ATTEMPTS}), retrying...")
                last_error = None
            else:
                try:
                    surface = self.factory.construct(container, session.media_id, dict(PLAYER_VARS), callbacks)
                except Exception as e:
                    logger.error(f"Failed to create player (attempt {attempt}/{settings.SURFACE_MAX_ATTEMPTS}): {e}")
                    last_error = e
                else:
                    # on_ready may already have fired synchronously
                    if session.surface is None:
                        session.surface = surface
                    return

            if attempt < settings.SURFACE_MAX_ATTEMPTS:
                await asyncio.sleep(settings.SURFACE_RETRY_BACKOFF_SECONDS)

        err = SurfaceConstructionError(session.media_id, settings.SURFACE_MAX_ATTEMPTS, last_error)
        logger.error(str(err))
        if session is self.session:
            self.state = LifecycleState.FAILED
        self.notices.error("Failed to initialize video player")

    def _handle_ready(self, session: MediaSession, surface: Any):
        if session is not self.session:
            logger.debug(f"Ignoring ready from superseded player for {session.media_id}")
            return
        if surface is not None:
            session.surface = surface
        session.ready = True
        self.state = LifecycleState.READY
        logger.info(f"Player ready for {session.media_id}")
        for listener in list(self._ready_listeners):
            listener(session)

    def _handle_state_change(self, session: MediaSession, data: int):
        if session is not self.session:
            return
        session.player_state = data
        if data == PlayerState.BUFFERING:
            logger.debug(f"Player buffering ({session.media_id})")

    def _handle_error(self, session: MediaSession, data: Any):
        if session is not self.session:
            return
        logger.error(f"Player error for {session.media_id}: {data}")
        self.notices.error("Video failed to load")
