import asyncio
import logging
from typing import Any, Callable, Optional
import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError
from pydantic import ValidationError
from ..config import settings
from ..errors import TransportError
from ..models import Intent, RequestCurrentStateIntent, Snapshot, ViewerCount
from ..notices import NoticeBoard

logger = logging.getLogger(__name__)

class CoordinatorClient:
    """
    Socket.IO channel to the coordinator.
    Reconnect and backoff belong to python-socketio; after a reconnect the only
    remedial step is asking for a fresh snapshot.
    """

    def __init__(self, notices: NoticeBoard,
                 on_snapshot: Callable[[Snapshot], Any],
                 on_viewer_count: Optional[Callable[[int], Any]] = None):
        self.notices = notices
        self.on_snapshot = on_snapshot
        self.on_viewer_count = on_viewer_count
        self.viewer_count = 0
        self._has_connected = False
        self._closing = False
        self._reconnect_task: Optional[asyncio.Task] = None

        self.sio = socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=settings.RECONNECT_ATTEMPTS,
            reconnection_delay=settings.RECONNECT_DELAY_SECONDS,
            reconnection_delay_max=settings.RECONNECT_DELAY_MAX_SECONDS,
            randomization_factor=settings.RECONNECT_RANDOMIZATION,
            logger=False,
        )
        self.sio.on("connect", self._on_connect)
        self.sio.on("connect_error", self._on_connect_error)
        self.sio.on("disconnect", self._on_disconnect)
        self.sio.on("session:state", self._on_session_state)
        self.sio.on("viewer-count", self._on_viewer_count)
        self.sio.on("user-count", self._on_viewer_count)

    @property
    def connected(self) -> bool:
        return self.sio.connected

    async def connect(self):
        logger.info(f"Establishing socket connection to {settings.COORDINATOR_URL}")
        try:
            await self.sio.connect(
                settings.COORDINATOR_URL,
                socketio_path=settings.COORDINATOR_SOCKET_PATH,
                transports=settings.COORDINATOR_TRANSPORTS,
                wait_timeout=settings.CONNECT_TIMEOUT_SECONDS,
                retry=True,
            )
        except SocketConnectionError as e:
            raise TransportError(f"Failed to connect to {settings.COORDINATOR_URL}: {e}") from e

    async def run(self):
        await self.connect()
        await self.sio.wait()

    async def close(self):
        self._closing = True
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self.sio.connected:
            await self.sio.disconnect()

    async def send(self, intent: Intent):
        if not self.sio.connected:
            raise TransportError(f"Not connected, cannot send {intent.event}")
        try:
            await self.sio.emit(intent.event, intent.payload())
        except SocketIOError as e:
            raise TransportError(f"Emit of {intent.event} failed: {e}") from e
        logger.debug(f"Sent {intent.event}: {intent.payload()}")

    async def _on_connect(self):
        logger.info(f"Connected to server: {self.sio.sid}")
        self.notices.success("Connected to watch party!")
        if self._has_connected:
            logger.info("Reconnected, requesting current session state")
            try:
                await self.send(RequestCurrentStateIntent())
            except TransportError as e:
                logger.warning(f"Could not request state after reconnect: {e}")
        self._has_connected = True

    async def _on_connect_error(self, data=None):
        err = TransportError(f"Socket connection error: {data}")
        logger.error(str(err))
        self.notices.error("Failed to connect to server. Retrying...")

    async def _on_disconnect(self, reason=None):
        logger.info(f"Disconnected: {reason}")
        if self._closing:
            return
        if reason == self.sio.reason.SERVER_DISCONNECT:
            # The library does not reconnect after a server-initiated disconnect
            if self._reconnect_task is None or self._reconnect_task.done():
                self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect())
        else:
            self.notices.error("Disconnected from server")

    async def _reconnect(self):
        try:
            await self.connect()
        except TransportError as e:
            logger.error(str(e))
            self.notices.error("Failed to connect to server. Retrying...")

    async def _on_session_state(self, data):
        try:
            snapshot = Snapshot.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed session state: {e}")
            return
        self.on_snapshot(snapshot)

    async def _on_viewer_count(self, data):
        try:
            if isinstance(data, dict):
                viewers = ViewerCount.model_validate(data)
            else:
                viewers = ViewerCount(count=data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed viewer count: {e}")
            return
        self.viewer_count = viewers.count
        if self.on_viewer_count:
            self.on_viewer_count(viewers.count)
