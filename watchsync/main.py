import asyncio
import logging
import signal
import sys
import uvicorn

from .config import settings
from .state import StateManager
from .notices import NoticeBoard
from .surface import SurfaceBackend
from .gate import InteractionGate
from .lifecycle import PlayerLifecycleManager
from .engine import SnapshotReconciler
from .tracker import LocalActionTracker
from .clients.coordinator_client import CoordinatorClient
from .clients.headless_surface import HeadlessHost, HeadlessSurfaceFactory
from .errors import TransportError
from . import server

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# Silence noisy libraries
logging.getLogger("socketio").setLevel(logging.WARNING)
logging.getLogger("engineio").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

logger = logging.getLogger("main")

class WatchPartyClient:
    def __init__(self, factory=None, host=None, transport=None):
        self.notices = NoticeBoard()
        self.backend = SurfaceBackend()
        self.sm = StateManager()
        self.gate = InteractionGate(self.sm)
        self.lifecycle = PlayerLifecycleManager(
            factory or HeadlessSurfaceFactory(),
            host or HeadlessHost(),
            self.backend,
            self.notices,
        )
        self.reconciler = SnapshotReconciler(self.sm, self.lifecycle, self.gate, self.notices)
        self.transport = transport or CoordinatorClient(
            self.notices, self.reconciler.consume, self._on_viewer_count
        )
        self.tracker = LocalActionTracker(
            self.sm, self.lifecycle, self.gate, self.reconciler, self.transport, self.notices
        )
        self.viewer_count = 0
        self.gate.on_indicator_change(self._on_indicator_change)

        # Link client to server module
        server.client = self

    def _on_viewer_count(self, count: int):
        self.viewer_count = count
        logger.debug(f"{count} {'viewer' if count == 1 else 'viewers'} online")

    def _on_indicator_change(self, needed: bool):
        if needed:
            self.notices.info("Video is playing for others. Click to sync and start watching")

    async def start(self):
        # Headless backend has nothing to load
        self.backend.mark_ready()

        tasks = [asyncio.create_task(self.transport.run())]

        if settings.HTTP_SERVER_ENABLED:
            config = uvicorn.Config(server.app, host=settings.HTTP_SERVER_HOST, port=settings.HTTP_SERVER_PORT, log_level="warning")
            server_task = uvicorn.Server(config).serve()
            tasks.append(asyncio.create_task(server_task))

        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            pass
        except TransportError as e:
            logger.error(f"Giving up on coordinator: {e}")
            for task in tasks:
                task.cancel()
            raise
        finally:
            await self.shutdown()

    async def shutdown(self):
        await self.lifecycle.shutdown()
        self.sm.close()
        await self.transport.close()

def handle_sigterm(sig, frame):
    logger.info("Received SIGTERM, shutting down...")
    sys.exit(0)

def run():
    signal.signal(signal.SIGTERM, handle_sigterm)
    client = WatchPartyClient()
    try:
        asyncio.run(client.start())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except TransportError:
        sys.exit(1)

if __name__ == "__main__":
    run()
