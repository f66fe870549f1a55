from typing import Optional

class WatchSyncError(Exception):
    """Base class for errors raised by the sync client."""

class TransportError(WatchSyncError):
    """Coordinator channel unavailable or an emit failed."""

class SurfaceConstructionError(WatchSyncError):
    def __init__(self, media_id: str, attempts: int, cause: Optional[Exception] = None):
        self.media_id = media_id
        self.attempts = attempts
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not construct player for {media_id} after {attempts} attempts{detail}")

class SurfaceCommandError(WatchSyncError):
    def __init__(self, command: str, cause: Exception):
        self.command = command
        self.cause = cause
        super().__init__(f"Player command '{command}' failed: {cause}")
