import logging
from collections import deque
from typing import Callable, Deque, List, Optional
from .config import settings
from .models import Notice

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

class NoticeBoard:
    """
    User-facing notices (the toasts of a graphical client).
    Keeps a bounded history for the status endpoint and fans out to listeners.
    """

    def __init__(self, max_size: Optional[int] = None):
        self.history: Deque[Notice] = deque(maxlen=max_size or settings.NOTICE_HISTORY_SIZE)
        self._listeners: List[Callable[[Notice], None]] = []

    def subscribe(self, listener: Callable[[Notice], None]):
        self._listeners.append(listener)

    def post(self, level: str, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), f"[notice] {message}")
        self.history.append(notice)
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception as e:
                logger.error(f"Notice listener failed: {e}", exc_info=True)
        return notice

    def info(self, message: str) -> Notice:
        return self.post("info", message)

    def success(self, message: str) -> Notice:
        return self.post("success", message)

    def warning(self, message: str) -> Notice:
        return self.post("warning", message)

    def error(self, message: str) -> Notice:
        return self.post("error", message)

    def recent(self, limit: int = 10) -> List[Notice]:
        return list(self.history)[-limit:]
