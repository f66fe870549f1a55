from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Coordinator
    COORDINATOR_URL: str = "http://localhost:8001"
    COORDINATOR_SOCKET_PATH: str = "/api/socket.io"
    COORDINATOR_TRANSPORTS: List[str] = ["websocket", "polling"]
    RECONNECT_ATTEMPTS: int = 5
    RECONNECT_DELAY_SECONDS: float = 1.0
    RECONNECT_DELAY_MAX_SECONDS: float = 5.0
    RECONNECT_RANDOMIZATION: float = 0.5
    CONNECT_TIMEOUT_SECONDS: int = 20

    # Sync Logic
    DRIFT_THRESHOLD_SECONDS: float = 0.35
    REMOTE_APPLY_SETTLE_SECONDS: float = 0.2
    LOCAL_ACTION_WINDOW_SECONDS: float = 0.1
    SEEK_STEP_SECONDS: float = 10.0
    CLAMP_TO_DURATION: bool = True

    # Player
    SURFACE_CONTAINER_ID: str = "player"
    SURFACE_CONSTRUCT_DELAY_SECONDS: float = 0.1
    SURFACE_RETRY_BACKOFF_SECONDS: float = 0.5
    SURFACE_MAX_ATTEMPTS: int = 10
    HEADLESS_READY_DELAY_SECONDS: float = 0.05
    HEADLESS_MEDIA_DURATION_SECONDS: Optional[float] = None

    # System
    LOG_LEVEL: str = "INFO"
    NOTICE_HISTORY_SIZE: int = 50
    HTTP_SERVER_ENABLED: bool = True
    HTTP_SERVER_HOST: str = "127.0.0.1"
    HTTP_SERVER_PORT: int = 8080
    HTTP_SERVER_TOKEN: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
