import time
from typing import Any, ClassVar, Dict, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

class Snapshot(BaseModel):
    """Authoritative playback state broadcast by the coordinator."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: int
    media_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("mediaId", "videoId", "media_id"),
        serialization_alias="mediaId",
    )
    is_playing: bool = Field(
        validation_alias=AliasChoices("isPlaying", "is_playing"),
        serialization_alias="isPlaying",
    )
    playback_time_at_last_event: float = Field(
        ge=0,
        validation_alias=AliasChoices("playbackTimeAtLastEvent", "playback_time_at_last_event"),
        serialization_alias="playbackTimeAtLastEvent",
    )
    # Coordinator clock, milliseconds
    last_event_at: float = Field(
        validation_alias=AliasChoices("lastEventAt", "last_event_at"),
        serialization_alias="lastEventAt",
    )
    coordinator_time: float = Field(
        validation_alias=AliasChoices("coordinatorTime", "serverTime", "coordinator_time"),
        serialization_alias="coordinatorTime",
    )

    @model_validator(mode="after")
    def _check_clock_order(self):
        if self.coordinator_time < self.last_event_at:
            raise ValueError("coordinatorTime precedes lastEventAt")
        return self

class ReconciliationState(BaseModel):
    last_applied_version: int = 0
    pending_snapshot: Optional[Snapshot] = None  # latest wins
    has_user_interacted: bool = False
    is_applying_remote_update: bool = False
    is_local_action_in_flight: bool = False
    is_manual_sync_requested: bool = False

class MediaSession(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    media_id: str
    surface: Optional[Any] = None
    ready: bool = False
    player_state: int = -1  # PlayerState.UNSTARTED

class ViewerCount(BaseModel):
    count: int = Field(ge=0)

class Notice(BaseModel):
    level: str
    message: str
    at: float = Field(default_factory=time.time)

# Outbound intents

class Intent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: ClassVar[str]

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

class ChangeMediaIntent(Intent):
    event: ClassVar[str] = "change-media"
    identifier: str
    current_time: float = Field(default=0.0, alias="currentTime")
    is_playing: bool = Field(default=False, alias="isPlaying")

class PlayIntent(Intent):
    event: ClassVar[str] = "play"
    current_time: float = Field(alias="currentTime")

class PauseIntent(Intent):
    event: ClassVar[str] = "pause"
    current_time: float = Field(alias="currentTime")

class SeekIntent(Intent):
    event: ClassVar[str] = "seek"
    current_time: float = Field(alias="currentTime")

class RequestCurrentStateIntent(Intent):
    event: ClassVar[str] = "request-current-state"
