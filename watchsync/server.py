from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import PlainTextResponse
from typing import Optional
from .config import settings

app = FastAPI(title="Watch Party Sync")
client = None  # WatchPartyClient, set by main

def get_token(x_token: Optional[str] = Header(None, alias="X-Token")):
    if settings.HTTP_SERVER_TOKEN and x_token != settings.HTTP_SERVER_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid token")

def require_client():
    if client is None:
        raise HTTPException(status_code=503, detail="Client not ready")
    return client

def _control_result(accepted: bool, action: str):
    if not accepted:
        raise HTTPException(status_code=409, detail=f"{action} refused: player not ready or not connected")
    return {"status": "ok", "action": action}

@app.get("/healthz")
def healthz():
    if not client:
        return {"status": "starting"}
    if not client.transport.connected:
        return {"status": "disconnected"}
    return {"status": "ok"}

@app.get("/status", dependencies=[Depends(get_token)])
def status():
    if not client:
        return {"status": "not_ready"}

    state = client.sm.state
    session = client.lifecycle.session
    pending = state.pending_snapshot
    return {
        "connected": client.transport.connected,
        "viewer_count": client.viewer_count,
        "media_id": session.media_id if session else None,
        "player": client.lifecycle.state.value,
        "needs_user_interaction": client.gate.needs_user_interaction,
        "reconciliation": {
            "last_applied_version": state.last_applied_version,
            "pending_version": pending.version if pending else None,
            "has_user_interacted": state.has_user_interacted,
            "is_applying_remote_update": state.is_applying_remote_update,
            "is_local_action_in_flight": state.is_local_action_in_flight,
            "is_manual_sync_requested": state.is_manual_sync_requested,
        },
        "notices": [n.model_dump() for n in client.notices.recent()],
    }

@app.get("/metrics", response_class=PlainTextResponse)
def metrics():
    # Simple prometheus-style text format
    if not client:
        return ""

    s = client.sm.state
    lines = [
        f'watchsync_connected {int(client.transport.connected)}',
        f'watchsync_last_applied_version {s.last_applied_version}',
        f'watchsync_viewer_count {client.viewer_count}',
        f'watchsync_player_ready {int(client.lifecycle.is_ready)}',
        f'watchsync_needs_user_interaction {int(client.gate.needs_user_interaction)}',
    ]
    return "\n".join(lines)

@app.post("/controls/play", dependencies=[Depends(get_token)])
async def play():
    c = require_client()
    return _control_result(await c.tracker.play(), "play")

@app.post("/controls/pause", dependencies=[Depends(get_token)])
async def pause():
    c = require_client()
    return _control_result(await c.tracker.pause(), "pause")

@app.post("/controls/seek", dependencies=[Depends(get_token)])
async def seek(seconds: Optional[float] = Query(default=None)):
    c = require_client()
    offset = settings.SEEK_STEP_SECONDS if seconds is None else seconds
    return _control_result(await c.tracker.seek(offset), "seek")

@app.post("/controls/sync", dependencies=[Depends(get_token)])
async def sync():
    c = require_client()
    await c.tracker.request_sync()
    return {"status": "ok", "action": "sync"}

@app.post("/controls/media", dependencies=[Depends(get_token)])
async def change_media(identifier: str = Body(..., embed=True)):
    c = require_client()
    return _control_result(await c.tracker.change_media(identifier), "change-media")
