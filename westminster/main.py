"""FastAPI entry point"""
import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from .clock import SystemClock
from .config import Settings, settings, setup_logging
from .scheduler import (
    ALLOWED_INTERVALS,
    LEAD_SECONDS_OPTIONS,
    ChimeConfig,
    InvalidConfigError,
    JsonSettingsStore,
    SchedulerEvent,
    SchedulerOptions,
    SchedulerService,
    interval_to_human,
)
from .sound import create_sound

# Global service instance
scheduler: Optional[SchedulerService] = None


async def build_scheduler(cfg: Settings) -> SchedulerService:
    """Wire clock, sound and settings store into a scheduler configured from disk."""
    store = JsonSettingsStore(cfg.settings_path)
    sound = create_sound(
        cfg.sound,
        command=cfg.sound_command,
        sound_file=cfg.sound_file,
        data_dir=cfg.data_dir,
    )
    options = SchedulerOptions(
        missed_policy=cfg.missed_policy,
        missed_grace_seconds=cfg.missed_grace_seconds,
        tick_interval_seconds=cfg.tick_seconds,
    )
    return await SchedulerService.from_store(
        clock=SystemClock(cfg.timezone),
        sound=sound,
        settings_store=store,
        options=options,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Application lifecycle"""
    global scheduler

    setup_logging(settings.effective_log_level)
    logger.info("=" * 50)
    logger.info("  Westminster Reminder")
    logger.info(f"  Settings: {settings.settings_path}")
    logger.info(f"  Sound: {settings.sound}")
    logger.info("=" * 50)

    scheduler = await build_scheduler(settings)
    scheduler.on_event(ws_manager.forward)

    if settings.autostart:
        await scheduler.start()

    logger.info(f"API: http://{settings.host}:{settings.port}/api/status")

    yield

    logger.info("Shutting down...")
    await scheduler.stop()
    scheduler = None


app = FastAPI(
    title="Westminster Reminder",
    description="Chimes a few seconds before every quarter, half or full hour",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============== Pydantic Models ==============

class ChimeSettingsRequest(BaseModel):
    """Chime settings update"""
    interval_minutes: int = 15
    lead_seconds: int = 20


def _get_scheduler() -> SchedulerService:
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not ready")
    return scheduler


def _to_config(request: ChimeSettingsRequest) -> ChimeConfig:
    try:
        return ChimeConfig(
            interval_minutes=request.interval_minutes,
            lead_seconds=request.lead_seconds,
        )
    except InvalidConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _settings_payload(config: ChimeConfig) -> dict:
    return {
        **config.to_dict(),
        "description": interval_to_human(config),
    }


# ============== REST API ==============

@app.get("/")
async def root():
    """Root"""
    return {
        "name": "Westminster Reminder",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
@app.get("/api/health")
async def health():
    """Health check"""
    return {
        "status": "ok",
        "version": "0.1.0",
        "chiming": scheduler.is_active() if scheduler else False,
    }


@app.get("/api/status")
async def status():
    """Scheduler status: countdown, next boundary, last message"""
    return _get_scheduler().status().to_dict()


@app.post("/api/start")
async def start(request: Optional[ChimeSettingsRequest] = None):
    """Start (or restart) chiming, optionally with new settings"""
    service = _get_scheduler()
    restarted = False
    if request is not None:
        config = _to_config(request)
        # update_config restarts an armed scheduler itself
        restarted = await service.update_config(config)
    if not restarted:
        await service.start()
    return service.status().to_dict()


@app.post("/api/stop")
async def stop():
    """Stop chiming"""
    service = _get_scheduler()
    await service.stop()
    return service.status().to_dict()


@app.get("/api/settings")
async def get_settings():
    """Current chime settings"""
    return _settings_payload(_get_scheduler().config)


@app.put("/api/settings")
async def put_settings(request: ChimeSettingsRequest):
    """Save chime settings; restarts the schedule when chiming"""
    service = _get_scheduler()
    config = _to_config(request)
    await service.update_config(config)
    return {
        "settings": _settings_payload(config),
        "status": service.status().to_dict(),
    }


@app.get("/api/settings/lead-options")
async def lead_options():
    """Values offered by the lead-time picker"""
    return {
        "interval_minutes": list(ALLOWED_INTERVALS),
        "lead_seconds": LEAD_SECONDS_OPTIONS,
    }


@app.post("/api/test-chime")
async def test_chime():
    """Play the chime once"""
    _get_scheduler().play_test_sound()
    return {"played": True}


# ============== WebSocket ==============

class ConnectionManager:
    """WebSocket connection manager"""

    def __init__(self):
        self.active_connections: Dict[int, WebSocket] = {}
        self._pending: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket) -> int:
        """Accept a connection"""
        await websocket.accept()
        client_id = id(websocket)
        self.active_connections[client_id] = websocket
        logger.debug(f"WebSocket connected: {client_id}")
        return client_id

    def disconnect(self, client_id: int):
        """Drop a connection"""
        if client_id in self.active_connections:
            del self.active_connections[client_id]
            logger.debug(f"WebSocket disconnected: {client_id}")

    async def broadcast(self, event: str, payload: dict):
        """Broadcast an event to all clients"""
        for client_id, ws in list(self.active_connections.items()):
            try:
                await ws.send_json({
                    "type": "event",
                    "event": event,
                    "payload": payload,
                })
            except Exception as e:
                logger.debug(f"Dropping WebSocket {client_id}: {e}")
                self.disconnect(client_id)

    def forward(self, event: SchedulerEvent) -> None:
        """Scheduler event handler: broadcast without blocking the scheduler"""
        if not self.active_connections:
            return
        task = asyncio.get_running_loop().create_task(
            self.broadcast(event.type, event.payload)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


ws_manager = ConnectionManager()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Live countdown and chime events"""
    client_id = await ws_manager.connect(websocket)

    try:
        await websocket.send_json({
            "type": "hello",
            "status": _get_scheduler().status().to_dict(),
        })

        while True:
            message = await websocket.receive_json()
            if message.get("method") == "status":
                await websocket.send_json({
                    "type": "res",
                    "id": message.get("id"),
                    "ok": True,
                    "payload": _get_scheduler().status().to_dict(),
                })
            else:
                await websocket.send_json({
                    "type": "res",
                    "id": message.get("id"),
                    "ok": False,
                    "error": f"Unknown method: {message.get('method')}",
                })

    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(client_id)


# ============== Entry point ==============

def main():
    """Start the FastAPI server"""
    import uvicorn

    uvicorn.run(
        "westminster.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
