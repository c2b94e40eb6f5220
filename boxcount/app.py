from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .coordinator import SessionCoordinator
from .patterns import RoundPayloadGenerator, generate_round_payload
from .routers import rooms as rooms_router
from .routers import websockets as ws_router
from .store import RoomStore

logger = logging.getLogger(__name__)


async def _cleanup_loop(coordinator: SessionCoordinator, interval_sec: float) -> None:
    """Periodically evict idle rooms."""
    while True:
        await asyncio.sleep(interval_sec)
        try:
            coordinator.cleanup()
        except Exception:
            logger.exception("Room cleanup failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    coordinator: SessionCoordinator = app.state.coordinator
    interval = app.state.settings.cleanup_interval_sec
    cleanup_task = asyncio.create_task(_cleanup_loop(coordinator, interval)) if interval > 0 else None
    app.state.cleanup_task = cleanup_task
    try:
        yield
    finally:
        if cleanup_task is not None:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass
        coordinator.shutdown()


# -----------------------------
# FastAPI app factory
# -----------------------------

def create_app(
    settings: Optional[Settings] = None,
    generator: RoundPayloadGenerator = generate_round_payload,
) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(title="Box Count Backend", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One authoritative room table per process, shared by REST and sockets.
    store = RoomStore(
        room_ttl_ms=settings.room_ttl_ms,
        lazy_room_ttl_ms=settings.lazy_room_ttl_ms,
        send_timeout=settings.send_timeout_sec,
    )
    app.state.settings = settings
    app.state.coordinator = SessionCoordinator(store, settings, generator)

    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)
    return app


__all__ = ["create_app", "lifespan"]
