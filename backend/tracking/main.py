# backend/tracking/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tracking.core.config import settings
from tracking.api import auth, purchases, tracking
from tracking.core.database import async_session
from tracking.core.init_db import init_db

from tracking.fulfillment.event_emitter import MaterialEventEmitter
from tracking.fulfillment.transition_engine import StatusTransitionEngine
from tracking.services.batch_coordinator import BatchUpdateConfig, BatchUpdateCoordinator
from tracking.services.realtime_channel import RealtimeSyncChannel

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Material Tracking API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    await init_db()

    # Every committed material change goes through this emitter
    event_emitter = MaterialEventEmitter()

    engine = StatusTransitionEngine(async_session, event_emitter=event_emitter)
    coordinator = BatchUpdateCoordinator(
        engine, BatchUpdateConfig(max_concurrent=settings.BATCH_MAX_CONCURRENT)
    )
    channel = RealtimeSyncChannel(async_session, event_emitter)

    tracking.init_tracking_api(engine, coordinator)
    purchases.init_purchases_api(channel)

    # Store in app state for access
    app.state.event_emitter = event_emitter
    app.state.transition_engine = engine
    app.state.batch_coordinator = coordinator
    app.state.realtime_channel = channel

    logger.info("Material tracking services started")


@app.on_event("shutdown")
async def shutdown():
    channel = getattr(app.state, "realtime_channel", None)
    if channel is not None:
        channel.close()


app.include_router(auth.router)
app.include_router(tracking.router)
app.include_router(purchases.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
