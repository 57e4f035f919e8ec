import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from config.settings import CORS_ORIGINS, LOG_LEVEL, SCHEDULER_ENABLED
from config.database import AsyncSessionLocal, create_tables
from routers import (
    admin,
    affiliates,
    auth,
    communications,
    payments,
    payouts,
    products,
    profiles,
    resources,
    sales,
    settings,
    stats,
    workspace,
)
from accounts import get_platform_settings
from jobs import run_scheduled_payout_cycle
from websocket_manager import websocketManager
from utils import validate_token
import models  # noqa: F401  registers every table on Base.metadata

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    #startup
    await create_tables()
    async with AsyncSessionLocal() as db:
        await get_platform_settings(db)

    if SCHEDULER_ENABLED:
        # Pending sales clear and roll into payouts once a day
        scheduler.add_job(run_scheduled_payout_cycle, "cron", hour=2, id="payout_cycle", replace_existing=True)
        scheduler.start()
        logger.info("Scheduler started")
    yield
    #shutdown
    if scheduler.running:
        scheduler.shutdown(wait=False)


app = FastAPI(title="PartnerFlow", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(
    auth.router,
    prefix="/api/auth",
    tags=["auth"]
)

app.include_router(
    profiles.router,
    prefix="/api/profiles",
    tags=["profiles"]
)

app.include_router(
    workspace.router,
    prefix="/api/workspace",
    tags=["workspace"]
)

app.include_router(
    products.router,
    prefix="/api/products",
    tags=["products"]
)

app.include_router(
    affiliates.router,
    prefix="/api/affiliates",
    tags=["affiliates"]
)
app.include_router(
    affiliates.links_router,
    prefix="/api/affiliates",
    tags=["affiliates"]
)

app.include_router(
    sales.router,
    prefix="/api/sales",
    tags=["sales"]
)

app.include_router(
    payouts.router,
    prefix="/api/payouts",
    tags=["payouts"]
)

app.include_router(
    payments.router,
    prefix="/api/payments",
    tags=["payments"]
)

app.include_router(
    communications.router,
    prefix="/api/communications",
    tags=["communications"]
)

app.include_router(
    resources.router,
    prefix="/api/resources",
    tags=["resources"]
)

app.include_router(
    settings.router,
    prefix="/api/settings",
    tags=["settings"]
)

app.include_router(
    admin.router,
    prefix="/api/admin",
    tags=["admin"]
)

app.include_router(
    stats.router,
    prefix="/api/stats",
    tags=["stats"]
)


#Web sockets
@app.websocket("/ws/auth/{user_id}")
async def websocket_auth(websocket: WebSocket, user_id: str, token: str = Query(default="")):
    """Auth-state channel: SIGNED_IN, SIGNED_OUT and USER_UPDATED events for one user.

    The access token comes in as `?token=` and must belong to `user_id`.
    """
    try:
        claims = validate_token(token, output=True)
    except HTTPException as e:
        logger.warning("Rejected auth socket for %s: %s", user_id, e.detail)
        claims = {}
    if claims.get("user_id") != user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocketManager.connect(websocket, user_id)
    try:
        # Keep the connection open; clients only listen
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await websocketManager.disconnect(user_id, websocket)


@app.get('/api/health')
async def health():
    return {"status": "ok"}
