# cookeasy/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from cookeasy.app.config import settings
from cookeasy.app.deps import get_stats_repository
from cookeasy.app.domain.errors import GatewayError
from cookeasy.app.routers.auth import router as auth_router
from cookeasy.app.routers.dashboard import router as dashboard_router
from cookeasy.app.routers.favorites import router as favorites_router
from cookeasy.app.routers.recipes import router as recipes_router

# Plain stdout logging (fine for dev and containers)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("app")

app = FastAPI(title="CookEasy Recipes API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(recipes_router)
app.include_router(favorites_router)
app.include_router(dashboard_router)


@app.on_event("startup")
async def startup() -> None:
    log.info("app.start env=%s backend=%s", settings.APP_ENV, settings.DATA_BACKEND)
    stats_repo = app.dependency_overrides.get(get_stats_repository, get_stats_repository)()
    try:
        await run_in_threadpool(stats_repo.ensure_stats)
    except GatewayError as exc:
        log.error("app.stats_init_fail error=%s", exc)


@app.get("/health")
def health():
    return {"ok": True}
