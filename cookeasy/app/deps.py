# cookeasy/app/deps.py (singletons exposed as FastAPI dependencies)

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from supabase import Client, create_client

from cookeasy.app.config import settings
from cookeasy.app.domain.errors import GatewayError
from cookeasy.app.infra.db.base import RecipeRepository, StatsRepository, UserRepository
from cookeasy.app.infra.db.memory_repo import (
    InMemoryRecipeRepository,
    InMemoryStatsRepository,
    InMemoryUserRepository,
)
from cookeasy.app.infra.db.supabase_repo import (
    SupabaseRecipeRepository,
    SupabaseStatsRepository,
    SupabaseUserRepository,
)
from cookeasy.app.services.dashboard import DashboardService
from cookeasy.app.services.favorites import FavoritesService
from cookeasy.app.services.recipes import RecipeService
from cookeasy.app.services.search import SearchService

log = logging.getLogger("auth")

_client: Client | None = None
_recipe_repo: RecipeRepository | None = None
_user_repo: UserRepository | None = None
_stats_repo: StatsRepository | None = None


def _use_memory() -> bool:
    return settings.DATA_BACKEND == "memory"


def get_supabase() -> Client:
    global _client
    if _client is None:
        errors = settings.validate_backend()
        if errors:
            raise RuntimeError(", ".join(errors))
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_recipe_repository() -> RecipeRepository:
    global _recipe_repo
    if _recipe_repo is None:
        _recipe_repo = InMemoryRecipeRepository() if _use_memory() else SupabaseRecipeRepository(get_supabase())
    return _recipe_repo


def get_user_repository() -> UserRepository:
    global _user_repo
    if _user_repo is None:
        _user_repo = InMemoryUserRepository() if _use_memory() else SupabaseUserRepository(get_supabase())
    return _user_repo


def get_stats_repository() -> StatsRepository:
    global _stats_repo
    if _stats_repo is None:
        _stats_repo = InMemoryStatsRepository() if _use_memory() else SupabaseStatsRepository(get_supabase())
    return _stats_repo


def get_recipe_service(
    recipes: RecipeRepository = Depends(get_recipe_repository),
    users: UserRepository = Depends(get_user_repository),
) -> RecipeService:
    return RecipeService(recipes, users)


def get_search_service(
    recipes: RecipeRepository = Depends(get_recipe_repository),
    stats: StatsRepository = Depends(get_stats_repository),
) -> SearchService:
    return SearchService(recipes, stats)


def get_favorites_service(
    users: UserRepository = Depends(get_user_repository),
    recipes: RecipeRepository = Depends(get_recipe_repository),
    stats: StatsRepository = Depends(get_stats_repository),
) -> FavoritesService:
    return FavoritesService(users, recipes, stats)


def get_dashboard_service(
    recipes: RecipeRepository = Depends(get_recipe_repository),
    stats: StatsRepository = Depends(get_stats_repository),
) -> DashboardService:
    return DashboardService(
        recipes,
        stats,
        top_tags_limit=settings.DASHBOARD_TOP_TAGS,
        recent_limit=settings.DASHBOARD_RECENT_LIMIT,
    )


auth_scheme = HTTPBearer(auto_error=False)

class CurrentUser(BaseModel):
    id: str
    email: str | None = None


def resolve_user(token: str) -> CurrentUser:
    """
    Validate a Supabase access token against GoTrue and return the user.
    With the in-memory backend the token itself is taken as the user ID.
    """
    if _use_memory():
        return CurrentUser(id=token)

    try:
        res = get_supabase().auth.get_user(token)
        user = res.user if res else None
    except Exception as exc:
        log.info("auth.token_rejected error=%s", exc)
        raise HTTPException(status_code=401, detail="Invalid/expired token") from exc
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return CurrentUser(id=str(user.id), email=user.email)


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
) -> CurrentUser:
    """
    Receives Authorization: Bearer <access_token> issued by Supabase
    and returns the minimal user data.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    return await run_in_threadpool(resolve_user, cred.credentials)


def get_active_user(
    user: CurrentUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> CurrentUser:
    """Authenticated user whose profile record is guaranteed to exist."""
    try:
        users.ensure_user(user.id, user.email)
    except GatewayError as exc:
        log.error("auth.ensure_user_fail user=%s error=%s", user.id, exc)
        raise HTTPException(status_code=502, detail="Failed to load user data") from exc
    return user
