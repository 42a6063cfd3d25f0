from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from cookeasy.app.deps import CurrentUser, get_active_user, get_dashboard_service
from cookeasy.app.domain.errors import RecipeAppError
from cookeasy.app.routers.common import http_error, recipe_to_response
from cookeasy.app.schemas.dashboard import DashboardResponse, StatsResponse, TagCountResponse
from cookeasy.app.services.dashboard import DashboardService

log = logging.getLogger("dashboard")
router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/", response_model=DashboardResponse)
async def get_dashboard(
    user: CurrentUser = Depends(get_active_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    try:
        summary = await run_in_threadpool(service.build, user.id)
    except RecipeAppError as exc:
        log.error("dashboard.fail user=%s error=%s", user.id, exc)
        raise http_error(exc) from exc

    return DashboardResponse(
        stats=StatsResponse(
            searchCount=summary.stats.search_count,
            favoriteCount=summary.stats.favorite_count,
        ),
        recipeCount=summary.recipe_count,
        topTags=[TagCountResponse(name=tag.name, count=tag.count) for tag in summary.top_tags],
        recentRecipes=[recipe_to_response(recipe) for recipe in summary.recent_recipes],
    )
