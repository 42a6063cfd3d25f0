from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, WebSocket, status
from starlette.concurrency import run_in_threadpool

from cookeasy.app.deps import (
    CurrentUser,
    get_active_user,
    get_favorites_service,
    get_user_repository,
)
from cookeasy.app.domain.errors import RecipeAppError
from cookeasy.app.infra.db.base import UserRepository
from cookeasy.app.routers.common import (
    authenticate_websocket,
    http_error,
    recipe_to_response,
    stream_updates,
)
from cookeasy.app.schemas.favorites import (
    FavoriteIdsResponse,
    FavoriteListResponse,
    FavoriteToggleResponse,
)
from cookeasy.app.services.favorites import FavoritesService

log = logging.getLogger("favorites")
router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.get("/", response_model=FavoriteListResponse)
async def list_favorites(
    user: CurrentUser = Depends(get_active_user),
    service: FavoritesService = Depends(get_favorites_service),
) -> FavoriteListResponse:
    try:
        recipes = await run_in_threadpool(service.list_favorites, user.id)
    except RecipeAppError as exc:
        log.error("favorites.list_fail user=%s error=%s", user.id, exc)
        raise http_error(exc) from exc
    return FavoriteListResponse(
        items=[recipe_to_response(recipe) for recipe in recipes],
        total=len(recipes),
    )


@router.get("/ids", response_model=FavoriteIdsResponse)
async def list_favorite_ids(
    user: CurrentUser = Depends(get_active_user),
    service: FavoritesService = Depends(get_favorites_service),
) -> FavoriteIdsResponse:
    try:
        ids = await run_in_threadpool(service.favorite_ids, user.id)
    except RecipeAppError as exc:
        log.error("favorites.ids_fail user=%s error=%s", user.id, exc)
        raise http_error(exc) from exc
    return FavoriteIdsResponse(recipeIds=ids)


@router.websocket("/live")
async def live_favorites(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    users: UserRepository = Depends(get_user_repository),
    service: FavoritesService = Depends(get_favorites_service),
) -> None:
    user = await authenticate_websocket(websocket, token)
    if user is None:
        return

    sync = service.sync_for(user.id)

    def open_feed(push):
        users.ensure_user(user.id, user.email)
        try:
            sync.start(on_update=push)
        except RecipeAppError:
            sync.stop()
            raise
        return sync.stop

    await stream_updates(
        websocket,
        "favorites",
        user,
        open_feed,
        lambda ids: FavoriteIdsResponse(recipeIds=ids).model_dump(),
    )


@router.post("/{recipe_id}/toggle", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    recipe_id: str,
    response: Response,
    user: CurrentUser = Depends(get_active_user),
    service: FavoritesService = Depends(get_favorites_service),
) -> FavoriteToggleResponse:
    try:
        result = await run_in_threadpool(service.toggle, user.id, recipe_id)
    except RecipeAppError as exc:
        log.error("favorites.toggle_fail recipe=%s user=%s error=%s", recipe_id, user.id, exc)
        raise http_error(exc) from exc

    if result.is_confirmed:
        message = "Added to Favorites" if result.is_favorite else "Removed from Favorites"
    else:
        response.status_code = status.HTTP_502_BAD_GATEWAY
        message = result.error

    return FavoriteToggleResponse(
        recipeId=result.recipe_id,
        isFavorite=result.is_favorite,
        status=result.status.value,
        message=message,
    )
