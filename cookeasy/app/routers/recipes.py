# cookeasy/app/routers/recipes.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, WebSocket, status
from starlette.concurrency import run_in_threadpool

from cookeasy.app.deps import (
    CurrentUser,
    get_active_user,
    get_recipe_repository,
    get_recipe_service,
    get_search_service,
)
from cookeasy.app.domain.errors import GatewayError, RecipeAppError, RecipeValidationError
from cookeasy.app.domain.models import RecipeDraft
from cookeasy.app.infra.db.base import RecipeRepository
from cookeasy.app.routers.common import (
    authenticate_websocket,
    http_error,
    list_response,
    recipe_to_response,
    stream_updates,
)
from cookeasy.app.schemas.recipes import (
    RecipeCreate,
    RecipeListResponse,
    RecipeResponse,
    RecipeUpdate,
    SortParam,
    TagListResponse,
)
from cookeasy.app.services.feed import RecipeFeed
from cookeasy.app.services.recipes import RecipeService
from cookeasy.app.services.search import SearchService, parse_ingredient_terms

log = logging.getLogger("recipes")
router = APIRouter(prefix="/recipes", tags=["recipes"])


def _draft_from(payload: RecipeCreate) -> RecipeDraft:
    return RecipeDraft(
        title=payload.title,
        ingredients=list(payload.ingredients),
        steps=list(payload.steps),
        tags=list(payload.tags),
    )


@router.get("/", response_model=RecipeListResponse)
async def list_recipes(
    sort: SortParam = Query(default="newest"),
    user: CurrentUser = Depends(get_active_user),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeListResponse:
    try:
        recipes = await run_in_threadpool(service.list_recipes, sort)
    except RecipeAppError as exc:
        log.error("recipes.list_fail user=%s error=%s", user.id, exc)
        raise http_error(exc) from exc
    return list_response(recipes)


@router.get("/tags", response_model=TagListResponse)
async def list_tags(
    user: CurrentUser = Depends(get_active_user),
    service: SearchService = Depends(get_search_service),
) -> TagListResponse:
    try:
        tags = await run_in_threadpool(service.available_tags)
    except RecipeAppError as exc:
        log.error("recipes.tags_fail user=%s error=%s", user.id, exc)
        raise http_error(exc) from exc
    return TagListResponse(tags=tags)


@router.get("/search", response_model=RecipeListResponse)
async def search_recipes(
    ingredients: str | None = Query(
        default=None,
        max_length=500,
        description="Comma-separated ingredient terms; any of them may match.",
    ),
    tags: list[str] | None = Query(default=None, description="Tags the recipe must all carry."),
    sort: SortParam | None = Query(default=None),
    user: CurrentUser = Depends(get_active_user),
    service: SearchService = Depends(get_search_service),
) -> RecipeListResponse:
    terms = parse_ingredient_terms(ingredients)
    log.info("search.start user=%s terms=%s tags=%s", user.id, terms, tags)
    try:
        results = await run_in_threadpool(service.search, terms, tags or [], sort)
    except RecipeValidationError as exc:
        raise http_error(exc) from exc
    except RecipeAppError as exc:
        log.error("search.fail user=%s error=%s", user.id, exc)
        raise http_error(exc) from exc
    return list_response(results)


@router.websocket("/live")
async def live_recipes(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    recipes: RecipeRepository = Depends(get_recipe_repository),
) -> None:
    user = await authenticate_websocket(websocket, token)
    if user is None:
        return

    def open_feed(push):
        feed = RecipeFeed(recipes, on_snapshot=push)
        try:
            feed.start()
        except GatewayError:
            feed.stop()
            raise
        return feed.stop

    await stream_updates(
        websocket,
        "recipes",
        user,
        open_feed,
        lambda snapshot: list_response(snapshot).model_dump(),
    )


@router.post("/", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    payload: RecipeCreate,
    user: CurrentUser = Depends(get_active_user),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeResponse:
    try:
        recipe = await run_in_threadpool(service.create_recipe, user.id, _draft_from(payload))
    except RecipeAppError as exc:
        log.warning("recipes.create_fail user=%s error=%s", user.id, exc)
        raise http_error(exc) from exc
    return recipe_to_response(recipe)


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: str,
    user: CurrentUser = Depends(get_active_user),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeResponse:
    try:
        recipe = await run_in_threadpool(service.get_recipe, recipe_id)
    except RecipeAppError as exc:
        raise http_error(exc) from exc
    return recipe_to_response(recipe)


@router.put("/{recipe_id}", response_model=RecipeResponse)
async def update_recipe(
    recipe_id: str,
    payload: RecipeUpdate,
    user: CurrentUser = Depends(get_active_user),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeResponse:
    try:
        recipe = await run_in_threadpool(service.update_recipe, user.id, recipe_id, _draft_from(payload))
    except RecipeAppError as exc:
        log.warning("recipes.update_fail recipe=%s user=%s error=%s", recipe_id, user.id, exc)
        raise http_error(exc) from exc
    return recipe_to_response(recipe)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(
    recipe_id: str,
    user: CurrentUser = Depends(get_active_user),
    service: RecipeService = Depends(get_recipe_service),
) -> Response:
    try:
        await run_in_threadpool(service.delete_recipe, user.id, recipe_id)
    except RecipeAppError as exc:
        log.warning("recipes.delete_fail recipe=%s user=%s error=%s", recipe_id, user.id, exc)
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
