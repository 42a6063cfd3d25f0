# cookeasy/app/routers/common.py
"""
Helpers shared by the routers: response mapping, domain error translation
and the WebSocket loop behind the live endpoints.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from fastapi import HTTPException, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from cookeasy.app.deps import CurrentUser, resolve_user
from cookeasy.app.domain.errors import (
    GatewayError,
    RecipeAppError,
    RecipeNotFoundError,
    RecipePermissionError,
    RecipeValidationError,
    UserNotFoundError,
)
from cookeasy.app.domain.models import Recipe
from cookeasy.app.schemas.recipes import RecipeListResponse, RecipeResponse

log = logging.getLogger("live")

# Starts a feed that calls push(value) on every update; returns its stop function
FeedOpener = Callable[[Callable[[Any], None]], Callable[[], None]]


def format_timestamp(value) -> Optional[str]:
    return value.isoformat() if value else None


def recipe_to_response(recipe: Recipe) -> RecipeResponse:
    return RecipeResponse(
        id=recipe.recipe_id,
        title=recipe.title,
        ingredients=list(recipe.ingredients),
        steps=list(recipe.steps),
        tags=list(recipe.tags),
        creatorId=recipe.creator_id,
        createdAt=format_timestamp(recipe.created_at),
        updatedAt=format_timestamp(recipe.updated_at),
    )


def list_response(recipes: list[Recipe]) -> RecipeListResponse:
    return RecipeListResponse(items=[recipe_to_response(r) for r in recipes], total=len(recipes))


def http_error(exc: RecipeAppError) -> HTTPException:
    if isinstance(exc, RecipeValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, RecipePermissionError):
        return HTTPException(status_code=403, detail="You don't have permission to change this recipe")
    if isinstance(exc, RecipeNotFoundError):
        return HTTPException(status_code=404, detail="Recipe not found")
    if isinstance(exc, UserNotFoundError):
        return HTTPException(status_code=404, detail="User data not found")
    if isinstance(exc, GatewayError):
        return HTTPException(status_code=502, detail="The recipe store is unavailable, try again later")
    return HTTPException(status_code=500, detail=str(exc))


async def authenticate_websocket(websocket: WebSocket, token: Optional[str]) -> Optional[CurrentUser]:
    """Resolve the ``token`` query parameter; closes the socket and returns None if invalid."""
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    try:
        return await run_in_threadpool(resolve_user, token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None


async def stream_updates(
    websocket: WebSocket,
    channel: str,
    user: CurrentUser,
    open_feed: FeedOpener,
    render: Callable[[Any], dict],
) -> None:
    """
    Send every value a feed pushes until the client disconnects.

    The feed notifies on whatever thread performed the write, so values are
    handed to the event loop with ``call_soon_threadsafe``.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    updates: asyncio.Queue = asyncio.Queue()

    def push(value: Any) -> None:
        loop.call_soon_threadsafe(updates.put_nowait, value)

    async def wait_for_disconnect() -> None:
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            return

    receiver = asyncio.create_task(wait_for_disconnect())
    stop: Optional[Callable[[], None]] = None
    log.info("live.open channel=%s user=%s", channel, user.id)
    try:
        stop = await run_in_threadpool(open_feed, push)
        while True:
            getter = asyncio.create_task(updates.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                getter.cancel()
                break
            await websocket.send_json(render(getter.result()))
    except RecipeAppError as exc:
        log.error("live.fail channel=%s user=%s error=%s", channel, user.id, exc)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        receiver.cancel()
        if stop is not None:
            stop()
        log.info("live.closed channel=%s user=%s", channel, user.id)
