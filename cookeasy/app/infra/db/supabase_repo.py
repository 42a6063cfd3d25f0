from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from cookeasy.app.domain.errors import GatewayError
from cookeasy.app.domain.models import (
    STATS_ID,
    AppStats,
    ChangeKind,
    Recipe,
    StatField,
    UserProfile,
)
from cookeasy.app.infra.db.base import RecipeRepository, StatsRepository, UserRepository

logger = logging.getLogger(__name__)

RECIPE_COLUMNS = "recipe_id,title,ingredients,steps,tags,creator_id,created_at,updated_at"
USER_COLUMNS = "user_id,email,favorites,created_at"

_GATEWAY_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _safe_int(value: object, default: int = 0) -> int:
    return int(value) if value else default


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _str_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    return Recipe(
        recipe_id=str(row["recipe_id"]),
        title=str(row.get("title") or ""),
        creator_id=str(row.get("creator_id") or ""),
        ingredients=_str_list(row.get("ingredients")),
        steps=_str_list(row.get("steps")),
        tags=_str_list(row.get("tags")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _row_to_user(row: dict[str, Any]) -> UserProfile:
    return UserProfile(
        user_id=str(row["user_id"]),
        email=_safe_str(row.get("email")),
        favorites=_str_list(row.get("favorites")),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _recipe_to_row(recipe: Recipe) -> dict[str, Any]:
    row: dict[str, Any] = {
        "recipe_id": recipe.recipe_id,
        "title": recipe.title,
        "ingredients": list(recipe.ingredients),
        "steps": list(recipe.steps),
        "tags": list(recipe.tags),
        "creator_id": recipe.creator_id,
    }
    if recipe.created_at:
        row["created_at"] = recipe.created_at.isoformat()
    if recipe.updated_at:
        row["updated_at"] = recipe.updated_at.isoformat()
    return row


def _create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client | None = None):
        super().__init__()
        self._client = client or _create_supabase_client()
        logger.info("SupabaseRecipeRepository initialized")

    def create_recipe(self, recipe: Recipe) -> Recipe:
        row = _recipe_to_row(recipe)
        row.setdefault("created_at", _now_utc().isoformat())

        try:
            result = self._client.table(self.TABLE_NAME).insert(row).execute()
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error creating recipe: %s", error)
            raise GatewayError("create_recipe", str(error)) from error

        if not result.data:
            raise GatewayError("create_recipe", "no row returned")

        created = _row_to_recipe(result.data[0])
        logger.info("Created recipe: id=%s, creator=%s", created.recipe_id, created.creator_id)
        self._notify(ChangeKind.ADDED, created.recipe_id)
        return created

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(RECIPE_COLUMNS)
                .eq("recipe_id", recipe_id)
                .limit(1)
                .execute()
            )
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error getting recipe %s: %s", recipe_id, error)
            raise GatewayError("get_recipe", str(error)) from error

        if not result.data:
            return None
        return _row_to_recipe(result.data[0])

    def update_recipe(self, recipe: Recipe) -> Recipe | None:
        update_data = {
            "title": recipe.title,
            "ingredients": list(recipe.ingredients),
            "steps": list(recipe.steps),
            "tags": list(recipe.tags),
            "updated_at": (recipe.updated_at or _now_utc()).isoformat(),
        }

        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .update(update_data)
                .eq("recipe_id", recipe.recipe_id)
                .execute()
            )
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error updating recipe %s: %s", recipe.recipe_id, error)
            raise GatewayError("update_recipe", str(error)) from error

        if not result.data:
            return None

        updated = _row_to_recipe(result.data[0])
        logger.info("Updated recipe: id=%s", updated.recipe_id)
        self._notify(ChangeKind.MODIFIED, updated.recipe_id)
        return updated

    def delete_recipe(self, recipe_id: str) -> bool:
        try:
            result = self._client.table(self.TABLE_NAME).delete().eq("recipe_id", recipe_id).execute()
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error deleting recipe %s: %s", recipe_id, error)
            raise GatewayError("delete_recipe", str(error)) from error

        if not result.data:
            return False

        logger.info("Deleted recipe: id=%s", recipe_id)
        self._notify(ChangeKind.REMOVED, recipe_id)
        return True

    def list_recipes(self, tags: Optional[Sequence[str]] = None) -> list[Recipe]:
        try:
            query = self._client.table(self.TABLE_NAME).select(RECIPE_COLUMNS)
            if tags:
                query = query.contains("tags", list(tags))
            result = query.order("created_at", desc=True).execute()
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error listing recipes: %s", error)
            raise GatewayError("list_recipes", str(error)) from error

        return [_row_to_recipe(row) for row in result.data or []]

    def get_recipes_by_ids(self, recipe_ids: Sequence[str]) -> list[Recipe]:
        ids = [str(value) for value in recipe_ids if value]
        if not ids:
            return []

        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(RECIPE_COLUMNS)
                .in_("recipe_id", ids)
                .execute()
            )
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error fetching recipes by id: %s", error)
            raise GatewayError("get_recipes_by_ids", str(error)) from error

        return [_row_to_recipe(row) for row in result.data or []]


class SupabaseUserRepository(UserRepository):
    TABLE_NAME = "users"

    def __init__(self, client: Client | None = None):
        super().__init__()
        self._client = client or _create_supabase_client()
        logger.info("SupabaseUserRepository initialized")

    def get_user(self, user_id: str) -> UserProfile | None:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(USER_COLUMNS)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error getting user %s: %s", user_id, error)
            raise GatewayError("get_user", str(error)) from error

        if not result.data:
            return None
        return _row_to_user(result.data[0])

    def ensure_user(self, user_id: str, email: str | None = None) -> UserProfile:
        data: dict[str, Any] = {"user_id": user_id}
        if email:
            data["email"] = email

        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .upsert(data, on_conflict="user_id")
                .execute()
            )
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error ensuring user %s: %s", user_id, error)
            raise GatewayError("ensure_user", str(error)) from error

        if result.data:
            return _row_to_user(result.data[0])

        profile = self.get_user(user_id)
        if profile is None:
            raise GatewayError("ensure_user", "user row missing after upsert")
        return profile

    def add_favorite(self, user_id: str, recipe_id: str) -> None:
        self._call_rpc("add_favorite", {"p_user_id": user_id, "p_recipe_id": recipe_id})
        logger.info("Favorite added: user=%s, recipe=%s", user_id, recipe_id)
        self._notify_favorites(ChangeKind.ADDED, recipe_id, user_id)

    def remove_favorite(self, user_id: str, recipe_id: str) -> None:
        self._call_rpc("remove_favorite", {"p_user_id": user_id, "p_recipe_id": recipe_id})
        logger.info("Favorite removed: user=%s, recipe=%s", user_id, recipe_id)
        self._notify_favorites(ChangeKind.REMOVED, recipe_id, user_id)

    def remove_favorite_everywhere(self, recipe_id: str) -> int:
        result = self._call_rpc("remove_favorite_everywhere", {"p_recipe_id": recipe_id})
        changed = result.data if isinstance(result.data, int) else 0
        logger.info("Favorite pruned everywhere: recipe=%s, users=%d", recipe_id, changed)
        if changed:
            self._notify_favorites(ChangeKind.REMOVED, recipe_id)
        return changed

    def list_users_with_favorites(self, limit: int = 100, offset: int = 0) -> list[UserProfile]:
        end = offset + limit - 1
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(USER_COLUMNS)
                .neq("favorites", "{}")
                .order("user_id")
                .range(offset, end)
                .execute()
            )
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error listing users with favorites: %s", error)
            raise GatewayError("list_users_with_favorites", str(error)) from error

        return [_row_to_user(row) for row in result.data or []]

    def _call_rpc(self, name: str, params: dict[str, Any]):
        try:
            return self._client.rpc(name, params).execute()
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error calling %s: %s", name, error)
            raise GatewayError(name, str(error)) from error


class SupabaseStatsRepository(StatsRepository):
    TABLE_NAME = "stats"

    def __init__(self, client: Client | None = None, stat_id: str = STATS_ID):
        self._client = client or _create_supabase_client()
        self._stat_id = stat_id

    def ensure_stats(self) -> AppStats:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("stat_id", self._stat_id)
                .limit(1)
                .execute()
            )
            if result.data:
                return self._row_to_stats(result.data[0])

            default_data = {
                "stat_id": self._stat_id,
                StatField.SEARCH_COUNT.value: 0,
                StatField.FAVORITE_COUNT.value: 0,
            }
            self._client.table(self.TABLE_NAME).insert(default_data).execute()
            logger.info("Stats record created: id=%s", self._stat_id)
            return AppStats()
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error ensuring stats: %s", error)
            raise GatewayError("ensure_stats", str(error)) from error

    def get_stats(self) -> AppStats:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("stat_id", self._stat_id)
                .limit(1)
                .execute()
            )
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error getting stats: %s", error)
            raise GatewayError("get_stats", str(error)) from error

        if not result.data:
            return AppStats()
        return self._row_to_stats(result.data[0])

    def increment(self, field: StatField, amount: int = 1) -> None:
        try:
            self._client.rpc(
                "increment_stat",
                {"p_stat_id": self._stat_id, "p_field": field.value, "p_amount": amount},
            ).execute()
        except _GATEWAY_ERRORS as error:
            logger.error("Gateway error incrementing %s: %s", field.value, error)
            raise GatewayError("increment", str(error)) from error

    @staticmethod
    def _row_to_stats(row: dict[str, Any]) -> AppStats:
        return AppStats(
            search_count=_safe_int(row.get(StatField.SEARCH_COUNT.value)),
            favorite_count=_safe_int(row.get(StatField.FAVORITE_COUNT.value)),
        )
