"""
Process-local repositories. Used by the unit tests and by DATA_BACKEND=memory.
Stored objects are copied on the way in and out so callers never share state
with the store.
"""
from __future__ import annotations

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Sequence

from cookeasy.app.domain.models import (
    AppStats,
    ChangeKind,
    Recipe,
    StatField,
    UserProfile,
)
from cookeasy.app.infra.db.base import RecipeRepository, StatsRepository, UserRepository

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_key(recipe: Recipe) -> datetime:
    return recipe.created_at or _EPOCH


class InMemoryRecipeRepository(RecipeRepository):
    def __init__(self, recipes: Optional[Sequence[Recipe]] = None) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._recipes: dict[str, Recipe] = {}
        for recipe in recipes or []:
            self._recipes[recipe.recipe_id] = copy.deepcopy(recipe)

    def create_recipe(self, recipe: Recipe) -> Recipe:
        stored = copy.deepcopy(recipe)
        if stored.created_at is None:
            stored.created_at = datetime.now(timezone.utc)
        with self._lock:
            self._recipes[stored.recipe_id] = stored
        self._notify(ChangeKind.ADDED, stored.recipe_id)
        return copy.deepcopy(stored)

    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        with self._lock:
            recipe = self._recipes.get(recipe_id)
            return copy.deepcopy(recipe) if recipe else None

    def update_recipe(self, recipe: Recipe) -> Optional[Recipe]:
        with self._lock:
            current = self._recipes.get(recipe.recipe_id)
            if current is None:
                return None
            current.title = recipe.title
            current.ingredients = list(recipe.ingredients)
            current.steps = list(recipe.steps)
            current.tags = list(recipe.tags)
            current.updated_at = recipe.updated_at or datetime.now(timezone.utc)
            updated = copy.deepcopy(current)
        self._notify(ChangeKind.MODIFIED, recipe.recipe_id)
        return updated

    def delete_recipe(self, recipe_id: str) -> bool:
        with self._lock:
            removed = self._recipes.pop(recipe_id, None)
        if removed is None:
            return False
        self._notify(ChangeKind.REMOVED, recipe_id)
        return True

    def list_recipes(self, tags: Optional[Sequence[str]] = None) -> list[Recipe]:
        wanted = set(tags or [])
        with self._lock:
            recipes = [
                copy.deepcopy(recipe)
                for recipe in self._recipes.values()
                if wanted.issubset(recipe.tags)
            ]
        recipes.sort(key=_created_key, reverse=True)
        return recipes

    def get_recipes_by_ids(self, recipe_ids: Sequence[str]) -> list[Recipe]:
        with self._lock:
            return [
                copy.deepcopy(self._recipes[recipe_id])
                for recipe_id in recipe_ids
                if recipe_id in self._recipes
            ]


class InMemoryUserRepository(UserRepository):
    def __init__(self, users: Optional[Sequence[UserProfile]] = None) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._users: dict[str, UserProfile] = {}
        for user in users or []:
            self._users[user.user_id] = copy.deepcopy(user)

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            user = self._users.get(user_id)
            return copy.deepcopy(user) if user else None

    def ensure_user(self, user_id: str, email: Optional[str] = None) -> UserProfile:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                user = UserProfile(
                    user_id=user_id,
                    email=email,
                    created_at=datetime.now(timezone.utc),
                )
                self._users[user_id] = user
                logger.info("User profile created: user=%s", user_id)
            elif email:
                user.email = email
            return copy.deepcopy(user)

    def add_favorite(self, user_id: str, recipe_id: str) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return
            if recipe_id not in user.favorites:
                user.favorites.append(recipe_id)
        self._notify_favorites(ChangeKind.ADDED, recipe_id, user_id)

    def remove_favorite(self, user_id: str, recipe_id: str) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return
            user.favorites = [value for value in user.favorites if value != recipe_id]
        self._notify_favorites(ChangeKind.REMOVED, recipe_id, user_id)

    def remove_favorite_everywhere(self, recipe_id: str) -> int:
        changed: list[str] = []
        with self._lock:
            for user in self._users.values():
                if recipe_id in user.favorites:
                    user.favorites = [value for value in user.favorites if value != recipe_id]
                    changed.append(user.user_id)
        for user_id in changed:
            self._notify_favorites(ChangeKind.REMOVED, recipe_id, user_id)
        return len(changed)

    def list_users_with_favorites(self, limit: int = 100, offset: int = 0) -> list[UserProfile]:
        with self._lock:
            users = sorted(
                (user for user in self._users.values() if user.favorites),
                key=lambda user: user.user_id,
            )
            return [copy.deepcopy(user) for user in users[offset:offset + limit]]


class InMemoryStatsRepository(StatsRepository):
    def __init__(self, stats: Optional[AppStats] = None) -> None:
        self._lock = threading.Lock()
        self._stats = copy.deepcopy(stats) if stats else None

    def ensure_stats(self) -> AppStats:
        with self._lock:
            if self._stats is None:
                self._stats = AppStats()
            return copy.deepcopy(self._stats)

    def get_stats(self) -> AppStats:
        with self._lock:
            return copy.deepcopy(self._stats) if self._stats else AppStats()

    def increment(self, field: StatField, amount: int = 1) -> None:
        with self._lock:
            if self._stats is None:
                self._stats = AppStats()
            current = getattr(self._stats, field.value)
            setattr(self._stats, field.value, current + amount)
