# cookeasy/app/services/favorites.py
"""
Favorites synchronization.
Mirrors a user's remote favorite array into local state and persists toggles.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from cookeasy.app.domain.errors import GatewayError, UserNotFoundError
from cookeasy.app.domain.models import (
    FavoriteChange,
    FavoriteToggleResult,
    Recipe,
    StatField,
    SyncStatus,
)
from cookeasy.app.infra.db.base import RecipeRepository, StatsRepository, UserRepository

logger = logging.getLogger(__name__)

# Recipes are resolved in batches of this size (the gateway's "in" filter limit)
FAVORITES_BATCH_SIZE = 10

FavoritesListener = Callable[[list[str]], None]


class FavoritesSync:
    """
    Local favorite set for one user, kept in step with the remote record.

    Responsibilities:
    - Load the remote favorite array, replacing local state wholesale
    - Apply toggles locally first, then persist them
    - Report whether each toggle reached the remote record
    - Count every persisted toggle in the global favorite counter
    - While started, reload on every favorites change made for this user
    """

    def __init__(
        self,
        user_id: str,
        users: UserRepository,
        stats: StatsRepository,
    ):
        self.user_id = user_id
        self._users = users
        self._stats = stats
        self._favorites: list[str] = []
        self._loaded = False
        self._lock = threading.Lock()
        self._on_update: Optional[FavoritesListener] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def favorites(self) -> list[str]:
        with self._lock:
            return list(self._favorites)

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def is_favorite(self, recipe_id: str) -> bool:
        with self._lock:
            return recipe_id in self._favorites

    def load(self) -> list[str]:
        """
        Replace the local favorite set with the remote one.

        Raises:
            UserNotFoundError: If the user record does not exist
        """
        profile = self._users.get_user(self.user_id)
        if profile is None:
            raise UserNotFoundError(self.user_id)
        favorites = list(dict.fromkeys(profile.favorites))
        with self._lock:
            self._favorites = favorites
            self._loaded = True
        if self._on_update is not None:
            self._on_update(list(favorites))
        return list(favorites)

    def start(self, on_update: Optional[FavoritesListener] = None) -> list[str]:
        """
        Follow remote changes: subscribe, then load the current set.
        ``on_update`` receives the full set after every load.
        """
        self._on_update = on_update
        if self._unsubscribe is None:
            self._unsubscribe = self._users.subscribe(self._handle_change)
        return self.load()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._on_update = None

    def toggle(self, recipe_id: str) -> FavoriteToggleResult:
        """
        Flip membership of a recipe in the favorite set.

        The local set changes immediately and is not rolled back when the
        remote write fails; the failure is reported in the result instead.

        Args:
            recipe_id: The recipe to add or remove

        Returns:
            FavoriteToggleResult with the new membership and sync status
        """
        if not self._loaded:
            self.load()

        with self._lock:
            adding = recipe_id not in self._favorites
            if adding:
                self._favorites.append(recipe_id)
            else:
                self._favorites = [value for value in self._favorites if value != recipe_id]

        try:
            if adding:
                self._users.add_favorite(self.user_id, recipe_id)
            else:
                self._users.remove_favorite(self.user_id, recipe_id)
        except GatewayError as error:
            logger.error(
                "favorite.sync_fail user=%s recipe=%s adding=%s error=%s",
                self.user_id,
                recipe_id,
                adding,
                error,
            )
            return FavoriteToggleResult(
                recipe_id=recipe_id,
                is_favorite=adding,
                status=SyncStatus.UNCONFIRMED,
                error="Failed to update favorites",
            )

        # Removals count too, so favorite_count is a toggle count
        self._count_toggle()

        logger.info("favorite.toggled user=%s recipe=%s is_favorite=%s", self.user_id, recipe_id, adding)
        return FavoriteToggleResult(
            recipe_id=recipe_id,
            is_favorite=adding,
            status=SyncStatus.CONFIRMED,
        )

    def _count_toggle(self) -> None:
        try:
            self._stats.increment(StatField.FAVORITE_COUNT)
        except GatewayError as error:
            logger.warning("favorite.count_fail user=%s error=%s", self.user_id, error)

    def _handle_change(self, change: FavoriteChange) -> None:
        if not change.affects(self.user_id):
            return
        logger.debug("favorite.change kind=%s user=%s recipe=%s", change.kind.value, self.user_id, change.recipe_id)
        self.load()


class FavoritesService:
    def __init__(
        self,
        users: UserRepository,
        recipes: RecipeRepository,
        stats: StatsRepository,
        batch_size: int = FAVORITES_BATCH_SIZE,
    ):
        self._users = users
        self._recipes = recipes
        self._stats = stats
        self.batch_size = batch_size

    def sync_for(self, user_id: str) -> FavoritesSync:
        return FavoritesSync(user_id, self._users, self._stats)

    def toggle(self, user_id: str, recipe_id: str) -> FavoriteToggleResult:
        return self.sync_for(user_id).toggle(recipe_id)

    def favorite_ids(self, user_id: str) -> list[str]:
        return self.sync_for(user_id).load()

    def list_favorites(self, user_id: str, favorite_ids: Optional[list[str]] = None) -> list[Recipe]:
        """
        Resolve the user's favorites against current recipes.

        Identifiers whose recipe no longer exists are skipped.

        Args:
            user_id: The user
            favorite_ids: Already loaded identifiers, to skip the user lookup

        Returns:
            Recipes in favorite order
        """
        ids = favorite_ids if favorite_ids is not None else self.favorite_ids(user_id)
        found: dict[str, Recipe] = {}
        for start in range(0, len(ids), self.batch_size):
            batch = ids[start:start + self.batch_size]
            for recipe in self._recipes.get_recipes_by_ids(batch):
                found[recipe.recipe_id] = recipe

        missing = [recipe_id for recipe_id in ids if recipe_id not in found]
        if missing:
            logger.info("favorite.dangling user=%s count=%d", user_id, len(missing))
        return [found[recipe_id] for recipe_id in ids if recipe_id in found]
