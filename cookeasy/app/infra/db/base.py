# cookeasy/app/infra/db/base.py
"""
Abstract repositories for recipes, user profiles and app statistics.
This interface allows swapping the remote gateway for an in-memory fake.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence

from cookeasy.app.domain.models import (
    AppStats,
    ChangeKind,
    FavoriteChange,
    Recipe,
    RecipeChange,
    StatField,
    UserProfile,
)

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Any], None]


class ChangePublisher:
    """
    Synchronous fan-out of change notifications.
    Callbacks run on the writing thread; a failing callback is logged and skipped.
    """

    def __init__(self) -> None:
        self._subscribers: list[ChangeCallback] = []
        self._subscribers_lock = threading.Lock()

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A function that removes the listener
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, change: Any) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(change)
            except Exception:
                logger.exception("changes.subscriber_failed change=%s", change)


class RecipeRepository(ChangePublisher, ABC):
    """
    Abstract interface for recipe storage.

    Implementations:
    - SupabaseRecipeRepository: `recipes` table through the Supabase SDK
    - InMemoryRecipeRepository: process-local dictionary, for tests and local runs

    Every successful write is published as a RecipeChange to subscribers
    registered with ``subscribe``.
    """

    @abstractmethod
    def create_recipe(self, recipe: Recipe) -> Recipe:
        """
        Persist a new recipe.

        Args:
            recipe: Fully populated recipe, including its recipe_id

        Returns:
            The stored recipe
        """
        pass

    @abstractmethod
    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        """
        Get a recipe by its ID.

        Returns:
            The recipe, or None if not found
        """
        pass

    @abstractmethod
    def update_recipe(self, recipe: Recipe) -> Optional[Recipe]:
        """
        Overwrite the editable fields of an existing recipe.

        Args:
            recipe: Recipe carrying the new title, ingredients, steps and tags

        Returns:
            The stored recipe, or None if it no longer exists
        """
        pass

    @abstractmethod
    def delete_recipe(self, recipe_id: str) -> bool:
        """
        Delete a recipe.

        Returns:
            True if a recipe was deleted
        """
        pass

    @abstractmethod
    def list_recipes(self, tags: Optional[Sequence[str]] = None) -> list[Recipe]:
        """
        List recipes, newest first.

        Args:
            tags: If provided, only recipes whose tags contain all of them

        Returns:
            List of recipes
        """
        pass

    @abstractmethod
    def get_recipes_by_ids(self, recipe_ids: Sequence[str]) -> list[Recipe]:
        """
        Fetch the recipes matching the given IDs. Unknown IDs are skipped.
        """
        pass

    def _notify(self, kind: ChangeKind, recipe_id: str) -> None:
        self._publish(RecipeChange(kind=kind, recipe_id=recipe_id))


class UserRepository(ChangePublisher, ABC):
    """
    Abstract interface for user profiles and their favorite sets.

    Every successful favorites write is published as a FavoriteChange to
    subscribers registered with ``subscribe``.
    """

    def _notify_favorites(self, kind: ChangeKind, recipe_id: str, user_id: Optional[str] = None) -> None:
        self._publish(FavoriteChange(kind=kind, recipe_id=recipe_id, user_id=user_id))

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    def ensure_user(self, user_id: str, email: Optional[str] = None) -> UserProfile:
        """
        Create the profile if missing, otherwise refresh its email.

        Returns:
            The stored profile
        """
        pass

    @abstractmethod
    def add_favorite(self, user_id: str, recipe_id: str) -> None:
        """
        Add a recipe ID to the favorite array (set union, no duplicates).
        """
        pass

    @abstractmethod
    def remove_favorite(self, user_id: str, recipe_id: str) -> None:
        """
        Remove a recipe ID from the favorite array.
        """
        pass

    @abstractmethod
    def remove_favorite_everywhere(self, recipe_id: str) -> int:
        """
        Remove a recipe ID from every user's favorites.

        Returns:
            Number of profiles changed
        """
        pass

    @abstractmethod
    def list_users_with_favorites(self, limit: int = 100, offset: int = 0) -> list[UserProfile]:
        """
        Page through profiles holding at least one favorite, ordered by user ID.
        """
        pass


class StatsRepository(ABC):
    """
    Abstract interface for the singleton stats record.
    """

    @abstractmethod
    def ensure_stats(self) -> AppStats:
        """
        Create the record with zero counters if it does not exist yet.
        """
        pass

    @abstractmethod
    def get_stats(self) -> AppStats:
        pass

    @abstractmethod
    def increment(self, field: StatField, amount: int = 1) -> None:
        """
        Increment a counter using the gateway's increment primitive.
        """
        pass
