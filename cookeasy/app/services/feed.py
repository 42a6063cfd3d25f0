from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from cookeasy.app.domain.models import Recipe, RecipeChange
from cookeasy.app.infra.db.base import RecipeRepository

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[list[Recipe]], None]


class RecipeFeed:
    """
    Live copy of the full recipe list.

    Every change notification triggers a fresh full listing which replaces
    the snapshot wholesale. Local edits are never merged.
    """

    def __init__(self, recipes: RecipeRepository, on_snapshot: Optional[SnapshotListener] = None) -> None:
        self._recipes = recipes
        self._on_snapshot = on_snapshot
        self._snapshot: list[Recipe] = []
        self._lock = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def snapshot(self) -> list[Recipe]:
        with self._lock:
            return list(self._snapshot)

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> list[Recipe]:
        if self._unsubscribe is None:
            self._unsubscribe = self._recipes.subscribe(self._handle_change)
        return self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def refresh(self) -> list[Recipe]:
        recipes = self._recipes.list_recipes()
        with self._lock:
            self._snapshot = recipes
        if self._on_snapshot is not None:
            self._on_snapshot(list(recipes))
        return list(recipes)

    def _handle_change(self, change: RecipeChange) -> None:
        logger.debug("feed.change kind=%s recipe=%s", change.kind.value, change.recipe_id)
        self.refresh()
