from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Sequence

from cookeasy.app.domain.models import DashboardSummary, Recipe, TagCount
from cookeasy.app.infra.db.base import RecipeRepository, StatsRepository

logger = logging.getLogger(__name__)

DEFAULT_TOP_TAGS = 5
DEFAULT_RECENT_LIMIT = 5

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def count_tags(recipes: Iterable[Recipe]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for recipe in recipes:
        for tag in recipe.tags:
            counts[tag] = counts.get(tag, 0) + 1
    return counts


def top_tags(recipes: Iterable[Recipe], limit: int = DEFAULT_TOP_TAGS) -> list[TagCount]:
    """Most used tags, count descending. Ties keep first-encountered order."""
    counts = count_tags(recipes)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [TagCount(name=name, count=count) for name, count in ranked[:limit]]


def recent_recipes(
    recipes: Sequence[Recipe],
    creator_id: str,
    limit: int = DEFAULT_RECENT_LIMIT,
) -> list[Recipe]:
    own = [recipe for recipe in recipes if recipe.creator_id == creator_id]
    own.sort(key=lambda recipe: recipe.created_at or _EPOCH, reverse=True)
    return own[:limit]


class DashboardService:
    def __init__(
        self,
        recipes: RecipeRepository,
        stats: StatsRepository,
        top_tags_limit: int = DEFAULT_TOP_TAGS,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ):
        self._recipes = recipes
        self._stats = stats
        self.top_tags_limit = top_tags_limit
        self.recent_limit = recent_limit

    def build(self, user_id: str) -> DashboardSummary:
        stats = self._stats.get_stats()
        recipes = self._recipes.list_recipes()
        recipe_count = sum(1 for recipe in recipes if recipe.creator_id == user_id)
        recent = recent_recipes(recipes, user_id, self.recent_limit)
        tags = top_tags(recipes, self.top_tags_limit)

        logger.info("dashboard.built user=%s recipes=%d tags=%d", user_id, recipe_count, len(tags))
        return DashboardSummary(
            stats=stats,
            recipe_count=recipe_count,
            top_tags=tags,
            recent_recipes=recent,
        )
