# cookeasy/app/services/search.py
"""
Recipe search by ingredients and tags.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from cookeasy.app.domain.errors import EmptySearchError, GatewayError, RecipeValidationError
from cookeasy.app.domain.models import Recipe, SortOption, StatField
from cookeasy.app.infra.db.base import RecipeRepository, StatsRepository

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_ingredient_terms(text: str | None) -> list[str]:
    """Split a comma-separated ingredient query into trimmed, non-empty terms."""
    if not text:
        return []
    return [term.strip() for term in text.split(",") if term.strip()]


def clean_terms(values: Iterable[str] | None) -> list[str]:
    if not values:
        return []
    return [value.strip() for value in values if value and value.strip()]


def normalize_tags(values: Iterable[str] | None) -> list[str]:
    """Trim and lower-case tags, dropping blanks and repeats (first one wins)."""
    tags: list[str] = []
    for value in clean_terms(values):
        tag = value.lower()
        if tag not in tags:
            tags.append(tag)
    return tags


def matches_ingredients(recipe: Recipe, terms: Sequence[str]) -> bool:
    lowered = [ingredient.lower() for ingredient in recipe.ingredients]
    return any(term.lower() in ingredient for term in terms for ingredient in lowered)


def matches_tags(recipe: Recipe, tags: Sequence[str]) -> bool:
    return all(tag in recipe.tags for tag in tags)


def filter_recipes(
    recipes: Sequence[Recipe],
    ingredients: Sequence[str],
    tags: Sequence[str],
) -> list[Recipe]:
    """
    Keep the recipes matching the ingredient terms and the selected tags.

    A recipe matches the ingredients when any term is a case-insensitive
    substring of any of its ingredients. It matches the tags when it carries
    all of them. An empty list does not constrain. Input order is kept.
    """
    terms = clean_terms(ingredients)
    wanted_tags = normalize_tags(tags)
    return [
        recipe
        for recipe in recipes
        if (not terms or matches_ingredients(recipe, terms))
        and (not wanted_tags or matches_tags(recipe, wanted_tags))
    ]


def collect_tags(recipes: Iterable[Recipe]) -> list[str]:
    """All distinct tags in the order they are first seen."""
    seen: dict[str, None] = {}
    for recipe in recipes:
        for tag in recipe.tags:
            seen.setdefault(tag, None)
    return list(seen)


def sort_recipes(recipes: Sequence[Recipe], option: SortOption | str | None = None) -> list[Recipe]:
    try:
        order = SortOption(option) if option else SortOption.NEWEST
    except ValueError as exc:
        raise RecipeValidationError(f"Unknown sort option: {option}", field="sort") from exc

    if order == SortOption.NEWEST:
        return sorted(recipes, key=lambda r: r.created_at or _EPOCH, reverse=True)
    if order == SortOption.OLDEST:
        return sorted(recipes, key=lambda r: r.created_at or _EPOCH)
    if order == SortOption.AZ:
        return sorted(recipes, key=lambda r: r.title.casefold())
    return sorted(recipes, key=lambda r: r.title.casefold(), reverse=True)


class SearchService:
    """
    Validates a search, records it in the stats and runs the filter.
    """

    def __init__(self, recipes: RecipeRepository, stats: StatsRepository):
        self._recipes = recipes
        self._stats = stats

    def search(
        self,
        ingredients: Sequence[str],
        tags: Sequence[str],
        sort: Optional[SortOption | str] = None,
    ) -> list[Recipe]:
        """
        Search recipes.

        Args:
            ingredients: Free-text ingredient terms (any may match)
            tags: Selected tags (all must match)
            sort: Optional ordering, applied after filtering

        Returns:
            Matching recipes

        Raises:
            EmptySearchError: If neither ingredients nor tags were given
        """
        terms = clean_terms(ingredients)
        wanted_tags = normalize_tags(tags)
        if not terms and not wanted_tags:
            raise EmptySearchError()

        self._record_search()

        candidates = self._recipes.list_recipes(tags=wanted_tags or None)
        results = filter_recipes(candidates, terms, wanted_tags)
        logger.info(
            "search.done terms=%d tags=%d candidates=%d results=%d",
            len(terms),
            len(wanted_tags),
            len(candidates),
            len(results),
        )
        if sort:
            return sort_recipes(results, sort)
        return results

    def available_tags(self) -> list[str]:
        return collect_tags(self._recipes.list_recipes())

    def _record_search(self) -> None:
        try:
            self._stats.increment(StatField.SEARCH_COUNT)
        except GatewayError as error:
            logger.warning("search.count_fail error=%s", error)
