# cookeasy/app/services/recipes.py
"""
Recipe authoring service.
Handles validation, ownership checks and favorite cleanup on delete.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from cookeasy.app.domain.errors import (
    GatewayError,
    RecipeNotFoundError,
    RecipePermissionError,
    RecipeValidationError,
)
from cookeasy.app.domain.models import Recipe, RecipeDraft, SortOption
from cookeasy.app.infra.db.base import RecipeRepository, UserRepository
from cookeasy.app.services.search import clean_terms, normalize_tags, sort_recipes

logger = logging.getLogger(__name__)


def validate_draft(draft: RecipeDraft) -> RecipeDraft:
    """
    Clean a submitted recipe and check its required fields.

    Ingredients and steps are trimmed with blank entries dropped; tags are
    also lower-cased and de-duplicated.

    Raises:
        RecipeValidationError: If the title, ingredients or steps are missing
    """
    title = (draft.title or "").strip()
    if not title:
        raise RecipeValidationError("Title is required", field="title")

    ingredients = clean_terms(draft.ingredients)
    if not ingredients:
        raise RecipeValidationError("At least one ingredient is required", field="ingredients")

    steps = clean_terms(draft.steps)
    if not steps:
        raise RecipeValidationError("At least one step is required", field="steps")

    return RecipeDraft(
        title=title,
        ingredients=ingredients,
        steps=steps,
        tags=normalize_tags(draft.tags),
    )


class RecipeService:
    def __init__(self, recipes: RecipeRepository, users: UserRepository):
        self._recipes = recipes
        self._users = users

    def list_recipes(self, sort: Optional[SortOption | str] = None) -> list[Recipe]:
        recipes = self._recipes.list_recipes()
        return sort_recipes(recipes, sort) if sort else recipes

    def get_recipe(self, recipe_id: str) -> Recipe:
        recipe = self._recipes.get_recipe(recipe_id)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        return recipe

    def create_recipe(self, user_id: str, draft: RecipeDraft) -> Recipe:
        clean = validate_draft(draft)
        recipe = Recipe(
            recipe_id=str(uuid4()),
            title=clean.title,
            creator_id=user_id,
            ingredients=clean.ingredients,
            steps=clean.steps,
            tags=clean.tags,
            created_at=datetime.now(timezone.utc),
        )
        created = self._recipes.create_recipe(recipe)
        logger.info("recipe.created id=%s user=%s", created.recipe_id, user_id)
        return created

    def update_recipe(self, user_id: str, recipe_id: str, draft: RecipeDraft) -> Recipe:
        """
        Replace the editable fields of a recipe owned by the user.

        Raises:
            RecipeNotFoundError: If the recipe does not exist (or vanished mid-update)
            RecipePermissionError: If the user is not the creator
            RecipeValidationError: If the draft is incomplete
        """
        current = self._get_owned(user_id, recipe_id)
        clean = validate_draft(draft)

        current.title = clean.title
        current.ingredients = clean.ingredients
        current.steps = clean.steps
        current.tags = clean.tags
        current.updated_at = datetime.now(timezone.utc)

        updated = self._recipes.update_recipe(current)
        if updated is None:
            raise RecipeNotFoundError(recipe_id)
        logger.info("recipe.updated id=%s user=%s", recipe_id, user_id)
        return updated

    def delete_recipe(self, user_id: str, recipe_id: str) -> None:
        self._get_owned(user_id, recipe_id)
        if not self._recipes.delete_recipe(recipe_id):
            raise RecipeNotFoundError(recipe_id)
        logger.info("recipe.deleted id=%s user=%s", recipe_id, user_id)

        try:
            pruned = self._users.remove_favorite_everywhere(recipe_id)
            if pruned:
                logger.info("recipe.favorites_pruned id=%s users=%d", recipe_id, pruned)
        except GatewayError as error:
            logger.error("recipe.favorites_prune_fail id=%s error=%s", recipe_id, error)

    def _get_owned(self, user_id: str, recipe_id: str) -> Recipe:
        recipe = self.get_recipe(recipe_id)
        if not recipe.is_owned_by(user_id):
            raise RecipePermissionError(recipe_id, user_id)
        return recipe
