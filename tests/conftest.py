from __future__ import annotations

import os

# Settings are read at import time
os.environ.setdefault("DATA_BACKEND", "memory")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")

from datetime import datetime, timedelta, timezone

import pytest

from cookeasy.app.domain.models import Recipe

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_recipe(
    recipe_id: str,
    title: str = "Untitled",
    creator_id: str = "alice",
    ingredients: list[str] | None = None,
    tags: list[str] | None = None,
    minutes: int = 0,
) -> Recipe:
    return Recipe(
        recipe_id=recipe_id,
        title=title,
        creator_id=creator_id,
        ingredients=ingredients if ingredients is not None else ["salt"],
        steps=["Cook it"],
        tags=tags or [],
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture
def sample_recipes() -> list[Recipe]:
    return [
        make_recipe("r1", "Tofu Stir Fry", ingredients=["Tofu", "Soy sauce"], tags=["vegan", "dinner"], minutes=3),
        make_recipe("r2", "Vegan Pancakes", ingredients=["Flour", "Oat milk"], tags=["vegan", "breakfast"], minutes=2),
        make_recipe("r3", "Chicken Curry", ingredients=["Chicken breast", "Curry paste"], tags=["dinner"], minutes=1),
        make_recipe("r4", "Plain Rice", creator_id="bob", ingredients=["Rice", "Water"], tags=[], minutes=0),
    ]


@pytest.fixture
def recipe_factory():
    return make_recipe
