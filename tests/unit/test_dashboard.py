from __future__ import annotations

from cookeasy.app.domain.models import AppStats, Recipe
from cookeasy.app.infra.db.memory_repo import InMemoryRecipeRepository, InMemoryStatsRepository
from cookeasy.app.services.dashboard import DashboardService, count_tags, recent_recipes, top_tags


class TestTopTags:
    def test_ranks_by_frequency(self, recipe_factory) -> None:
        recipes = [
            recipe_factory("r1", tags=["a"]),
            recipe_factory("r2", tags=["a"]),
            recipe_factory("r3", tags=["b"]),
        ]

        ranked = top_tags(recipes)

        assert [(tag.name, tag.count) for tag in ranked] == [("a", 2), ("b", 1)]

    def test_ties_keep_first_encountered_order(self, recipe_factory) -> None:
        recipes = [
            recipe_factory("r1", tags=["soup", "quick"]),
            recipe_factory("r2", tags=["vegan", "quick"]),
            recipe_factory("r3", tags=["vegan"]),
        ]

        assert [tag.name for tag in top_tags(recipes)] == ["quick", "vegan", "soup"]

    def test_limit(self, recipe_factory) -> None:
        recipes = [recipe_factory(f"r{i}", tags=[f"t{i}"]) for i in range(8)]

        ranked = top_tags(recipes)

        assert len(ranked) == 5
        assert [tag.name for tag in top_tags(recipes, limit=2)] == ["t0", "t1"]

    def test_no_tags(self, recipe_factory) -> None:
        assert top_tags([recipe_factory("r1")]) == []
        assert count_tags([]) == {}


class TestRecentRecipes:
    def test_only_own_recipes_newest_first(self, recipe_factory) -> None:
        recipes = [recipe_factory(f"a{i}", minutes=i) for i in range(7)]
        recipes.append(recipe_factory("b1", creator_id="bob", minutes=100))

        recent = recent_recipes(recipes, "alice")

        assert [recipe.recipe_id for recipe in recent] == ["a6", "a5", "a4", "a3", "a2"]

    def test_unknown_creator(self, sample_recipes: list[Recipe]) -> None:
        assert recent_recipes(sample_recipes, "nobody") == []


class TestDashboardService:
    def test_build_summary(self, sample_recipes: list[Recipe]) -> None:
        stats = InMemoryStatsRepository(AppStats(search_count=4, favorite_count=2))
        service = DashboardService(InMemoryRecipeRepository(sample_recipes), stats)

        summary = service.build("alice")

        assert summary.stats == AppStats(search_count=4, favorite_count=2)
        assert summary.recipe_count == 3
        assert [tag.name for tag in summary.top_tags] == ["vegan", "dinner", "breakfast"]
        assert [tag.count for tag in summary.top_tags] == [2, 2, 1]
        assert [recipe.recipe_id for recipe in summary.recent_recipes] == ["r1", "r2", "r3"]

    def test_build_for_user_without_recipes(self, sample_recipes: list[Recipe]) -> None:
        service = DashboardService(InMemoryRecipeRepository(sample_recipes), InMemoryStatsRepository())

        summary = service.build("carol")

        assert summary.recipe_count == 0
        assert summary.recent_recipes == []
        assert summary.stats == AppStats()
        assert len(summary.top_tags) == 3

    def test_custom_limits(self, sample_recipes: list[Recipe]) -> None:
        service = DashboardService(
            InMemoryRecipeRepository(sample_recipes),
            InMemoryStatsRepository(),
            top_tags_limit=1,
            recent_limit=1,
        )

        summary = service.build("alice")

        assert [tag.name for tag in summary.top_tags] == ["vegan"]
        assert [recipe.recipe_id for recipe in summary.recent_recipes] == ["r1"]

    def test_defaults_ignore_environment(self, monkeypatch, recipe_factory) -> None:
        monkeypatch.setenv("DASHBOARD_TOP_TAGS", "1")
        monkeypatch.setenv("DASHBOARD_RECENT_LIMIT", "1")
        recipes = [recipe_factory(f"r{i}", tags=[f"t{i}"]) for i in range(8)]
        service = DashboardService(InMemoryRecipeRepository(recipes), InMemoryStatsRepository())

        summary = service.build("alice")

        assert service.top_tags_limit == 5
        assert service.recent_limit == 5
        assert len(summary.top_tags) == 5
        assert len(summary.recent_recipes) == 5
