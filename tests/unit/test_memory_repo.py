from __future__ import annotations

from cookeasy.app.domain.models import AppStats, ChangeKind, FavoriteChange, Recipe, StatField, UserProfile
from cookeasy.app.infra.db.memory_repo import (
    InMemoryRecipeRepository,
    InMemoryStatsRepository,
    InMemoryUserRepository,
)


class TestInMemoryRecipeRepository:
    def test_list_is_newest_first(self, sample_recipes: list[Recipe]) -> None:
        repo = InMemoryRecipeRepository(list(reversed(sample_recipes)))
        assert [recipe.recipe_id for recipe in repo.list_recipes()] == ["r1", "r2", "r3", "r4"]

    def test_list_filters_by_tag_containment(self, sample_recipes: list[Recipe]) -> None:
        repo = InMemoryRecipeRepository(sample_recipes)
        assert [recipe.recipe_id for recipe in repo.list_recipes(tags=["vegan", "dinner"])] == ["r1"]

    def test_returned_objects_are_copies(self, sample_recipes: list[Recipe]) -> None:
        repo = InMemoryRecipeRepository(sample_recipes)

        recipe = repo.get_recipe("r1")
        recipe.tags.append("mutated")

        assert "mutated" not in repo.get_recipe("r1").tags

    def test_get_by_ids_skips_unknown(self, sample_recipes: list[Recipe]) -> None:
        repo = InMemoryRecipeRepository(sample_recipes)
        found = repo.get_recipes_by_ids(["r2", "nope", "r1"])
        assert [recipe.recipe_id for recipe in found] == ["r2", "r1"]


class TestInMemoryUserRepository:
    def test_ensure_user_creates_once(self) -> None:
        repo = InMemoryUserRepository()

        created = repo.ensure_user("alice", "alice@example.com")
        repo.add_favorite("alice", "r1")
        again = repo.ensure_user("alice")

        assert created.favorites == []
        assert again.favorites == ["r1"]
        assert again.email == "alice@example.com"

    def test_add_favorite_is_a_set_union(self) -> None:
        repo = InMemoryUserRepository([UserProfile(user_id="alice")])

        repo.add_favorite("alice", "r1")
        repo.add_favorite("alice", "r1")

        assert repo.get_user("alice").favorites == ["r1"]

    def test_remove_favorite_everywhere(self) -> None:
        repo = InMemoryUserRepository(
            [
                UserProfile(user_id="a", favorites=["r1", "r2"]),
                UserProfile(user_id="b", favorites=["r1"]),
                UserProfile(user_id="c", favorites=["r2"]),
            ]
        )

        assert repo.remove_favorite_everywhere("r1") == 2
        assert repo.get_user("a").favorites == ["r2"]
        assert repo.get_user("b").favorites == []

    def test_list_users_with_favorites_pages_by_id(self) -> None:
        repo = InMemoryUserRepository(
            [
                UserProfile(user_id="c", favorites=["r1"]),
                UserProfile(user_id="a", favorites=["r1"]),
                UserProfile(user_id="b"),
                UserProfile(user_id="d", favorites=["r2"]),
            ]
        )

        first = repo.list_users_with_favorites(limit=2)
        second = repo.list_users_with_favorites(limit=2, offset=2)

        assert [user.user_id for user in first] == ["a", "c"]
        assert [user.user_id for user in second] == ["d"]

    def test_missing_user_writes_are_ignored(self) -> None:
        repo = InMemoryUserRepository()
        repo.add_favorite("ghost", "r1")
        assert repo.get_user("ghost") is None


class TestInMemoryStatsRepository:
    def test_ensure_and_increment(self) -> None:
        repo = InMemoryStatsRepository()

        assert repo.ensure_stats() == AppStats()
        repo.increment(StatField.SEARCH_COUNT)
        repo.increment(StatField.FAVORITE_COUNT, 3)

        assert repo.get_stats() == AppStats(search_count=1, favorite_count=3)

    def test_ensure_keeps_existing_counters(self) -> None:
        repo = InMemoryStatsRepository(AppStats(search_count=7))
        assert repo.ensure_stats().search_count == 7


class TestInMemoryUserRepositoryChanges:
    def test_favorite_writes_notify_subscribers(self) -> None:
        repo = InMemoryUserRepository([UserProfile(user_id="a"), UserProfile(user_id="b")])
        changes: list[FavoriteChange] = []
        repo.subscribe(changes.append)

        repo.add_favorite("a", "r1")
        repo.add_favorite("b", "r1")
        repo.remove_favorite("a", "r1")
        repo.remove_favorite_everywhere("r1")

        assert [(change.kind, change.user_id, change.recipe_id) for change in changes] == [
            (ChangeKind.ADDED, "a", "r1"),
            (ChangeKind.ADDED, "b", "r1"),
            (ChangeKind.REMOVED, "a", "r1"),
            (ChangeKind.REMOVED, "b", "r1"),
        ]

    def test_writes_for_missing_user_do_not_notify(self) -> None:
        repo = InMemoryUserRepository()
        changes: list[FavoriteChange] = []
        repo.subscribe(changes.append)

        repo.add_favorite("ghost", "r1")
        repo.remove_favorite("ghost", "r1")

        assert changes == []
