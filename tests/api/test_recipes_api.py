from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from cookeasy.app.config import settings
from cookeasy.app.deps import get_recipe_repository, get_stats_repository, get_user_repository
from cookeasy.app.domain.errors import GatewayError
from cookeasy.app.domain.models import Recipe, UserProfile
from cookeasy.app.infra.db.memory_repo import (
    InMemoryRecipeRepository,
    InMemoryStatsRepository,
    InMemoryUserRepository,
)
from cookeasy.app.main import app
from cookeasy.app.services.favorites import FavoritesSync

ALICE = {"Authorization": "Bearer alice"}
BOB = {"Authorization": "Bearer bob"}

NEW_RECIPE = {
    "title": "Lentil Soup",
    "ingredients": ["Lentils", "Carrot"],
    "steps": ["Simmer for 30 minutes"],
    "tags": ["Soup", "vegan"],
}


class OfflineFavoritesRepository(InMemoryUserRepository):
    def add_favorite(self, user_id: str, recipe_id: str) -> None:
        raise GatewayError("add_favorite", "503 Service Unavailable")


@pytest.fixture
def repos(sample_recipes: list[Recipe]) -> SimpleNamespace:
    return SimpleNamespace(
        recipes=InMemoryRecipeRepository(sample_recipes),
        users=InMemoryUserRepository(),
        stats=InMemoryStatsRepository(),
    )


@pytest.fixture
def client(repos: SimpleNamespace, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "DATA_BACKEND", "memory")
    app.dependency_overrides[get_recipe_repository] = lambda: repos.recipes
    app.dependency_overrides[get_user_repository] = lambda: repos.users
    app.dependency_overrides[get_stats_repository] = lambda: repos.stats
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _ids(payload: dict) -> list[str]:
    return [item["id"] for item in payload["items"]]


class TestAuth:
    def test_health_is_public(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"ok": True}

    def test_missing_token_rejected(self, client: TestClient) -> None:
        response = client.get("/recipes/")
        assert response.status_code == 401

    def test_me_creates_user_record(self, client: TestClient, repos: SimpleNamespace) -> None:
        response = client.get("/auth/me", headers=ALICE)

        assert response.status_code == 200
        assert response.json()["id"] == "alice"
        assert repos.users.get_user("alice") is not None


class TestRecipeEndpoints:
    def test_list_newest_first(self, client: TestClient) -> None:
        response = client.get("/recipes/", headers=ALICE)

        assert response.status_code == 200
        assert _ids(response.json()) == ["r1", "r2", "r3", "r4"]
        assert response.json()["total"] == 4

    def test_list_sorted_by_title(self, client: TestClient) -> None:
        response = client.get("/recipes/", params={"sort": "za"}, headers=ALICE)
        assert _ids(response.json()) == ["r2", "r1", "r4", "r3"]

    def test_unknown_sort_rejected(self, client: TestClient) -> None:
        response = client.get("/recipes/", params={"sort": "popular"}, headers=ALICE)
        assert response.status_code == 422

    def test_tags(self, client: TestClient) -> None:
        response = client.get("/recipes/tags", headers=ALICE)
        assert response.json() == {"tags": ["vegan", "dinner", "breakfast"]}

    def test_create_and_read(self, client: TestClient) -> None:
        created = client.post("/recipes/", json=NEW_RECIPE, headers=ALICE)

        assert created.status_code == 201
        body = created.json()
        assert body["creatorId"] == "alice"
        assert body["tags"] == ["soup", "vegan"]
        assert body["createdAt"]

        fetched = client.get(f"/recipes/{body['id']}", headers=BOB)
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Lentil Soup"

    def test_create_requires_steps(self, client: TestClient) -> None:
        response = client.post("/recipes/", json={**NEW_RECIPE, "steps": [" "]}, headers=ALICE)

        assert response.status_code == 422
        assert response.json()["detail"] == "At least one step is required"

    def test_update_by_owner(self, client: TestClient) -> None:
        response = client.put("/recipes/r1", json={**NEW_RECIPE, "title": "Crispy Tofu"}, headers=ALICE)

        assert response.status_code == 200
        assert response.json()["title"] == "Crispy Tofu"
        assert response.json()["updatedAt"]

    def test_update_by_other_user_forbidden(self, client: TestClient) -> None:
        response = client.put("/recipes/r1", json=NEW_RECIPE, headers=BOB)
        assert response.status_code == 403

    def test_missing_recipe(self, client: TestClient) -> None:
        assert client.get("/recipes/missing", headers=ALICE).status_code == 404
        assert client.delete("/recipes/missing", headers=ALICE).status_code == 404

    def test_delete_prunes_favorites(self, client: TestClient, repos: SimpleNamespace) -> None:
        repos.users.ensure_user("bob")
        repos.users.add_favorite("bob", "r1")

        response = client.delete("/recipes/r1", headers=ALICE)

        assert response.status_code == 204
        assert client.get("/recipes/r1", headers=ALICE).status_code == 404
        assert repos.users.get_user("bob").favorites == []


class TestSearchEndpoint:
    def test_search_by_ingredient_and_tag(self, client: TestClient, repos: SimpleNamespace) -> None:
        response = client.get(
            "/recipes/search",
            params={"ingredients": "tofu, rice", "tags": "vegan"},
            headers=ALICE,
        )

        assert response.status_code == 200
        assert _ids(response.json()) == ["r1"]
        assert repos.stats.get_stats().search_count == 1

    def test_repeated_tags_must_all_match(self, client: TestClient) -> None:
        response = client.get("/recipes/search?tags=vegan&tags=dinner", headers=ALICE)
        assert _ids(response.json()) == ["r1"]

    def test_empty_search_rejected(self, client: TestClient, repos: SimpleNamespace) -> None:
        response = client.get("/recipes/search", params={"ingredients": " , "}, headers=ALICE)

        assert response.status_code == 422
        assert response.json()["detail"] == "Please enter at least one ingredient or select a tag"
        assert repos.stats.get_stats().search_count == 0


class TestFavoriteEndpoints:
    def test_toggle_round_trip(self, client: TestClient, repos: SimpleNamespace) -> None:
        added = client.post("/favorites/r2/toggle", headers=ALICE)

        assert added.status_code == 200
        assert added.json() == {
            "recipeId": "r2",
            "isFavorite": True,
            "status": "confirmed",
            "message": "Added to Favorites",
        }
        assert client.get("/favorites/ids", headers=ALICE).json() == {"recipeIds": ["r2"]}
        assert _ids(client.get("/favorites/", headers=ALICE).json()) == ["r2"]

        removed = client.post("/favorites/r2/toggle", headers=ALICE)

        assert removed.json()["isFavorite"] is False
        assert removed.json()["message"] == "Removed from Favorites"
        assert repos.stats.get_stats().favorite_count == 2

    def test_dangling_favorites_are_skipped(self, client: TestClient, repos: SimpleNamespace) -> None:
        repos.users.ensure_user("alice")
        repos.users.add_favorite("alice", "deleted-long-ago")
        repos.users.add_favorite("alice", "r3")

        response = client.get("/favorites/", headers=ALICE)

        assert _ids(response.json()) == ["r3"]

    def test_toggle_unconfirmed_when_store_fails(self, client: TestClient, repos: SimpleNamespace) -> None:
        offline = OfflineFavoritesRepository([UserProfile(user_id="alice")])
        app.dependency_overrides[get_user_repository] = lambda: offline

        response = client.post("/favorites/r1/toggle", headers=ALICE)

        assert response.status_code == 502
        assert response.json()["status"] == "unconfirmed"
        assert response.json()["isFavorite"] is True
        assert response.json()["message"] == "Failed to update favorites"


class TestDashboardEndpoint:
    def test_summary(self, client: TestClient) -> None:
        client.get("/recipes/search", params={"tags": "dinner"}, headers=ALICE)

        response = client.get("/dashboard/", headers=ALICE)

        assert response.status_code == 200
        body = response.json()
        assert body["stats"] == {"searchCount": 1, "favoriteCount": 0}
        assert body["recipeCount"] == 3
        assert body["topTags"][0] == {"name": "vegan", "count": 2}
        assert [recipe["id"] for recipe in body["recentRecipes"]] == ["r1", "r2", "r3"]


class TestLiveFeed:
    def test_sends_snapshot_on_connect_and_change(
        self,
        client: TestClient,
        repos: SimpleNamespace,
        recipe_factory,
    ) -> None:
        with client.websocket_connect("/recipes/live?token=alice") as websocket:
            first = websocket.receive_json()
            repos.recipes.create_recipe(recipe_factory("r5", minutes=10))
            second = websocket.receive_json()

        assert first["total"] == 4
        assert _ids(second) == ["r5", "r1", "r2", "r3", "r4"]

    def test_missing_token_closes_connection(self, client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/recipes/live") as websocket:
                websocket.receive_json()

    def test_missing_token_closes_favorites_feed(self, client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/favorites/live") as websocket:
                websocket.receive_json()

    def test_favorites_follow_other_sessions(self, client: TestClient, repos: SimpleNamespace) -> None:
        other_session = FavoritesSync("alice", repos.users, repos.stats)

        with client.websocket_connect("/favorites/live?token=alice") as websocket:
            first = websocket.receive_json()
            other_session.toggle("r2")
            second = websocket.receive_json()
            other_session.toggle("r2")
            third = websocket.receive_json()

        assert first == {"recipeIds": []}
        assert second == {"recipeIds": ["r2"]}
        assert third == {"recipeIds": []}
