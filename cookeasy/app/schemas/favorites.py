from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from cookeasy.app.schemas.recipes import RecipeResponse


class FavoriteToggleResponse(BaseModel):
    recipeId: str
    isFavorite: bool
    status: Literal["confirmed", "unconfirmed"]
    message: Optional[str] = None


class FavoriteIdsResponse(BaseModel):
    recipeIds: list[str]


class FavoriteListResponse(BaseModel):
    items: list[RecipeResponse]
    total: int
