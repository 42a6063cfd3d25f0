from __future__ import annotations

from pydantic import BaseModel, Field

from cookeasy.app.schemas.recipes import RecipeResponse


class StatsResponse(BaseModel):
    searchCount: int = 0
    favoriteCount: int = 0


class TagCountResponse(BaseModel):
    name: str
    count: int


class DashboardResponse(BaseModel):
    stats: StatsResponse
    recipeCount: int
    topTags: list[TagCountResponse] = Field(default_factory=list)
    recentRecipes: list[RecipeResponse] = Field(default_factory=list)
