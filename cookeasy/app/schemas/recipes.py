from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

SortParam = Literal["newest", "oldest", "az", "za"]


class RecipeResponse(BaseModel):
    id: str
    title: str
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    creatorId: str
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class RecipeListResponse(BaseModel):
    items: list[RecipeResponse]
    total: int


class RecipeCreate(BaseModel):
    title: str = Field(..., max_length=200)
    ingredients: list[str] = Field(default_factory=list, max_length=100)
    steps: list[str] = Field(default_factory=list, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=30)


class RecipeUpdate(RecipeCreate):
    pass


class TagListResponse(BaseModel):
    tags: list[str]
