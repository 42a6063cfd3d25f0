# cookeasy/app/domain/models.py
"""
Domain models for recipes, user profiles, favorites and app statistics.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


STATS_ID = "app_stats"


class SortOption(str, Enum):
    """Orderings offered for recipe listings."""
    NEWEST = "newest"
    OLDEST = "oldest"
    AZ = "az"
    ZA = "za"


class StatField(str, Enum):
    """Counters held by the singleton stats record."""
    SEARCH_COUNT = "search_count"
    FAVORITE_COUNT = "favorite_count"


class SyncStatus(str, Enum):
    """Outcome of persisting a locally applied favorite change."""
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"


class ChangeKind(str, Enum):
    """Kinds of recipe change notifications."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass
class Recipe:
    """
    A user-authored recipe.
    The recipe_id is generated once on creation and never changes.
    """
    recipe_id: str
    title: str
    creator_id: str
    ingredients: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_owned_by(self, user_id: str) -> bool:
        return self.creator_id == user_id


@dataclass
class RecipeDraft:
    """Editable fields of a recipe as submitted by its author."""
    title: str
    ingredients: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass
class UserProfile:
    """Per-user record holding the favorite recipe identifiers."""
    user_id: str
    email: Optional[str] = None
    favorites: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None


@dataclass
class AppStats:
    """Global usage counters. Both only ever grow."""
    search_count: int = 0
    favorite_count: int = 0


@dataclass
class TagCount:
    name: str
    count: int


@dataclass
class DashboardSummary:
    """Everything the dashboard shows, recomputed on every request."""
    stats: AppStats
    recipe_count: int
    top_tags: list[TagCount]
    recent_recipes: list[Recipe]


@dataclass
class FavoriteToggleResult:
    """
    Result of toggling a favorite.

    The local favorite set is always updated. ``status`` tells whether the
    remote record agrees (CONFIRMED) or the write failed (UNCONFIRMED).
    """
    recipe_id: str
    is_favorite: bool
    status: SyncStatus
    error: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == SyncStatus.CONFIRMED


@dataclass
class RecipeChange:
    """Notification emitted after a recipe write."""
    kind: ChangeKind
    recipe_id: str


@dataclass
class FavoriteChange:
    """
    Notification emitted after a favorites write.
    ``user_id`` is None when the write may have touched any user.
    """
    kind: ChangeKind
    recipe_id: str
    user_id: Optional[str] = None

    def affects(self, user_id: str) -> bool:
        return self.user_id is None or self.user_id == user_id
