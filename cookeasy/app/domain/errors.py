from __future__ import annotations


class RecipeAppError(Exception):
    pass


class RecipeValidationError(RecipeAppError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class EmptySearchError(RecipeValidationError):
    def __init__(self, message: str = "Please enter at least one ingredient or select a tag"):
        super().__init__(message)


class RecipeNotFoundError(RecipeAppError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class RecipePermissionError(RecipeAppError):
    def __init__(self, recipe_id: str, user_id: str):
        super().__init__(f"User {user_id} is not allowed to modify recipe {recipe_id}")
        self.recipe_id = recipe_id
        self.user_id = user_id


class UserNotFoundError(RecipeAppError):
    def __init__(self, user_id: str):
        super().__init__(f"User data not found: {user_id}")
        self.user_id = user_id


class GatewayError(RecipeAppError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Gateway error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class WorkerConfigurationError(RecipeAppError):
    def __init__(self, errors: list[str]):
        super().__init__(f"Worker configuration errors: {', '.join(errors)}")
        self.errors = errors
