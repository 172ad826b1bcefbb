"""Domain errors raised by the stores and services.

Each error carries the HTTP status the API layer reports it with, plus the
context needed to render a precise message.
"""

from typing import Optional


class InvalidInput(ValueError):
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None, value=None):
        super().__init__(message)
        self.field = field
        self.value = value


class NotFound(ValueError):
    status_code = 404

    def __init__(self, entity: str, entity_id: int, owner_id: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id
        self.owner_id = owner_id


class BudgetConflict(ValueError):
    status_code = 409

    def __init__(self, owner_id: str, category: str) -> None:
        super().__init__("Budget for this category already exists")
        self.owner_id = owner_id
        self.category = category


class StoreUnavailable(RuntimeError):
    status_code = 500

    def __init__(self, operation: str) -> None:
        super().__init__(f"Storage unavailable during {operation}")
        self.operation = operation
