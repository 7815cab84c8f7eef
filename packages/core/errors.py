from __future__ import annotations

from typing import Any, Dict


class ValidationError(Exception):
    """Field-level validation failure returned to the caller, never fatal."""

    def __init__(self, errors: Dict[str, str]) -> None:
        super().__init__(f"Validation error: {errors}")
        self.errors = dict(errors)

    def to_response(self) -> Dict[str, Any]:
        return {"state": "error", "errors": dict(self.errors)}


class ReminderNotFoundError(LookupError):
    def __init__(self, reminder_id: str) -> None:
        super().__init__(f"Reminder not found: {reminder_id}")
        self.reminder_id = reminder_id


class RecipientNotFoundError(LookupError):
    """A room or user referenced by a reminder no longer exists."""

    def __init__(self, kind: str, recipient_id: str) -> None:
        super().__init__(f"No {kind} found with id {recipient_id}")
        self.kind = kind
        self.recipient_id = recipient_id
