from __future__ import annotations

import re

__all__ = [
    "ACTIONABLE_ERROR_PATTERN",
    "DiagramStoreError",
    "InvalidRelationshipError",
    "TableNotFoundError",
    "format_actionable_error",
    "is_actionable_message",
]

ACTIONABLE_ERROR_PATTERN = re.compile(r"^[^:\n]+: .+\. Fix: .+\.$")


def _clean(value: object, default: str) -> str:
    text = str(value).strip()
    return text if text else default


def format_actionable_error(context: str, location: str, issue: str, hint: str) -> str:
    clean_context = str(context).strip()
    clean_location = _clean(location, "Unknown")
    clean_issue = _clean(issue, "unknown issue")
    clean_hint = _clean(hint, "review input and retry")
    if clean_context:
        return f"{clean_context} / {clean_location}: {clean_issue}. Fix: {clean_hint}."
    return f"{clean_location}: {clean_issue}. Fix: {clean_hint}."


def is_actionable_message(message: str) -> bool:
    return bool(ACTIONABLE_ERROR_PATTERN.match(str(message).strip()))


class DiagramStoreError(ValueError):
    """Base class for misuse of the diagram store."""


class TableNotFoundError(DiagramStoreError, LookupError):
    def __init__(self, table_id: str, *, location: str) -> None:
        self.table_id = table_id
        super().__init__(
            format_actionable_error(
                "Diagram",
                location,
                f"table '{table_id}' was not found",
                "choose an existing table before adding fields",
            )
        )


class InvalidRelationshipError(DiagramStoreError):
    pass
