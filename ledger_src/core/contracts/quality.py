"""
Validation Issues - Structured records for problems found in an upload.

Every row-level problem becomes one ValidationIssue. The user-facing
error list is rendered from these records, so callers that need more
than strings (row numbers, field names) can read them directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class IssueSeverity(str, Enum):
    """Severity levels for upload issues."""

    CRITICAL = "critical"  # Upload cannot be analysed
    HIGH = "high"  # Row is unusable
    MEDIUM = "medium"  # Row is usable with degraded values
    LOW = "low"  # Cosmetic issue


class IssueCategory(str, Enum):
    """Categories for grouping issues."""

    SCHEMA = "schema"  # Missing/invalid columns
    ACTION = "action"  # Missing or unknown action
    TRADE = "trade"  # Buy/sell specific fields
    VALUE = "value"  # Monetary amounts


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem detected while validating an upload.

    Attributes:
        severity: How serious the issue is
        category: What type of issue
        code: Machine-readable code (e.g., "INVALID_TOTAL")
        message: Human-readable description, already prefixed with the row
        row: 1-based row number, None for file-level issues
        field: CSV column the issue refers to, if any
    """

    severity: IssueSeverity
    category: IssueCategory
    code: str
    message: str
    row: Optional[int] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary with all fields."""
        return {
            "severity": self.severity.value,
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
            "row": self.row,
            "field": self.field,
        }
