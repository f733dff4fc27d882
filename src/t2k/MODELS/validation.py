"""
Models for issues reported by the topology validator.
"""
from enum import Enum
from typing import Iterable
from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class IssueCode(str, Enum):
    """
    Kinds of problems the validator reports.
    """
    UNKNOWN_STORAGE = "unknown-storage"
    UNKNOWN_SECRET = "unknown-secret"
    UNKNOWN_SECRET_KEY = "unknown-secret-key"
    UNKNOWN_CONFIG_MAP = "unknown-config-map"
    UNKNOWN_CONFIG_MAP_KEY = "unknown-config-map-key"
    NEGATIVE_REPLICAS = "negative-replicas"
    NEGATIVE_RESOURCE = "negative-resource"
    INVALID_QUANTITY = "invalid-quantity"
    UNKNOWN_DEPENDENCY = "unknown-dependency"
    SELF_DEPENDENCY = "self-dependency"
    REQUEST_EXCEEDS_LIMIT = "request-exceeds-limit"
    UNUSED_STORAGE = "unused-storage"


class ValidationIssue(BaseModel):
    """
    A single consistency problem found in a topology.
    """
    model_config = ConfigDict(frozen=True)

    code: IssueCode
    entity: str
    message: str
    severity: Severity = Severity.ERROR

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.entity}: {self.message}"


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    """
    Returns True if any issue is of error severity.
    """
    return any(issue.severity == Severity.ERROR for issue in issues)
