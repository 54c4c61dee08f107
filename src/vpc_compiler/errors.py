"""Compiler error types."""

from enum import Enum
from typing import Iterable, Optional


class CompilerError(Exception):
    """Base class for all compiler failures."""

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": str(self)}


class SchemaError(CompilerError):
    """Malformed or incomplete topology intent."""

    def __init__(self, message: str, path: str = ""):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)

    def to_dict(self) -> dict:
        return {"error": "SchemaError", "path": self.path, "message": self.message}


class ValidationKind(str, Enum):
    """Validator check kinds, in evaluation order."""

    CIDR_CONTAINMENT = "cidr-containment"
    REACHABILITY = "reachability"
    DANGLING_REFERENCE = "dangling-reference"
    POLICY_CONSISTENCY = "policy-consistency"


class ValidationError(CompilerError):
    """Semantic violation of a network invariant.

    Carries every offending node of a single check kind.
    """

    def __init__(
        self,
        kind: ValidationKind,
        offending_node_ids: Iterable[str],
        message: Optional[str] = None,
    ):
        self.kind = ValidationKind(kind)
        self.offending_node_ids = tuple(sorted(set(offending_node_ids)))
        self.message = message or f"{self.kind.value} check failed"
        super().__init__(
            f"{self.message}: {', '.join(self.offending_node_ids)}"
        )

    def to_dict(self) -> dict:
        return {
            "error": "ValidationError",
            "kind": self.kind.value,
            "message": self.message,
            "offending_node_ids": list(self.offending_node_ids),
        }


class CycleError(CompilerError):
    """Dependency cycle in a resource graph."""

    def __init__(self, cycle_node_ids: Iterable[str]):
        # walk order is kept for the message, the identifiers are sorted
        self.path = tuple(dict.fromkeys(cycle_node_ids))
        self.cycle_node_ids = tuple(sorted(self.path))
        loop = (*self.path, self.path[0]) if self.path else ()
        super().__init__(f"Dependency cycle: {' -> '.join(loop)}")

    def to_dict(self) -> dict:
        return {
            "error": "CycleError",
            "message": str(self),
            "cycle_node_ids": list(self.cycle_node_ids),
        }
