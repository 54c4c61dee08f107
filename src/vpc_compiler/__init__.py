"""Declarative network topology compiler."""

from .compiler import build, validate, emit, diff, compile_intent, plan
from .errors import (
    CompilerError,
    SchemaError,
    ValidationError,
    ValidationKind,
    CycleError,
)

__version__ = "0.1.0"

__all__ = [
    "build",
    "validate",
    "emit",
    "diff",
    "compile_intent",
    "plan",
    "CompilerError",
    "SchemaError",
    "ValidationError",
    "ValidationKind",
    "CycleError",
]
