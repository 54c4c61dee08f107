"""Topology compiler pipeline: build -> validate -> emit, then diff."""

from collections.abc import Mapping
from typing import Any, Optional, Union

from .builder import build, load_intent_model
from .validator import validate
from .emitter import emit
from .differ import diff, summarize
from ..models.graph import ResourceNode
from ..models.intent import TopologyIntent
from ..models.plan import PlanAction

IntentLike = Union[TopologyIntent, Mapping[str, Any]]


def compile_intent(
    intent: IntentLike, nat_redundancy: Optional[str] = None
) -> tuple[ResourceNode, ...]:
    """Compile an intent into dependency-ordered resource nodes."""
    return emit(validate(build(intent, nat_redundancy=nat_redundancy)))


def plan(
    old_intent: Optional[IntentLike],
    new_intent: IntentLike,
    nat_redundancy: Optional[str] = None,
) -> list[PlanAction]:
    """Plan the changes between two intents."""
    old = (
        compile_intent(old_intent, nat_redundancy) if old_intent is not None else None
    )
    return diff(old, compile_intent(new_intent, nat_redundancy))


__all__ = [
    "build",
    "load_intent_model",
    "validate",
    "emit",
    "diff",
    "summarize",
    "compile_intent",
    "plan",
]
