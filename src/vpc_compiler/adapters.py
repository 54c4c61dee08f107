"""Readers and writers around the compiler core.

Intent documents are YAML or JSON. Emitted graphs and plans are written as
plain documents so they can be stored, reviewed, or handed to a backend.
"""

import json
from pathlib import Path
from typing import Any, Sequence, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from .compiler.builder import load_intent_model
from .compiler.differ import summarize
from .errors import SchemaError
from .models.graph import ResourceNode
from .models.intent import TopologyIntent
from .models.plan import PlanAction

FORMATS = ("json", "yaml")


def load_document(path: Union[str, Path]) -> Any:
    """Read a YAML or JSON document from disk."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise SchemaError(f"Cannot read document: {e.strerror}", str(path)) from e
    try:
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaError(f"Cannot parse document: {e}", str(path)) from e


def load_intent(path: Union[str, Path]) -> TopologyIntent:
    """Read a topology intent document."""
    return load_intent_model(load_document(path))


def nodes_to_document(nodes: Sequence[ResourceNode]) -> dict:
    return {"nodes": [node.to_dict() for node in nodes]}


def nodes_from_document(document: Any) -> tuple[ResourceNode, ...]:
    """Rebuild emitted nodes from a document written by nodes_to_document."""
    if not isinstance(document, dict) or not isinstance(document.get("nodes"), list):
        raise SchemaError("Emitted graph document needs a 'nodes' list", "nodes")
    nodes = []
    for index, data in enumerate(document["nodes"]):
        try:
            nodes.append(ResourceNode.from_dict(data))
        except (PydanticValidationError, TypeError) as e:
            raise SchemaError(f"Invalid resource node: {e}", f"nodes.{index}") from e
    return tuple(nodes)


def plan_to_document(actions: Sequence[PlanAction]) -> dict:
    return {
        "summary": summarize(actions),
        "actions": [action.to_dict() for action in actions],
    }


def dump_document(document: Any, fmt: str = "json") -> str:
    """Serialize a document as JSON or YAML text."""
    if fmt == "json":
        return json.dumps(document, indent=2, default=str)
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False)
    raise ValueError(f"Invalid format: {fmt}. Use one of {', '.join(FORMATS)}")
