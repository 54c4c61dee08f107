"""File-based store for the last committed emitted graph"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ..errors import SchemaError
from ..models.graph import ResourceNode
from .logging import get_logger

STATE_DIR = Path.home() / ".cache" / "vpc-compiler"

logger = get_logger("state")


class StateStore:
    def __init__(self, name: str = "default", path: Optional[Path] = None):
        self.name = name
        self.state_file = Path(path) if path else STATE_DIR / f"{name}.json"

    def _ensure_dir(self):
        self.state_file.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Optional[dict]:
        if not self.state_file.exists():
            return None
        try:
            raw = json.loads(self.state_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.state_file, e)
            return None
        if not isinstance(raw, dict):
            raise SchemaError(
                "Committed state must be a JSON object", str(self.state_file)
            )
        return raw

    def get(self) -> Optional[tuple[ResourceNode, ...]]:
        """Get the committed nodes, in emitted order

        Raises:
            SchemaError: The file parses but does not hold valid nodes
        """
        raw = self._read()
        if not raw:
            return None
        nodes = raw.get("nodes", [])
        if not isinstance(nodes, list):
            raise SchemaError(
                "Committed state needs a 'nodes' list", str(self.state_file)
            )
        result = []
        for index, data in enumerate(nodes):
            try:
                result.append(ResourceNode.from_dict(data))
            except (TypeError, ValueError) as e:
                raise SchemaError(
                    f"Invalid committed node {index}: {e}", str(self.state_file)
                ) from e
        return tuple(result)

    def set(
        self, nodes: Sequence[ResourceNode], intent_name: Optional[str] = None
    ) -> None:
        """Record emitted nodes as the committed state"""
        self._ensure_dir()
        raw = {
            "nodes": [n.to_dict() for n in nodes],
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "intent_name": intent_name,
        }
        self.state_file.write_text(json.dumps(raw, default=str))
        logger.debug("Committed %d nodes to %s", len(nodes), self.state_file)

    def clear(self) -> None:
        """Clear the committed state"""
        if self.state_file.exists():
            self.state_file.unlink()

    def get_info(self) -> Optional[dict]:
        """Get state metadata"""
        raw = self._read()
        if not raw:
            return None
        try:
            saved_at = datetime.fromisoformat(raw["saved_at"])
        except (KeyError, TypeError, ValueError) as e:
            raise SchemaError(
                f"Committed state has no valid saved_at: {e}", str(self.state_file)
            ) from e
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        age = (datetime.now(timezone.utc) - saved_at).total_seconds()
        return {
            "saved_at": saved_at,
            "age_seconds": age,
            "intent_name": raw.get("intent_name"),
            "node_count": len(raw.get("nodes", [])),
            "path": str(self.state_file),
        }
