"""Unified display renderer for consistent Rich output."""

from typing import Any, Optional, Sequence
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
import json
import yaml

from ..compiler.differ import summarize
from ..errors import CompilerError
from ..models.graph import ResourceNode
from ..models.plan import PlanAction


class DisplayRenderer:
    """Unified renderer for all CLI output with consistent styling."""

    # Color scheme for resource kinds and plan actions
    COLORS = {
        "network": "blue",
        "subnet": "cyan",
        "internet_gateway": "yellow",
        "nat_gateway": "yellow",
        "elastic_ip": "yellow",
        "route_table": "white",
        "route": "white",
        "security_group": "red",
        "security_group_rule": "red",
        "endpoint": "magenta",
        "role": "bright_blue",
        "instance": "green",
        "create": "green",
        "update": "yellow",
        "replace": "magenta",
        "delete": "red",
    }

    ACTION_SYMBOLS = {"create": "+", "update": "~", "replace": "-/+", "delete": "-"}

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, data: Any, fmt: str = "table") -> bool:
        """Render data in specified format.

        Args:
            data: Document to render
            fmt: Output format (table, json, yaml)

        Returns:
            True if rendered as non-table format, False if table
        """
        if fmt == "json":
            self.console.print_json(json.dumps(data, default=str))
            return True
        if fmt == "yaml":
            self.console.print(yaml.safe_dump(data, sort_keys=False))
            return True
        return False

    def table(
        self,
        data: list[dict],
        title: str,
        columns: list[dict],
        show_index: bool = True,
        hint: Optional[str] = None,
    ) -> None:
        """Render data as a Rich table.

        Args:
            data: List of dicts to display
            title: Table title
            columns: List of {name, key, style?, width?}
            show_index: Whether to show row numbers
            hint: Optional hint text below table
        """
        if not data:
            self.console.print(f"[yellow]No {title.lower()} found[/]")
            return

        table = Table(title=title, show_header=True, header_style="bold")

        if show_index:
            table.add_column("#", style="dim", justify="right", width=4)

        for col in columns:
            table.add_column(
                col["name"],
                style=col.get("style", ""),
                width=col.get("width"),
                justify=col.get("justify", "left"),
            )

        for i, row in enumerate(data, 1):
            values = []
            if show_index:
                values.append(str(i))
            for col in columns:
                val = row.get(col["key"], "")
                if val is None:
                    val = "-"
                elif isinstance(val, (list, tuple)):
                    val = ", ".join(str(v) for v in val[:3])
                    if len(row.get(col["key"], [])) > 3:
                        val += "..."
                else:
                    val = str(val)
                # Kind and action coloring
                if col["key"] in ("kind", "action"):
                    color = self.COLORS.get(val, "white")
                    val = f"[{color}]{val}[/]"
                values.append(val)
            table.add_row(*values)

        self.console.print(table)
        if hint:
            self.console.print(f"[dim]{hint}[/]")

    def nodes(self, nodes: Sequence[ResourceNode], title: str = "Resources") -> None:
        """Render emitted nodes in creation order."""
        rows = [
            {"id": n.id, "kind": n.kind.value, "depends_on": list(n.depends_on)}
            for n in nodes
        ]
        columns = [
            {"name": "ID", "key": "id", "style": "cyan"},
            {"name": "Kind", "key": "kind"},
            {"name": "Depends On", "key": "depends_on", "style": "dim"},
        ]
        self.table(rows, title, columns)

    def plan(self, actions: Sequence[PlanAction], title: str = "Plan") -> None:
        """Render plan actions with a summary line."""
        if not actions:
            self.console.print("[green]No changes. Topology is up to date.[/]")
            return
        rows = []
        for a in actions:
            detail = ""
            if a.action in ("update", "replace"):
                detail = ", ".join(a.changed_fields)
            if a.action == "replace":
                detail = a.reason
            rows.append(
                {
                    "symbol": self.ACTION_SYMBOLS[a.action],
                    "action": a.action,
                    "id": a.target_id,
                    "detail": detail,
                }
            )
        columns = [
            {"name": "", "key": "symbol", "width": 3},
            {"name": "Action", "key": "action"},
            {"name": "ID", "key": "id", "style": "cyan"},
            {"name": "Detail", "key": "detail", "style": "dim"},
        ]
        self.table(rows, title, columns, show_index=False)

        summary = ", ".join(
            f"[{self.COLORS[k]}]{v} to {k}[/]" for k, v in summarize(actions).items()
        )
        self.console.print(f"[bold]Plan:[/] {summary}")

    def compile_error(self, error: CompilerError) -> None:
        """Render a compiler error with its context."""
        data = error.to_dict()
        lines = [f"[bold]{k}:[/] {v}" for k, v in data.items() if k != "error"]
        self.console.print(
            Panel("\n".join(lines), title=f"[red]{data['error']}[/]", border_style="red")
        )

    def state_info(self, info: Optional[dict]) -> None:
        if not info:
            self.console.print("[yellow]No committed state[/]")
            return
        self.console.print(
            Panel(
                f"[bold]Intent:[/] {info['intent_name'] or '-'}\n"
                f"[bold]Saved At:[/] {info['saved_at'].strftime('%Y-%m-%d %H:%M:%S')} UTC\n"
                f"[bold]Age:[/] {info['age_seconds']:.1f}s\n"
                f"[bold]Nodes:[/] {info['node_count']}\n"
                f"[bold]Path:[/] {info['path']}",
                title="Committed State",
            )
        )
