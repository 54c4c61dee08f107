"""vpc-compiler CLI"""

from functools import wraps
from pathlib import Path
from typing import Callable, List, Optional

import typer
from rich.console import Console

from .adapters import (
    dump_document,
    load_document,
    load_intent,
    nodes_from_document,
    nodes_to_document,
    plan_to_document,
)
from .compiler import build, compile_intent, diff, validate
from .config import (
    NAT_REDUNDANCY_MODES,
    RuntimeConfig,
    get_default_nat_redundancy,
    get_default_output_format,
    set_default_nat_redundancy,
    set_default_output_format,
)
from .core.logging import get_logger, setup_logging
from .core.renderer import DisplayRenderer
from .core.state import StateStore
from .errors import CompilerError, CycleError

app = typer.Typer(
    name="vpc-compile",
    help="Compile declarative network topologies into ordered resource plans",
    no_args_is_help=True,
)
state_app = typer.Typer(help="Inspect or clear the committed state")
config_app = typer.Typer(help="Persisted defaults")
app.add_typer(state_app, name="state")
app.add_typer(config_app, name="config")

console = Console()
logger = get_logger("cli")


def _renderer() -> DisplayRenderer:
    return DisplayRenderer(console)


def _state_store(intent_name: str = "lab") -> StateStore:
    path = RuntimeConfig.get_state_file()
    return StateStore(intent_name, Path(path) if path else None)


def handles_compiler_errors(func: Callable) -> Callable:
    """Render compiler errors and exit non-zero (2 for dependency cycles)."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CompilerError as e:
            logger.debug("%s failed: %s", func.__name__, e)
            fmt = RuntimeConfig.get_output_format()
            if not _renderer().render(e.to_dict(), fmt):
                _renderer().compile_error(e)
            raise typer.Exit(2 if isinstance(e, CycleError) else 1)

    return wrapper


@app.callback()
def _global(
    output_format: Optional[str] = typer.Option(
        None, "--format", help="table|json|yaml"
    ),
    nat_redundancy: Optional[str] = typer.Option(
        None, "--nat-redundancy", help="per-zone|single-shared"
    ),
    state_file: Optional[str] = typer.Option(
        None, "--state-file", help="Committed state location"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Write logs"),
    log_stage: Optional[List[str]] = typer.Option(
        None, "--log-stage", help="Only log these stages to stderr (repeatable)"
    ),
):
    RuntimeConfig.reset()
    try:
        if output_format:
            RuntimeConfig.set_output_format(output_format)
        RuntimeConfig.set_nat_redundancy(nat_redundancy)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    RuntimeConfig.set_state_file(state_file)
    RuntimeConfig.set_debug(debug)
    setup_logging(debug=debug, log_file=log_file, stages=log_stage)


@app.command("validate")
@handles_compiler_errors
def validate_cmd(intent: Path = typer.Argument(..., help="Intent YAML/JSON file")):
    """Build and validate an intent"""
    graph = validate(build(load_intent(intent), RuntimeConfig.get_nat_redundancy()))
    if not _renderer().render(
        {"valid": True, "resources": len(graph)}, RuntimeConfig.get_output_format()
    ):
        console.print(f"[green]Intent is valid ({len(graph)} resources)[/]")


@app.command("emit")
@handles_compiler_errors
def emit_cmd(
    intent: Path = typer.Argument(..., help="Intent YAML/JSON file"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the emitted graph to a file"
    ),
):
    """Compile an intent into dependency-ordered resources"""
    nodes = compile_intent(load_intent(intent), RuntimeConfig.get_nat_redundancy())
    document = nodes_to_document(nodes)
    if output:
        fmt = "yaml" if output.suffix in (".yaml", ".yml") else "json"
        output.write_text(dump_document(document, fmt))
        console.print(f"[green]Wrote {len(nodes)} resources to {output}[/]")
        return
    if not _renderer().render(document, RuntimeConfig.get_output_format()):
        _renderer().nodes(nodes)


@app.command("plan")
@handles_compiler_errors
def plan_cmd(
    intent: Path = typer.Argument(..., help="Desired intent YAML/JSON file"),
    old_intent: Optional[Path] = typer.Option(
        None, "--old-intent", help="Compare against another intent"
    ),
    prior: Optional[Path] = typer.Option(
        None, "--prior", help="Compare against an emitted graph file"
    ),
):
    """Plan the changes from the prior state to an intent"""
    if old_intent and prior:
        console.print("[red]Use either --old-intent or --prior, not both[/]")
        raise typer.Exit(1)

    model = load_intent(intent)
    redundancy = RuntimeConfig.get_nat_redundancy()
    new = compile_intent(model, redundancy)
    if old_intent:
        old = compile_intent(load_intent(old_intent), redundancy)
    elif prior:
        old = nodes_from_document(load_document(prior))
    else:
        old = _state_store(model.name).get()
        if old is None:
            logger.info("No committed state for '%s', planning from scratch", model.name)

    actions = diff(old, new)
    if not _renderer().render(
        plan_to_document(actions), RuntimeConfig.get_output_format()
    ):
        _renderer().plan(actions)


@app.command("commit")
@handles_compiler_errors
def commit_cmd(intent: Path = typer.Argument(..., help="Intent YAML/JSON file")):
    """Record the compiled intent as the committed state"""
    model = load_intent(intent)
    nodes = compile_intent(model, RuntimeConfig.get_nat_redundancy())
    store = _state_store(model.name)
    store.set(nodes, intent_name=model.name)
    console.print(f"[green]Committed {len(nodes)} resources to {store.state_file}[/]")


@state_app.command("show")
@handles_compiler_errors
def state_show(name: str = typer.Argument("lab", help="Intent name")):
    """Show committed state metadata"""
    info = _state_store(name).get_info()
    if not _renderer().render(info, RuntimeConfig.get_output_format()):
        _renderer().state_info(info)


@state_app.command("clear")
def state_clear(name: str = typer.Argument("lab", help="Intent name")):
    """Clear committed state"""
    _state_store(name).clear()
    console.print(f"[green]Cleared state for '{name}'[/]")


@config_app.command("show")
def config_show():
    """Show persisted defaults"""
    console.print(f"[bold]NAT redundancy:[/] {get_default_nat_redundancy()}")
    console.print(f"[bold]Output format:[/] {get_default_output_format()}")


@config_app.command("set-nat-redundancy")
def config_set_nat_redundancy(
    mode: str = typer.Argument(..., help=" | ".join(NAT_REDUNDANCY_MODES)),
):
    """Set the default NAT placement"""
    try:
        set_default_nat_redundancy(mode)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    console.print(f"[green]Default NAT redundancy set to {mode}[/]")


@config_app.command("set-format")
def config_set_format(fmt: str = typer.Argument(..., help="table|json|yaml")):
    """Set the default output format"""
    try:
        set_default_output_format(fmt)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    console.print(f"[green]Default output format set to {fmt}[/]")


if __name__ == "__main__":
    app()
