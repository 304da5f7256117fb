from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from trafficspec.domain.models import Operation, SpecDocument
from trafficspec.errors import SpecStoreError
from trafficspec.store.json_store import SpecStore


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


@app.callback()
def _setup(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load(spec_path: str) -> tuple[Path, SpecDocument]:
    path = Path(spec_path).expanduser()
    if not path.exists():
        raise typer.BadParameter(f"Spec document does not exist: {path}")
    try:
        return path, SpecStore(path, resume=True).document
    except SpecStoreError as e:
        raise typer.BadParameter(str(e)) from e


def _param_labels(op: Operation) -> str:
    return ", ".join(f"{p.name}:{p.location}" for p in op.parameters)


@app.command()
def init(
    spec_path: str = typer.Argument(..., help="Where to write the empty spec document"),
    force: bool = typer.Option(False, help="Overwrite an existing document"),
) -> None:
    path = Path(spec_path).expanduser()
    if path.exists() and not force:
        raise typer.BadParameter(f"{path} already exists (use --force to overwrite)")
    SpecStore(path)
    console.print(f"[bold green]Wrote[/bold green] empty spec to: {path}")


@app.command()
def show(
    spec_path: str = typer.Argument(..., help="Path to a captured spec document"),
    path_contains: Optional[str] = typer.Option(None, help="Substring match on template path"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/...)"),
) -> None:
    path, doc = _load(spec_path)

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("PARAMETERS")
    table.add_column("STATUS", no_wrap=True)

    rows = 0
    for template in sorted(doc.paths):
        if path_contains and path_contains not in template:
            continue
        for verb, op in sorted(doc.paths[template].items()):
            if method and verb != method.lower():
                continue
            table.add_row(verb.upper(), template, _param_labels(op), ", ".join(sorted(op.responses)))
            rows += 1

    console.print(f"[bold]Spec:[/bold] {path}")
    console.print(f"[bold]Operations:[/bold] {rows}")
    console.print(table)


@app.command()
def export(
    spec_path: str = typer.Argument(..., help="Path to a captured spec document"),
    out: Optional[str] = typer.Option(None, help="Output path (default: print to stdout)"),
) -> None:
    _, doc = _load(spec_path)
    text = json.dumps(doc.to_json_dict(), indent=SpecStore.INDENT, ensure_ascii=False)

    if out:
        out_path = Path(out).expanduser()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        console.print(f"[bold green]Wrote[/bold green] spec to: {out_path}")
    else:
        console.print_json(text)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
