"""minrepro CLI - slice a Java source tree down to a minimal reproduction."""
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.table import Table

from minrepro.analyzer.collector import CollectionResult, declared_specifiers
from minrepro.config import __version__, get_config
from minrepro.errors import SlicerError
from minrepro.pipeline import ABORT_UNRESOLVED, SliceRequest, SliceResult, SourceTreeLoader, run_slice
from minrepro.utils.safe_console import SafeConsole

app = typer.Typer(
    name="minrepro",
    help="Slice Java sources down to the members reachable from target methods",
    add_completion=False
)
console = SafeConsole()


def _print_unmatched(collection: CollectionResult):
    table = Table(title="Targets Not Found", show_header=True, header_style="bold red")
    table.add_column("Specifier", style="cyan")
    table.add_column("Problem", style="magenta")
    for specifier in collection.unmatched:
        table.add_row(escape(specifier), "no matching declaration")
    for specifier in collection.duplicated:
        table.add_row(escape(specifier), "matches more than one declaration")
    console.print(table)


def _print_unresolved(collection: CollectionResult):
    table = Table(title="Unresolved References", show_header=True, header_style="bold yellow")
    table.add_column("Location", style="cyan")
    table.add_column("Reference")
    table.add_column("Reason", style="magenta")
    for ref in collection.unresolved:
        table.add_row(f"{ref.path}:{ref.line}:{ref.column}", escape(ref.text), escape(ref.reason))
    console.print(table)


def _print_summary(result: SliceResult):
    table = Table(title="Sliced Files", show_header=True, header_style="bold cyan")
    table.add_column("File", style="cyan")
    table.add_column("Removed", justify="right", style="green")
    table.add_column("Status")

    emitted = result.emitted
    failed = {f.relative_path: f.error for f in emitted.failures}
    for report in result.prune_reports:
        if report.relative_path in failed:
            status = f"[red]write failed: {escape(failed[report.relative_path])}[/red]"
        elif report.relative_path in emitted.skipped:
            status = "[dim]empty, not written[/dim]"
        else:
            status = "[green]written[/green]"
        table.add_row(report.relative_path.as_posix(), str(report.count), status)
    console.print(table)


@app.command("slice")
def slice_command(
    root: str = typer.Option(..., "--root", "-r", help="Source root the target files are relative to"),
    target_files: List[str] = typer.Option(..., "--target-file", "-f", help="Target file, relative to the root (repeatable)"),
    target_methods: List[str] = typer.Option(..., "--target-method", "-m", help="Target specifier, e.g. 'com.example.Foo#bar(int)' (repeatable)"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Output directory (default: $MINREPRO_OUTPUT_DIR or minrepro_output)"),
    strict: Optional[bool] = typer.Option(None, "--strict/--no-strict", help="Fail when a reference inside a target cannot be resolved"),
    manifest: Optional[bool] = typer.Option(None, "--manifest/--no-manifest", help="Write slice-manifest.json to the output directory"),
):
    """Keep the target methods and everything they use; drop the rest."""
    try:
        config = get_config()
    except ValueError as e:
        console.error(str(e))
        raise typer.Exit(1)

    request = SliceRequest(
        root=Path(root).resolve(),
        target_files=list(target_files),
        target_methods=list(target_methods),
        output_dir=Path(output_dir or config.output_dir).resolve(),
        strict=config.strict if strict is None else strict,
        write_manifest=config.write_manifest if manifest is None else manifest,
        source_glob=config.source_glob,
    )
    console.print(f"[bold blue]Slicing:[/bold blue] {escape(str(request.root))}\n")

    try:
        result = run_slice(request, console=console)
    except (FileNotFoundError, SlicerError) as e:
        console.error(str(e))
        raise typer.Exit(1)

    collection = result.collection
    if collection.unresolved:
        _print_unresolved(collection)
    if not collection.ok:
        _print_unmatched(collection)
        try:
            collection.raise_for_unmatched()
        except SlicerError as e:
            console.error(str(e))
        raise typer.Exit(1)

    if result.abort_reason == ABORT_UNRESOLVED:
        console.error(
            f"{len(result.collection.unresolved)} unresolved reference(s) in strict mode; nothing was written"
        )
        raise typer.Exit(1)

    _print_summary(result)
    console.success(f"Wrote {len(result.emitted.written)} file(s) to {request.output_dir}")
    if result.emitted.failures:
        console.warn(f"{len(result.emitted.failures)} file(s) could not be written")
    if result.manifest_path:
        console.print(f"[dim]Manifest: {escape(str(result.manifest_path))}[/dim]")


@app.command("targets")
def targets_command(
    files: List[str] = typer.Argument(..., help="Java files, relative to the root"),
    root: str = typer.Option(".", "--root", "-r", help="Source root"),
):
    """List the exact specifier of every method and constructor in the given files."""
    loader = SourceTreeLoader(Path(root).resolve(), console=console)
    for relative in files:
        try:
            unit = loader.load_unit(relative)
        except FileNotFoundError as e:
            console.error(str(e))
            raise typer.Exit(1)
        for specifier in declared_specifiers(unit):
            console.print(escape(specifier), highlight=False, soft_wrap=True)


def _version_callback(value: bool):
    if value:
        console.print(f"minrepro {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"),
):
    """minrepro - minimal Java reproductions from target methods."""
    pass


if __name__ == "__main__":
    app()
