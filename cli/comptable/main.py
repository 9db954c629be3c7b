"""comptable CLI - Command-line interface for competitor comparison tables."""

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from pathlib import Path
from typing import Optional
import asyncio

app = typer.Typer(
    name="comptable",
    help="comptable - Crowdsourced competitor comparison tables from multiple LLMs",
    add_completion=False,
)
console = Console()


def _require_keys() -> tuple[str, str]:
    """Return (openrouter, groq) keys or exit with a hint."""
    from comptable.config_loader import get_api_keys, missing_api_keys

    missing = missing_api_keys()
    if missing:
        console.print(f"[red]Error:[/red] Missing API key(s): {', '.join(missing)}")
        console.print("[dim]Set them in the environment before running an analysis[/dim]")
        raise typer.Exit(1)
    keys = get_api_keys()
    return keys["openrouter"], keys["groq"]


def render_result(result, store=None, show_raw: bool = False) -> None:
    """Print the comparison table, ranking summary and optionally raw model outcomes."""
    from comptable.export.formats import criterion_header
    from comptable.models.output import CellStore

    store = store or CellStore()
    grid = store.merged_table(result)

    table = Table(
        title=f"Competitor Analysis: {escape(result.target)}",
        caption=f"Generated on {result.timestamp:%Y-%m-%d %H:%M:%S} UTC",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Competitor", style="cyan", no_wrap=True)
    for criterion in result.criteria:
        table.add_column(escape(criterion_header(criterion)))

    for row_index, competitor in enumerate(result.competitors):
        label = f"{escape(competitor.name)}\n[dim]{competitor.kind} • Freq: {competitor.frequency}[/dim]"
        description = store.get_description(row_index)
        if description:
            style = "red" if description.error else "dim italic"
            label += f"\n[{style}]{escape(description.description)}[/{style}]"
        cells = []
        for col_index, value in enumerate(grid[row_index]):
            cell = store.get_cell(row_index, col_index)
            if value is None:
                cells.append("[dim]-[/dim]")
            elif cell is not None and cell.error:
                cells.append(f"[red]{escape(value)}[/red]")
            else:
                cells.append(escape(value))
        table.add_row(label, *cells)

    console.print(table)

    summary = Table(show_header=True, header_style="bold")
    summary.add_column("Top Competitors", style="blue")
    summary.add_column("Key Criteria", style="green")
    for i in range(min(5, max(len(result.competitors), len(result.criteria)))):
        comp = result.competitors[i] if i < len(result.competitors) else None
        crit = result.criteria[i] if i < len(result.criteria) else None
        summary.add_row(
            f"{comp.rank}. {escape(comp.name)} (mentioned {comp.frequency} times)" if comp else "",
            f"{crit.rank}. {escape(crit.name)} ({crit.value_type})" if crit else "",
        )
    console.print(summary)

    if show_raw:
        raw = Table(title="Raw Model Outcomes", show_header=True, header_style="bold")
        raw.add_column("Kind", style="cyan")
        raw.add_column("Model")
        raw.add_column("Status")
        raw.add_column("Items / Error", overflow="fold")
        for response in result.raw_responses.competitors + result.raw_responses.criteria:
            if response.ok:
                raw.add_row(response.kind, response.model, "[green]OK[/green]", escape(", ".join(response.items)))
            else:
                raw.add_row(response.kind, response.model, "[red]FAILED[/red]", escape(response.failure or ""))
        console.print(raw)


@app.command()
def analyze(
    target: str = typer.Argument(..., help="Product or company to analyze"),
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to an analysis configuration JSON file",
        exists=True,
        readable=True,
    ),
    resolve_cells: bool = typer.Option(
        False,
        "--resolve-cells",
        help="Fill every cell of the table after ranking",
    ),
    descriptions: bool = typer.Option(
        True,
        "--descriptions/--no-descriptions",
        help="Describe each competitor when resolving cells",
    ),
    export: Optional[Path] = typer.Option(
        None,
        "--export", "-o",
        help="Write the result to this path",
    ),
    format: str = typer.Option(
        "csv",
        "--format", "-f",
        help="Export format: 'csv' or 'json'",
    ),
    show_raw: bool = typer.Option(
        False,
        "--show-raw",
        help="Show each model's raw outcome",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """
    Query multiple LLMs for competitors and criteria and rank the merged answers.

    \b
    Examples:
        comptable analyze "Tesla Model 3"
        comptable analyze "Notion" --resolve-cells -o notion.csv
        comptable analyze "Uber" --show-raw --format json -o uber.json
    """
    from comptable.config_loader import load_analysis_config
    from comptable.logging import configure_logging

    configure_logging(debug)

    console.print(Panel.fit(
        "[bold blue]comptable[/bold blue] - Competitor Comparison Tables",
        subtitle="Crowdsourced from multiple LLMs",
    ))

    if format not in ("csv", "json"):
        console.print(f"[red]Error:[/red] Invalid export format '{format}'")
        console.print("[dim]Valid formats: csv, json[/dim]")
        raise typer.Exit(1)

    try:
        analysis_config = load_analysis_config(config)
    except Exception as e:
        console.print(f"[red]Error parsing config:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[dim]Target:[/dim] {target}")
    console.print(f"[dim]Models:[/dim] {len(analysis_config.fanout.models)}")

    openrouter_key, groq_key = _require_keys()

    from comptable.models.output import CellStore
    from comptable.pipeline.executor import PipelineError, build_cell_resolver, run_analysis

    store = CellStore()

    async def _run():
        with console.status("[dim]Starting...[/dim]") as status:
            def on_stage(stage, message):
                if message:
                    status.update(f"[dim]{message}[/dim]")

            result = await run_analysis(
                target,
                openrouter_key,
                groq_key,
                config=analysis_config,
                progress_callback=on_stage,
            )

            if resolve_cells and result.competitors and result.criteria:
                resolver = build_cell_resolver(groq_key, analysis_config)
                try:
                    def on_cells(done, total):
                        status.update(f"[dim]Resolving cells... {done}/{total}[/dim]")

                    await resolver.resolve_all(
                        result,
                        store,
                        include_descriptions=descriptions,
                        progress_callback=on_cells,
                    )
                finally:
                    await resolver.client.close()
        return result

    try:
        result = asyncio.run(_run())
    except PipelineError as e:
        console.print(f"\n[red]Analysis failed:[/red] {e}")
        console.print("[dim]Nothing was kept; run the command again to retry.[/dim]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted by user[/yellow]")
        raise typer.Exit(130)

    console.print("[green]OK[/green] Analysis complete\n")
    render_result(result, store, show_raw=show_raw)

    if not result.competitors:
        console.print("[yellow]Warning:[/yellow] No model returned usable competitors")

    if export:
        from comptable.export import ResultExporter

        path = ResultExporter().export(result, export, format=format, store=store)
        console.print(f"[green]OK[/green] Exported to {path}")


@app.command()
def cell(
    competitor: str = typer.Argument(..., help="Competitor name"),
    criterion: str = typer.Argument(..., help="Criterion name"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Answer a single (competitor, criterion) question in five words or less."""
    from comptable.config_loader import get_groq_api_key, load_analysis_config
    from comptable.logging import configure_logging
    from comptable.pipeline.executor import build_cell_resolver

    configure_logging(debug)

    groq_key = get_groq_api_key()
    if not groq_key:
        console.print("[red]Error:[/red] Missing API key(s): GROQ_API_KEY")
        raise typer.Exit(1)

    try:
        analysis_config = load_analysis_config()
    except Exception as e:
        console.print(f"[red]Error parsing config:[/red] {e}")
        raise typer.Exit(1)

    async def _run():
        resolver = build_cell_resolver(groq_key, analysis_config)
        try:
            return await resolver.resolve_cell(competitor, criterion)
        finally:
            await resolver.client.close()

    answer = asyncio.run(_run())
    style = "red" if answer.error else "green"
    console.print(f"{competitor} + {criterion} = [{style}]{answer.answer}[/{style}]")
    if answer.error:
        raise typer.Exit(1)


@app.command()
def show(
    result_file: Path = typer.Argument(
        ...,
        help="Result JSON written by 'analyze --format json'",
        exists=True,
        readable=True,
    ),
    export: Optional[Path] = typer.Option(
        None,
        "--export", "-o",
        help="Also write the table as CSV to this path",
    ),
    show_raw: bool = typer.Option(False, "--show-raw", help="Show each model's raw outcome"),
):
    """Display a saved analysis result and optionally convert it to CSV."""
    from comptable.export import ResultExporter, load_result_with_store

    try:
        result, store = load_result_with_store(result_file)
    except Exception as e:
        console.print(f"[red]Error loading result:[/red] {e}")
        raise typer.Exit(1)

    render_result(result, store, show_raw=show_raw)

    if export:
        path = ResultExporter().export(result, export, format="csv", store=store)
        console.print(f"[green]OK[/green] Exported to {path}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
):
    """Start the FastAPI server."""
    import uvicorn

    from comptable.logging import configure_logging

    configure_logging(json_logs=True)

    console.print(Panel.fit(
        "[bold blue]comptable[/bold blue] API Server",
        subtitle=f"Running on http://{host}:{port}",
    ))

    uvicorn.run(
        "comptable.api:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
