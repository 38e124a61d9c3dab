#!/usr/bin/env python3
"""CLI surveying structure files for missing monomers and automatic links."""

from __future__ import annotations

import functools
import json
import multiprocessing
import os
import random
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from prep_restraints.cli._common import (
    DEFAULT_WORKERS,
    console,
    create_progress,
    err_console,
    setup_logging,
)
from prep_restraints.core import enumerate_structure_files
from prep_restraints.library import find_monomer_dir
from prep_restraints.models import ScanResult, SurveyEntry
from prep_restraints.prepare import PrepOptions, check_options
from prep_restraints.scan import needs_attention, result_to_dict, survey_structure

app = typer.Typer(
    name="survey-restraints",
    help="Report missing monomer definitions and links that would be added.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _survey_with_progress(
    files: list[str],
    options: PrepOptions,
    workers: int,
    quiet: bool,
) -> list[SurveyEntry]:
    """Survey files with optional progress display.

    Args:
        files: List of file paths to survey.
        options: Library locations and link radii.
        workers: Number of parallel workers.
        quiet: If True, suppress progress output.

    Returns:
        List of SurveyEntry for files that need attention.
    """
    entries: list[SurveyEntry] = []
    survey = functools.partial(survey_structure, options=options)

    with multiprocessing.Pool(processes=workers) as pool:
        if quiet:
            for entry in pool.imap_unordered(survey, files):
                if needs_attention(entry):
                    entries.append(entry)
        else:
            with create_progress() as progress:
                task = progress.add_task("[cyan]Surveying files...", total=len(files))
                for entry in pool.imap_unordered(survey, files):
                    if needs_attention(entry):
                        entries.append(entry)
                    progress.update(task, advance=1)

    return entries


def display_summary(result: ScanResult) -> None:
    """Display a rich summary of survey results."""
    summary_text = (
        f"[bold]Scan Date:[/] {result.scan_date}\n"
        f"[bold]Total Scanned:[/] {result.total_scanned:,}\n"
        f"[bold]Affected Entries:[/] {result.affected_entries:,}"
    )
    err_console.print(
        Panel(summary_text, title="[bold blue]Survey Summary", border_style="blue")
    )

    if result.entries:
        table = Table(title="Files Needing Attention", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Missing Monomers", style="yellow")
        table.add_column("New Links", justify="right", style="magenta")
        table.add_column("Error", style="red")

        for entry in result.entries[:20]:
            table.add_row(
                entry.name or Path(entry.file_path).name,
                ", ".join(entry.unmet),
                str(len(entry.links)),
                entry.error or "",
            )

        if len(result.entries) > 20:
            table.add_row(
                f"... and {len(result.entries) - 20} more", "", "", "", style="dim"
            )

        err_console.print(table)


@app.command()
def main(
    directory: Annotated[
        Path | None,
        typer.Option(
            "--dir",
            "-d",
            help="Directory with coordinate files",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ] = None,
    files: Annotated[
        list[Path] | None,
        typer.Option(
            "--files",
            "-f",
            help="Specific coordinate files to survey",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    monomers: Annotated[
        Path | None,
        typer.Option("--monomers", help="Monomer library dir (default: $CLIBD_MON)"),
    ] = None,
    lib: Annotated[
        list[str] | None,
        typer.Option("--lib", help="User's library with the highest priority"),
    ] = None,
    low: Annotated[
        list[str] | None,
        typer.Option("--low", help="User's library with the lowest priority"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output JSON file (default: stdout)"),
    ] = None,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", help="Number of parallel workers", min=1, max=32),
    ] = DEFAULT_WORKERS,
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output raw JSON only (no rich formatting)"),
    ] = False,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", help="Limit survey to N randomly sampled files", min=1),
    ] = None,
) -> None:
    """Survey coordinate files without writing anything.

    For each file, lists residue names without a monomer definition and the
    covalent links that automatic link detection would add.

    [bold]Examples:[/]

        [cyan]survey-restraints -f 1abc.cif -f 2xyz.pdb[/]

        [cyan]survey-restraints -d ./models -o survey.json[/]
    """
    setup_logging(quiet=True)

    if directory is None and files is None:
        err_console.print("[red]Error:[/] Either --dir or --files must be specified")
        raise typer.Exit(code=1)

    if directory is not None and files is not None:
        err_console.print("[red]Error:[/] Cannot specify both --dir and --files")
        raise typer.Exit(code=1)

    options = PrepOptions(
        monomer_dir=find_monomer_dir(monomers, os.environ),
        override_libs=list(lib or []),
        fallback_libs=list(low or []),
    )
    failure = check_options(options)
    if failure is not None:
        err_console.print(f"[red]Error:[/] {failure.message}", highlight=False)
        raise typer.Exit(code=1)

    if files:
        file_paths = [str(f) for f in files]
    else:
        assert directory is not None
        file_paths = enumerate_structure_files(directory)
        if not json_output:
            err_console.print(f"[green]Found {len(file_paths):,} coordinate files[/]")

    if limit is not None and limit < len(file_paths):
        file_paths = random.sample(file_paths, limit)

    entries = _survey_with_progress(file_paths, options, workers, json_output)
    entries.sort(key=lambda e: e.file_path)

    scan_result = ScanResult(
        scan_date=date.today().isoformat(),
        total_scanned=len(file_paths),
        affected_entries=len(entries),
        entries=entries,
    )

    json_str = json.dumps(result_to_dict(scan_result), indent=2)
    if output:
        output.write_text(json_str)
        if not json_output:
            err_console.print(f"[green]Results written to {output}[/]")
    else:
        console.print(json_str, highlight=False, markup=False, soft_wrap=True)

    if not json_output:
        display_summary(scan_result)


if __name__ == "__main__":
    app()
