#!/usr/bin/env python3
"""CLI preparing intermediate Refmac (crd) files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from gemmi import cif
from rich.panel import Panel

from prep_restraints.cli._common import err_console, setup_logging
from prep_restraints.core import load_structure, read_cif
from prep_restraints.library import EMBEDDED_LIBRARY, find_monomer_dir
from prep_restraints.links import DEFAULT_CONTACT_CUTOFF, DEFAULT_SEARCH_RADIUS
from prep_restraints.models import FailureKind, PreparedModel
from prep_restraints.prepare import PrepOptions, check_options, resolve_and_prepare
from prep_restraints.topology import build_monlib, hydrogen_change, write_refmac_crd

logger = logging.getLogger("prep_restraints.cli")

app = typer.Typer(
    name="prep-restraints",
    help="Prepare intermediate Refmac files.",
    add_completion=False,
    rich_markup_mode="rich",
)


def fail(message: str) -> NoReturn:
    """Print one error line and exit with code 1."""
    err_console.print(f"[red]Error:[/] {message}", highlight=False)
    raise typer.Exit(code=1)


def _library_documents(
    paths: list[str], embedded: cif.Document | None
) -> list[cif.Document]:
    docs = []
    for path in paths:
        doc = embedded if path == EMBEDDED_LIBRARY else read_cif(path)
        if doc is not None:
            docs.append(doc)
    return docs


def display_summary(prepared: PreparedModel, output: Path) -> None:
    """Display a rich summary of the preparation."""
    adhoc = prepared.monomers.adhoc_names
    summary_text = (
        f"[bold]Monomers:[/] {len(prepared.monomers)}\n"
        f"[bold]Ad-hoc:[/] {', '.join(adhoc) if adhoc else '-'}\n"
        f"[bold]Added links:[/] {len(prepared.new_connections)}\n"
        f"[bold]Output:[/] {output}"
    )
    err_console.print(
        Panel(summary_text, title="[bold blue]Preparation Summary", border_style="blue")
    )


@app.command()
def main(
    input_file: Annotated[
        Path,
        typer.Argument(
            help="Coordinate file (PDB, mmCIF or mmJSON)",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    output_file: Annotated[
        Path,
        typer.Argument(help="Output crd file (mmCIF)"),
    ],
    monomers: Annotated[
        Path | None,
        typer.Option(
            "--monomers",
            help="Monomer library dir (default: $CLIBD_MON)",
        ),
    ] = None,
    lib: Annotated[
        list[str] | None,
        typer.Option(
            "--lib",
            help="User's library with priority over the monomer library. "
            "Can be given multiple times. '+' reads INPUT_FILE (mmCIF only).",
        ),
    ] = None,
    low: Annotated[
        list[str] | None,
        typer.Option(
            "--low",
            help="Like --lib, but with the lowest priority.",
        ),
    ] = None,
    auto_cis: Annotated[
        bool,
        typer.Option(
            "--auto-cis/--no-auto-cis",
            help="Assign cis/trans ignoring CISPEP records",
        ),
    ] = True,
    auto_link: Annotated[
        bool,
        typer.Option(
            "--auto-link/--no-auto-link",
            help="Find links not included in LINK/SSBOND",
        ),
    ] = False,
    auto_ligand: Annotated[
        bool,
        typer.Option(
            "--auto-ligand/--no-auto-ligand",
            help="Use ad-hoc restraints for monomers without definitions",
        ),
    ] = False,
    search_radius: Annotated[
        float,
        typer.Option("--search-radius", help="Neighbor search radius", min=0.1),
    ] = DEFAULT_SEARCH_RADIUS,
    contact_cutoff: Annotated[
        float,
        typer.Option("--contact-cutoff", help="Maximum link distance", min=0.1),
    ] = DEFAULT_CONTACT_CUTOFF,
    no_hydrogens: Annotated[
        bool,
        typer.Option("--no-hydrogens", "-H", help="Remove (and do not add) hydrogens"),
    ] = False,
    keep_hydrogens: Annotated[
        bool,
        typer.Option("--keep-hydrogens", help="Preserve hydrogens from the input file"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Errors only"),
    ] = False,
) -> None:
    """Prepare topology and restraints of a model for Refmac.

    Every residue needs a monomer definition: from --lib files, the monomer
    library, or --low files. By default hydrogens are removed and re-added
    on riding positions.

    [bold]Examples:[/]

        [cyan]prep-restraints model.cif out.crd --monomers $CLIBD_MON[/]

        # Ligand definitions from the input file, automatic links
        [cyan]prep-restraints model.cif out.crd --lib + --auto-link[/]
    """
    setup_logging(verbose=verbose, quiet=quiet)

    try:
        h_change = hydrogen_change(no_hydrogens, keep_hydrogens)
    except ValueError as e:
        fail(str(e))

    options = PrepOptions(
        monomer_dir=find_monomer_dir(monomers, os.environ),
        override_libs=list(lib or []),
        fallback_libs=list(low or []),
        allow_adhoc=auto_ligand,
        auto_link=auto_link,
        search_radius=search_radius,
        contact_cutoff=contact_cutoff,
    )
    failure = check_options(options)
    if failure is not None:
        fail(failure.message)

    logger.debug("Reading %s ...", input_file)
    loaded = load_structure(input_file)
    if loaded.error is not None:
        fail(loaded.error)

    prepared = resolve_and_prepare(loaded.structure, options, loaded.document)
    if prepared.fatal is not None:
        fail(prepared.fatal.message)
    missing = [f for f in prepared.failures if f.kind is FailureKind.NO_TEMPLATE]
    if missing:
        fail("; ".join(f.message for f in missing))

    documents = _library_documents(
        options.override_libs + options.fallback_libs, loaded.document
    )
    try:
        monlib = build_monlib(prepared.monomers, options.monomer_dir, documents)
        write_refmac_crd(prepared, monlib, output_file, h_change, auto_cis=auto_cis)
    except (RuntimeError, OSError, ValueError) as e:
        fail(str(e))

    if not quiet:
        display_summary(prepared, output_file)


if __name__ == "__main__":
    app()
