"""Survey of structure files: missing monomers and candidate links."""

from __future__ import annotations

import functools
import multiprocessing
import random
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from prep_restraints.core import (
    enumerate_structure_files,
    first_model,
    has_atoms,
    load_structure,
    residue_names,
)
from prep_restraints.links import detect_links
from prep_restraints.models import ScanResult, SurveyEntry
from prep_restraints.prepare import PrepOptions, check_options
from prep_restraints.resolve import resolve_monomers

if TYPE_CHECKING:
    from collections.abc import Callable


def survey_structure(path: str, options: PrepOptions) -> SurveyEntry:
    """Report what preparing one file would need, without writing anything.

    Args:
        path: Coordinate file.
        options: Library locations and link search radii; ``allow_adhoc``
            and ``auto_link`` are ignored.

    Returns:
        SurveyEntry with unmet residue names and links that would be added.
    """
    failure = check_options(options)
    if failure is not None:
        return SurveyEntry(name="", file_path=path, error=failure.message)

    loaded = load_structure(path)
    if loaded.error is not None:
        return SurveyEntry(name="", file_path=path, error=loaded.error)

    st = loaded.structure
    model = first_model(st)
    if not has_atoms(model):
        return SurveyEntry(name=st.name, file_path=path, error="No atoms found")

    resolution = resolve_monomers(
        residue_names(model),
        options.override_libs,
        options.monomer_dir,
        options.fallback_libs,
        document=loaded.document,
    )
    links = detect_links(
        model, st, radius=options.search_radius, bond_radius=options.contact_cutoff
    )
    return SurveyEntry(
        name=st.name,
        file_path=path,
        unmet=resolution.unmet,
        links=[f"{c.partner1} - {c.partner2} {c.distance:.2f}" for c in links],
    )


def needs_attention(entry: SurveyEntry) -> bool:
    return bool(entry.unmet or entry.links or entry.error)


def scan_structures(
    root: Path | None,
    options: PrepOptions,
    workers: int = 4,
    file_list: list[Path] | None = None,
    limit: int | None = None,
    progress_callback: Callable[[int, int], None] | None = None,
) -> ScanResult:
    """Survey a directory tree or specific files in parallel.

    Args:
        root: Directory to walk (used if file_list is None).
        options: Passed to survey_structure.
        workers: Number of parallel workers.
        file_list: Optional list of specific files.
        limit: If set, randomly sample this many files.
        progress_callback: Optional callback(current, total).

    Returns:
        ScanResult with entries for files that need attention, sorted by path.
    """
    if file_list is not None:
        files = [str(f) for f in file_list]
    elif root is not None:
        files = enumerate_structure_files(root)
    else:
        files = []

    if limit is not None and limit < len(files):
        files = random.sample(files, limit)

    entries: list[SurveyEntry] = []
    survey = functools.partial(survey_structure, options=options)

    with multiprocessing.Pool(processes=workers) as pool:
        for i, entry in enumerate(pool.imap_unordered(survey, files)):
            if needs_attention(entry):
                entries.append(entry)
            if progress_callback:
                progress_callback(i + 1, len(files))

    entries.sort(key=lambda e: e.file_path)

    return ScanResult(
        scan_date=date.today().isoformat(),
        total_scanned=len(files),
        affected_entries=len(entries),
        entries=entries,
    )


def result_to_dict(result: ScanResult) -> dict:
    """Convert ScanResult to a JSON-serializable dictionary."""
    return {
        "scan_date": result.scan_date,
        "total_scanned": result.total_scanned,
        "affected_entries": result.affected_entries,
        "entries": [
            {
                "name": entry.name,
                "file_path": entry.file_path,
                "unmet": entry.unmet,
                "links": entry.links,
                "error": entry.error,
            }
            for entry in result.entries
        ],
    }
