"""Resolution of residue names against the monomer library sources."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from gemmi import cif

from prep_restraints.library import (
    EMBEDDED_LIBRARY,
    read_embedded_library,
    read_installed_library,
    read_library_file,
)
from prep_restraints.models import LibraryRead, MonomerSet, ResolutionResult

logger = logging.getLogger(__name__)


def _read_user_library(path: str, document: cif.Document | None) -> LibraryRead:
    logger.debug("Reading user's library %s ...", path)
    if path == EMBEDDED_LIBRARY:
        return read_embedded_library(document)
    return read_library_file(path)


def _absorb(
    monomers: MonomerSet,
    read: LibraryRead,
    result: ResolutionResult,
    only: Sequence[str] | None = None,
) -> MonomerSet:
    """Add what a source provides; record its errors as warnings."""
    for error in read.errors:
        logger.warning(error)
        result.warnings.append(error)
    result.sources_read.append(read.source)
    definitions = read.definitions
    if only is not None:
        definitions = [d for d in definitions if d.name in only]
    return monomers.extend(definitions)


def resolve_monomers(
    residue_names: Sequence[str],
    override_libs: Sequence[str],
    monomer_dir: str | Path | None,
    fallback_libs: Sequence[str] = (),
    document: cif.Document | None = None,
    monomers: MonomerSet | None = None,
) -> ResolutionResult:
    """Find a definition for every residue name.

    Sources are consulted in priority order: override libraries (in the
    given order), the installed library, then fallback libraries. A name
    defined by an earlier source is never replaced by a later one.

    Args:
        residue_names: Residue names present in the model.
        override_libs: User library paths with the highest priority; the
            value ``+`` means definitions embedded in ``document``.
        monomer_dir: Installed monomer library; None skips it.
        fallback_libs: User library paths with the lowest priority.
        document: mmCIF document of the input structure, if any.
        monomers: Definitions already resolved; they are kept as they are.

    Returns:
        ResolutionResult with a new MonomerSet and the names still unmet.
    """
    resolved = monomers if monomers is not None else MonomerSet()
    result = ResolutionResult(monomers=resolved, unmet=[])

    for path in override_libs:
        resolved = _absorb(resolved, _read_user_library(path, document), result)
    if len(resolved):
        logger.debug("Monomers read so far: %s", " ".join(resolved.names))

    needed = resolved.missing(residue_names)
    if needed and monomer_dir is not None:
        logger.debug("Reading monomer library ...")
        resolved = _absorb(resolved, read_installed_library(monomer_dir, needed), result)
        needed = resolved.missing(needed)

    for path in fallback_libs:
        if not needed:
            break
        read = _read_user_library(path, document)
        resolved = _absorb(resolved, read, result, only=needed)
        needed = resolved.missing(needed)

    for name in needed:
        message = f"Definition not found for {name}."
        logger.warning(message)
        result.warnings.append(message)

    result.monomers = resolved
    result.unmet = needed
    return result
