"""Monomer library sources: user CIF files, embedded definitions, installed library."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

import gemmi
from gemmi import cif

from prep_restraints.models import LibraryRead, MonomerDefinition

logger = logging.getLogger(__name__)

# Special library value: definitions embedded in the input mmCIF file
EMBEDDED_LIBRARY = "+"

# Environment variable naming the installed monomer library
MONOMER_DIR_ENV = "CLIBD_MON"

# Names reserved on Windows; the monomer library stores them as e.g. CON_CON.cif
_RESERVED_NAMES = {"AUX", "COM", "CON", "LPT", "PRN"}


def find_monomer_dir(
    explicit: str | Path | None, environ: Mapping[str, str] | None = None
) -> Path | None:
    """Decide which installed monomer library to use.

    Args:
        explicit: Directory given by the user, has priority.
        environ: Environment mapping supplied by the caller (the CLI passes
            its own view); only ``CLIBD_MON`` is looked at.

    Returns:
        The library directory, or None when no location is known.
    """
    if explicit:
        return Path(explicit)
    if environ and environ.get(MONOMER_DIR_ENV):
        return Path(environ[MONOMER_DIR_ENV])
    return None


def relative_monomer_path(name: str) -> str:
    """Path of a monomer file relative to the library root, e.g. ``a/ALA.cif``."""
    if name.upper() in _RESERVED_NAMES:
        return f"{name[0].lower()}/{name}_{name}.cif"
    return f"{name[0].lower()}/{name}.cif"


def _block_monomer_name(block: cif.Block) -> str:
    name = block.name
    return name[5:] if name.startswith("comp_") else name


def definitions_from_document(doc: cif.Document, source: str) -> LibraryRead:
    """Collect every chemical component defined in a CIF document.

    Args:
        doc: Monomer-library style document (``data_comp_XXX`` blocks).
        source: Label recorded on the definitions.

    Returns:
        LibraryRead with the definitions, in block order.
    """
    read = LibraryRead(source=source)
    for block in doc:
        if block.name == "comp_list" or not block.find_values("_chem_comp_atom.atom_id"):
            continue
        try:
            cc = gemmi.make_chemcomp_from_block(block)
        except (RuntimeError, ValueError) as e:
            read.errors.append(f"{source}: cannot read {block.name}: {e}")
            continue
        if not cc.name:
            cc.name = _block_monomer_name(block)
        read.definitions.append(MonomerDefinition.from_chemcomp(cc, source))
    return read


def read_library_file(path: str | Path) -> LibraryRead:
    """Read a user's monomer library file (plain or gzipped CIF).

    Errors are recorded in the result, never raised.
    """
    source = str(path)
    try:
        doc = cif.read(source)
    except (RuntimeError, OSError, ValueError) as e:
        return LibraryRead(source=source, errors=[f"Error reading {source}: {e}"])
    return definitions_from_document(doc, source)


def read_embedded_library(doc: cif.Document | None) -> LibraryRead:
    """Read definitions embedded in the input structure's mmCIF document."""
    if doc is None:
        return LibraryRead(
            source=EMBEDDED_LIBRARY,
            errors=["Embedded definitions ('+') can be read only from mmCIF input"],
        )
    return definitions_from_document(doc, EMBEDDED_LIBRARY)


def read_installed_library(monomer_dir: str | Path, names: Iterable[str]) -> LibraryRead:
    """Read the requested monomers, and only those, from the installed library.

    Args:
        monomer_dir: Root of the CCP4 monomer library.
        names: Residue names to look up.

    Returns:
        LibraryRead; names not in the library are skipped, unreadable
        files add an error.
    """
    root = Path(monomer_dir)
    read = LibraryRead(source=str(root))
    for name in names:
        if not name:
            continue
        path = root / relative_monomer_path(name)
        if not path.exists():
            logger.debug("Monomer not in the library: %s.", name)
            continue
        try:
            doc = cif.read(str(path))
        except (RuntimeError, OSError, ValueError) as e:
            read.errors.append(f"Error reading {path}: {e}")
            continue
        block = doc.find_block(f"comp_{name}")
        if block is None:
            read.errors.append(f"{path}: block comp_{name} not found.")
            continue
        try:
            cc = gemmi.make_chemcomp_from_block(block)
        except (RuntimeError, ValueError) as e:
            read.errors.append(f"{path}: {e}")
            continue
        read.definitions.append(MonomerDefinition.from_chemcomp(cc, str(path)))
    logger.debug(
        "Installed library provided %d of the requested monomers", len(read.definitions)
    )
    return read
