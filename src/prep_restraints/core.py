"""Core structure and CIF reading utilities."""

from __future__ import annotations

from pathlib import Path

import gemmi
from gemmi import cif

from prep_restraints.models import LoadedStructure


def read_cif(path: str | Path) -> cif.Document | None:
    """Read a CIF file safely.

    Args:
        path: Path to the CIF file (handles .gz automatically).

    Returns:
        CIF document or None if reading fails.
    """
    try:
        return cif.read(str(path))
    except (RuntimeError, OSError, ValueError):
        return None


def enumerate_structure_files(root: Path) -> list[str]:
    """Enumerate coordinate files under a directory using gemmi.CoorFileWalk.

    CoorFileWalk finds PDB, mmCIF and mmJSON files, compressed or not.

    Args:
        root: Directory to walk.

    Returns:
        List of string paths for each coordinate file found.
    """
    return list(gemmi.CoorFileWalk(str(root)))


def load_structure(path: str | Path) -> LoadedStructure:
    """Read coordinates and, for mmCIF input, keep the CIF document.

    The document is needed when definitions embedded in the input file are
    requested as a user library.

    Args:
        path: Coordinate file in PDB, mmCIF or mmJSON format.

    Returns:
        LoadedStructure; ``error`` is set when the file cannot be read.
    """
    path_str = str(path)
    try:
        st = gemmi.read_structure(path_str)
    except (RuntimeError, OSError, ValueError) as e:
        return LoadedStructure(path=path_str, error=f"Error reading file: {e}")

    st.setup_entities()

    document = None
    if st.input_format == gemmi.CoorFormat.Mmcif:
        document = read_cif(path_str)

    return LoadedStructure(path=path_str, structure=st, document=document)


def first_model(st: gemmi.Structure) -> gemmi.Model | None:
    """Return the model used for preparation; the others are left untouched."""
    if len(st) == 0:
        return None
    return st[0]


def has_atoms(model: gemmi.Model | None) -> bool:
    return model is not None and model.count_atom_sites() > 0


def residue_names(model: gemmi.Model) -> list[str]:
    """Distinct residue names of the model, in order of first appearance."""
    names: list[str] = []
    for chain in model:
        for residue in chain:
            if residue.name not in names:
                names.append(residue.name)
    return names
