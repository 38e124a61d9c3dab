"""Pytest fixtures for prep_restraints tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

import gemmi
import pytest

# (chain, resname, resseq, atom name, element, x, y, z)
AtomSpec = tuple[str, str, int, str, str, float, float, float]

_STANDARD = {"ALA", "CYS", "GLY", "SER"}


def _pdb_line(serial: int, spec: AtomSpec) -> str:
    chain, resname, resseq, name, element, x, y, z = spec
    record = "ATOM" if resname in _STANDARD else "HETATM"
    atom_name = f" {name:<3}" if len(name) < 4 and len(element) == 1 else f"{name:<4}"
    return (
        f"{record:<6}{serial:>5} {atom_name} {resname:>3} {chain}{resseq:>4}    "
        f"{x:>8.3f}{y:>8.3f}{z:>8.3f}{1.0:>6.2f}{20.0:>6.2f}          {element:>2}"
    )


def pdb_text(
    atoms: Sequence[AtomSpec], cell: float | None = None, spacegroup: str = "P 1"
) -> str:
    lines = []
    if cell is not None:
        lines.append(
            f"CRYST1{cell:9.3f}{cell:9.3f}{cell:9.3f}"
            f"{90.0:7.2f}{90.0:7.2f}{90.0:7.2f} {spacegroup:<11}{1:4d}"
        )
    lines.extend(_pdb_line(i, spec) for i, spec in enumerate(atoms, start=1))
    lines.append("END")
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_structure() -> Callable[..., gemmi.Structure]:
    """Factory building a gemmi.Structure from atom specs."""

    def _make(
        atoms: Sequence[AtomSpec], cell: float | None = None, spacegroup: str = "P 1"
    ) -> gemmi.Structure:
        st = gemmi.read_pdb_string(pdb_text(atoms, cell, spacegroup))
        st.setup_entities()
        return st

    return _make


@pytest.fixture
def write_pdb(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing atom specs to a PDB file."""

    def _write(name: str, atoms: Sequence[AtomSpec], cell: float | None = None) -> Path:
        path = tmp_path / name
        path.write_text(pdb_text(atoms, cell))
        return path

    return _write


def monomer_block(name: str, atoms: Sequence[tuple[str, str]]) -> str:
    """A data_comp_NAME block with a chain of bonds between consecutive atoms."""
    lines = [
        f"data_comp_{name}",
        "loop_",
        "_chem_comp_atom.comp_id",
        "_chem_comp_atom.atom_id",
        "_chem_comp_atom.type_symbol",
        "_chem_comp_atom.type_energy",
        "_chem_comp_atom.charge",
    ]
    lines += [f"{name} {atom} {el} {el} 0" for atom, el in atoms]
    if len(atoms) > 1:
        lines += [
            "loop_",
            "_chem_comp_bond.comp_id",
            "_chem_comp_bond.atom_id_1",
            "_chem_comp_bond.atom_id_2",
            "_chem_comp_bond.type",
            "_chem_comp_bond.aromatic",
            "_chem_comp_bond.value_dist",
            "_chem_comp_bond.value_dist_esd",
        ]
        lines += [
            f"{name} {a[0]} {b[0]} single n 1.500 0.020"
            for a, b in zip(atoms, atoms[1:])
        ]
    if len(atoms) > 2:
        lines += [
            "loop_",
            "_chem_comp_angle.comp_id",
            "_chem_comp_angle.atom_id_1",
            "_chem_comp_angle.atom_id_2",
            "_chem_comp_angle.atom_id_3",
            "_chem_comp_angle.value_angle",
            "_chem_comp_angle.value_angle_esd",
        ]
        lines += [
            f"{name} {a[0]} {b[0]} {c[0]} 109.5 3.0"
            for a, b, c in zip(atoms, atoms[1:], atoms[2:])
        ]
    return "\n".join(lines) + "\n"


ALA_ATOMS = [("N", "N"), ("CA", "C"), ("C", "C"), ("O", "O"), ("CB", "C")]
CYS_ATOMS = [("N", "N"), ("CA", "C"), ("C", "C"), ("O", "O"), ("CB", "C"), ("SG", "S")]
LIG_ATOMS = [("C1", "C"), ("C2", "C"), ("O3", "O")]


@pytest.fixture
def write_library(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a user library file with the given monomers."""

    def _write(filename: str, monomers: dict[str, Sequence[tuple[str, str]]]) -> Path:
        path = tmp_path / filename
        path.write_text("".join(monomer_block(n, a) for n, a in monomers.items()))
        return path

    return _write


@pytest.fixture
def monomer_dir(tmp_path: Path) -> Path:
    """A tiny installed monomer library with ALA, CYS and CON."""
    root = tmp_path / "monomers"
    for name, atoms, filename in [
        ("ALA", ALA_ATOMS, "a/ALA.cif"),
        ("CYS", CYS_ATOMS, "c/CYS.cif"),
        ("CON", LIG_ATOMS, "c/CON_CON.cif"),
    ]:
        path = root / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(monomer_block(name, atoms))
    return root


@pytest.fixture
def ala_xyz_atoms() -> list[AtomSpec]:
    """Two alanines and an unknown ligand XYZ."""
    return [
        ("A", "ALA", 1, "N", "N", 0.000, 0.000, 0.000),
        ("A", "ALA", 1, "CA", "C", 1.458, 0.000, 0.000),
        ("A", "ALA", 1, "C", "C", 2.009, 1.420, 0.000),
        ("A", "ALA", 1, "O", "O", 1.251, 2.390, 0.000),
        ("A", "ALA", 1, "CB", "C", 1.988, -0.773, -1.199),
        ("A", "ALA", 2, "N", "N", 3.332, 1.536, 0.000),
        ("A", "ALA", 2, "CA", "C", 3.970, 2.846, 0.000),
        ("A", "ALA", 2, "C", "C", 5.486, 2.705, 0.000),
        ("A", "ALA", 2, "O", "O", 6.009, 1.593, 0.000),
        ("A", "ALA", 2, "CB", "C", 3.530, 3.648, -1.215),
        ("B", "XYZ", 1, "C1", "C", 20.000, 20.000, 20.000),
        ("B", "XYZ", 1, "C2", "C", 21.520, 20.000, 20.000),
        ("B", "XYZ", 1, "O3", "O", 22.100, 21.300, 20.000),
    ]


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo handlers and levels installed by the command-line entry points."""
    yield
    logger = logging.getLogger("prep_restraints")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
