"""Tests for resolve_and_prepare."""

from pathlib import Path

import gemmi
import pytest

from prep_restraints.models import FailureKind
from prep_restraints.prepare import PrepOptions, check_options, resolve_and_prepare

from conftest import LIG_ATOMS

DISULFIDE = [
    ("A", "CYS", 3, "CB", "C", -1.800, 0.000, 0.000),
    ("A", "CYS", 3, "SG", "S", 0.000, 0.000, 0.000),
    ("B", "CYS", 7, "SG", "S", 2.040, 0.000, 0.000),
    ("B", "CYS", 7, "CB", "C", 3.840, 0.000, 0.000),
]


class TestCheckOptions:
    """Tests for configuration checks."""

    def test_no_monomer_dir(self) -> None:
        failure = check_options(PrepOptions())
        assert failure.kind is FailureKind.CONFIG
        assert "CLIBD_MON" in failure.message

    def test_not_a_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "file.txt"
        path.write_text("x")
        failure = check_options(PrepOptions(monomer_dir=path))
        assert failure.kind is FailureKind.CONFIG
        assert "Not a directory" in failure.message

    def test_cutoff_above_radius(self, monomer_dir: Path) -> None:
        failure = check_options(
            PrepOptions(monomer_dir=monomer_dir, search_radius=3.0, contact_cutoff=4.0)
        )
        assert failure.kind is FailureKind.CONFIG

    def test_usable(self, monomer_dir: Path) -> None:
        assert check_options(PrepOptions(monomer_dir=monomer_dir)) is None


class TestResolveAndPrepare:
    """Tests for the whole preparation pipeline."""

    def test_config_failure(self, make_structure, ala_xyz_atoms) -> None:
        prepared = resolve_and_prepare(make_structure(ala_xyz_atoms), PrepOptions())

        assert not prepared.success
        assert prepared.fatal.kind is FailureKind.CONFIG
        assert len(prepared.monomers) == 0

    def test_empty_model(self, monomer_dir: Path) -> None:
        prepared = resolve_and_prepare(gemmi.Structure(), PrepOptions(monomer_dir=monomer_dir))

        assert prepared.fatal.kind is FailureKind.EMPTY_MODEL
        assert prepared.fatal.message == "No atoms found in the input file."

    def test_missing_monomers_without_adhoc(
        self, make_structure, ala_xyz_atoms, monomer_dir: Path
    ) -> None:
        prepared = resolve_and_prepare(
            make_structure(ala_xyz_atoms), PrepOptions(monomer_dir=monomer_dir)
        )

        assert prepared.fatal.kind is FailureKind.MISSING_MONOMERS
        assert prepared.fatal.names == ["XYZ"]
        assert "XYZ" in prepared.fatal.message
        assert prepared.monomers.names == ["ALA"]

    def test_adhoc_fills_the_gap(
        self, make_structure, ala_xyz_atoms, monomer_dir: Path
    ) -> None:
        options = PrepOptions(monomer_dir=monomer_dir, allow_adhoc=True)
        prepared = resolve_and_prepare(make_structure(ala_xyz_atoms), options)

        assert prepared.success
        assert prepared.monomers.names == ["ALA", "XYZ"]
        assert prepared.monomers["ALA"].adhoc is False
        assert prepared.monomers["ALA"].source.endswith("ALA.cif")
        assert prepared.monomers.adhoc_names == ["XYZ"]
        assert prepared.monomers["XYZ"].source == "ad-hoc:B/1"
        assert any("ad-hoc" in w for w in prepared.warnings)

    def test_user_library_preferred_to_adhoc(
        self, make_structure, ala_xyz_atoms, monomer_dir: Path, write_library
    ) -> None:
        lib = write_library("xyz.cif", {"XYZ": LIG_ATOMS})
        options = PrepOptions(
            monomer_dir=monomer_dir, fallback_libs=[str(lib)], allow_adhoc=True
        )
        prepared = resolve_and_prepare(make_structure(ala_xyz_atoms), options)

        assert prepared.success
        assert prepared.monomers.adhoc_names == []
        assert prepared.monomers["XYZ"].source == str(lib)
        assert not any("ad-hoc" in w for w in prepared.warnings)

    def test_library_definitions_kept_after_synthesis(
        self, make_structure, ala_xyz_atoms, monomer_dir: Path
    ) -> None:
        st = make_structure(ala_xyz_atoms)
        strict = resolve_and_prepare(st, PrepOptions(monomer_dir=monomer_dir))
        relaxed = resolve_and_prepare(
            st, PrepOptions(monomer_dir=monomer_dir, allow_adhoc=True)
        )

        assert set(strict.monomers.names) <= set(relaxed.monomers.names)
        assert relaxed.monomers["ALA"] == strict.monomers["ALA"]

    def test_auto_link_extends_connections(self, make_structure, monomer_dir: Path) -> None:
        st = make_structure(DISULFIDE)
        prepared = resolve_and_prepare(
            st, PrepOptions(monomer_dir=monomer_dir, auto_link=True)
        )

        assert prepared.success
        assert [c.name for c in prepared.new_connections] == ["added1"]
        assert len(st.connections) == 1
        assert st.connections[0].partner2.atom_name == "SG"

    def test_no_links_without_auto_link(self, make_structure, monomer_dir: Path) -> None:
        st = make_structure(DISULFIDE)
        prepared = resolve_and_prepare(st, PrepOptions(monomer_dir=monomer_dir))

        assert prepared.new_connections == []
        assert len(st.connections) == 0

    @pytest.mark.parametrize("auto_link", [False, True])
    def test_missing_monomers_stop_before_links(
        self, make_structure, monomer_dir: Path, auto_link: bool
    ) -> None:
        st = make_structure(DISULFIDE + [("C", "XYZ", 1, "C1", "C", 0.0, 1.6, 0.0)])
        prepared = resolve_and_prepare(
            st, PrepOptions(monomer_dir=monomer_dir, auto_link=auto_link)
        )

        assert prepared.fatal.kind is FailureKind.MISSING_MONOMERS
        assert len(st.connections) == 0
