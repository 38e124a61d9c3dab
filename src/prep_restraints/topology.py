"""Topology preparation and Refmac crd output (delegated to gemmi)."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

import gemmi
from gemmi import cif

from prep_restraints.models import MonomerSet, PreparedModel

logger = logging.getLogger(__name__)


class _LogWriter:
    """File-like object passing gemmi's warnings to logging."""

    def write(self, text: str) -> None:
        for line in text.splitlines():
            if line.strip():
                logger.warning(line)

    def flush(self) -> None:
        pass


def hydrogen_change(
    no_hydrogens: bool = False, keep_hydrogens: bool = False
) -> gemmi.HydrogenChange:
    """Map the hydrogen switches to gemmi.HydrogenChange.

    Raises:
        ValueError: If both switches are set.
    """
    if no_hydrogens and keep_hydrogens:
        raise ValueError("Options --no-hydrogens and --keep-hydrogens are exclusive")
    if no_hydrogens:
        return gemmi.HydrogenChange.Remove
    if keep_hydrogens:
        return gemmi.HydrogenChange.NoChange
    return gemmi.HydrogenChange.ReAddButWater


def build_monlib(
    monomers: MonomerSet,
    monomer_dir: str | Path | None = None,
    link_documents: Iterable[cif.Document] = (),
) -> gemmi.MonLib:
    """Create a MonLib holding exactly the resolved monomer definitions.

    Links and modifications come from the installed library lists and from
    the user's library documents.
    """
    monlib = gemmi.MonLib()
    if monomer_dir is not None and (Path(monomer_dir) / "list/mon_lib_list.cif").exists():
        monlib.read_monomer_lib(str(monomer_dir), [])
    for doc in link_documents:
        monlib.read_monomer_doc(doc)
    # resolved definitions win over anything read with the documents above
    for definition in monomers:
        monlib.monomers[definition.name] = definition.chemcomp
    return monlib


def _write_atomically(doc: cif.Document, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=output.parent, suffix=".cif.tmp")
    os.close(fd)
    tmp_path = Path(tmp_name)
    gz_path = tmp_path.with_name(tmp_path.name + ".gz")
    try:
        doc.write_file(tmp_name)
        if output.name.endswith(".gz"):
            with open(tmp_path, "rb") as f_in, gzip.open(gz_path, "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)
            os.replace(gz_path, output)
        else:
            os.replace(tmp_path, output)
    finally:
        for path in (tmp_path, gz_path):
            if path.exists():
                path.unlink()


def write_refmac_crd(
    prepared: PreparedModel,
    monlib: gemmi.MonLib,
    output: str | Path,
    h_change: gemmi.HydrogenChange,
    auto_cis: bool = True,
) -> None:
    """Prepare topology and restraints and write the crd file.

    The file appears only when everything succeeded.

    Raises:
        RuntimeError: From gemmi, if the topology cannot be prepared.
        OSError: If the output cannot be written.
    """
    st = prepared.structure
    logger.debug("Preparing topology, hydrogens, restraints ...")
    topo = gemmi.prepare_topology(
        st,
        monlib,
        model_index=0,
        h_change=h_change,
        reorder=True,
        warnings=_LogWriter(),
        ignore_unknown_links=False,
        use_cispeps=not auto_cis,
    )
    logger.debug("Preparing data for Refmac ...")
    crd = gemmi.prepare_refmac_crd(st, topo, monlib, h_change)
    logger.debug("Writing %s", output)
    _write_atomically(crd, Path(output))
