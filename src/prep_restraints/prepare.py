"""Preparation of a model: monomer resolution, ad-hoc synthesis, automatic links."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import gemmi
from gemmi import cif

from prep_restraints.core import first_model, has_atoms, residue_names
from prep_restraints.links import (
    DEFAULT_CONTACT_CUTOFF,
    DEFAULT_SEARCH_RADIUS,
    apply_connections,
    detect_links,
)
from prep_restraints.models import Failure, FailureKind, MonomerSet, PreparedModel
from prep_restraints.resolve import resolve_monomers
from prep_restraints.synthesize import synthesize_monomers

logger = logging.getLogger(__name__)


@dataclass
class PrepOptions:
    """Options of one preparation run."""

    monomer_dir: Path | None = None
    override_libs: list[str] = field(default_factory=list)
    fallback_libs: list[str] = field(default_factory=list)
    allow_adhoc: bool = False
    auto_link: bool = False
    search_radius: float = DEFAULT_SEARCH_RADIUS
    contact_cutoff: float = DEFAULT_CONTACT_CUTOFF


def check_options(options: PrepOptions) -> Failure | None:
    """Return a configuration failure, or None if the options are usable."""
    if options.monomer_dir is None:
        return Failure(
            FailureKind.CONFIG, "Set $CLIBD_MON or use option --monomers."
        )
    if not Path(options.monomer_dir).is_dir():
        return Failure(
            FailureKind.CONFIG, f"Not a directory: {options.monomer_dir}"
        )
    if options.contact_cutoff > options.search_radius:
        return Failure(
            FailureKind.CONFIG,
            f"Contact cutoff {options.contact_cutoff} exceeds search radius "
            f"{options.search_radius}",
        )
    return None


def resolve_and_prepare(
    st: gemmi.Structure,
    options: PrepOptions,
    document: cif.Document | None = None,
) -> PreparedModel:
    """Make the first model ready for topology preparation.

    Only the first model is processed. Its connection list is extended in
    place with automatically detected links when ``options.auto_link`` is set.

    Args:
        st: Structure to prepare.
        options: Library locations and switches.
        document: mmCIF document of the input, for the ``+`` library.

    Returns:
        PreparedModel; failures are recorded in it, not raised.
    """
    prepared = PreparedModel(structure=st, monomers=MonomerSet())

    failure = check_options(options)
    if failure is not None:
        prepared.failures.append(failure)
        return prepared

    model = first_model(st)
    if not has_atoms(model):
        prepared.failures.append(
            Failure(FailureKind.EMPTY_MODEL, "No atoms found in the input file.")
        )
        return prepared

    resolution = resolve_monomers(
        residue_names(model),
        options.override_libs,
        options.monomer_dir,
        options.fallback_libs,
        document=document,
    )
    prepared.monomers = resolution.monomers
    prepared.warnings.extend(resolution.warnings)

    if resolution.unmet:
        if not options.allow_adhoc:
            prepared.failures.append(
                Failure(
                    FailureKind.MISSING_MONOMERS,
                    "Missing monomer definitions: " + " ".join(resolution.unmet),
                    names=list(resolution.unmet),
                )
            )
            return prepared
        synthesis = synthesize_monomers(resolution.unmet, model, prepared.monomers)
        prepared.monomers = synthesis.monomers
        prepared.warnings.extend(synthesis.warnings)
        for name in synthesis.still_unmet:
            prepared.failures.append(
                Failure(
                    FailureKind.NO_TEMPLATE,
                    f"Cannot derive restraints for {name}: no such residue in the model",
                    names=[name],
                )
            )

    if options.auto_link:
        new_connections = detect_links(
            model,
            st,
            radius=options.search_radius,
            bond_radius=options.contact_cutoff,
        )
        apply_connections(st, new_connections)
        prepared.new_connections = new_connections

    return prepared
