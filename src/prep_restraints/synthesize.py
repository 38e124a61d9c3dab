"""Ad-hoc monomer definitions derived from the model itself."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import gemmi

from prep_restraints.models import MonomerDefinition, MonomerSet, SynthesisResult

logger = logging.getLogger(__name__)

ADHOC_WARNING = (
    "Using ad-hoc restraints for missing monomers.\n"
    "Restraints generated by a dedicated program would be better."
)


def find_most_complete_residue(
    name: str, model: gemmi.Model
) -> tuple[gemmi.Chain, gemmi.Residue] | None:
    """Find the residue with the most atoms among those called ``name``.

    Ties go to the residue met first when walking chains and residues.

    Returns:
        (chain, residue) or None if the model has no such residue.
    """
    best: tuple[gemmi.Chain, gemmi.Residue] | None = None
    for chain in model:
        for residue in chain:
            if residue.name != name:
                continue
            if best is None or len(residue) > len(best[1]):
                best = (chain, residue)
    return best


def synthesize_monomers(
    unmet: Sequence[str],
    model: gemmi.Model,
    monomers: MonomerSet,
    make_chemcomp: Callable[[gemmi.Residue], gemmi.ChemComp] | None = None,
) -> SynthesisResult:
    """Derive definitions for unmet names from observed coordinates.

    Args:
        unmet: Residue names without a library definition.
        model: Model providing the template residues.
        monomers: Already resolved definitions (kept unchanged).
        make_chemcomp: Geometry inference; defaults to
            gemmi.make_chemcomp_with_restraints.

    Returns:
        SynthesisResult; names with no template residue are in still_unmet.
    """
    if make_chemcomp is None:
        make_chemcomp = gemmi.make_chemcomp_with_restraints

    synthesized: list[MonomerDefinition] = []
    still_unmet: list[str] = []
    warnings: list[str] = []

    for name in unmet:
        if name in monomers:
            continue
        found = find_most_complete_residue(name, model)
        if found is None:
            message = f"No residue {name} in the model to derive restraints from."
            logger.error(message)
            warnings.append(message)
            still_unmet.append(name)
            continue
        chain, residue = found
        logger.debug(
            "Template for %s: chain %s residue %s (%d atoms)",
            name, chain.name, residue.seqid, len(residue),
        )
        cc = make_chemcomp(residue)
        source = f"ad-hoc:{chain.name}/{residue.seqid}"
        synthesized.append(MonomerDefinition.from_chemcomp(cc, source, adhoc=True))

    if synthesized:
        for line in ADHOC_WARNING.splitlines():
            logger.warning(line)
        warnings.append(ADHOC_WARNING)

    return SynthesisResult(
        monomers=monomers.extend(synthesized),
        synthesized=[d.name for d in synthesized],
        still_unmet=still_unmet,
        warnings=warnings,
    )
