"""Prepare macromolecular models for restrained refinement.

This package makes sure every residue of a model has a monomer definition
(from user libraries, the installed monomer library, or derived ad hoc from
the model) and finds covalent links missing from the model's connections.
"""

from prep_restraints.links import NeighborIndex, detect_links, filter_contacts
from prep_restraints.models import (
    AtomAddress,
    Connection,
    Failure,
    FailureKind,
    MonomerDefinition,
    MonomerSet,
    NeighborPair,
    PreparedModel,
    ScanResult,
    SurveyEntry,
)
from prep_restraints.prepare import PrepOptions, resolve_and_prepare
from prep_restraints.resolve import resolve_monomers
from prep_restraints.scan import scan_structures, survey_structure
from prep_restraints.synthesize import synthesize_monomers

__all__ = [
    "detect_links",
    "filter_contacts",
    "resolve_and_prepare",
    "resolve_monomers",
    "scan_structures",
    "survey_structure",
    "synthesize_monomers",
    "NeighborIndex",
    "PrepOptions",
    "AtomAddress",
    "Connection",
    "Failure",
    "FailureKind",
    "MonomerDefinition",
    "MonomerSet",
    "NeighborPair",
    "PreparedModel",
    "ScanResult",
    "SurveyEntry",
]
