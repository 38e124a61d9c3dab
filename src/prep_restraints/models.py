"""Data models for prep_restraints."""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import gemmi


@dataclass(frozen=True)
class AtomAddress:
    """Address of one atom: chain, residue and atom name (plus altloc)."""

    chain: str
    seqnum: int
    icode: str
    resname: str
    atom: str
    altloc: str = ""

    def key(self) -> tuple[str, int, str, str, str, str]:
        """Upper-cased tuple used for case-insensitive comparisons."""
        return (
            self.chain.upper(),
            self.seqnum,
            self.icode.strip().upper(),
            self.resname.upper(),
            self.atom.upper(),
            self.altloc.upper(),
        )

    def __str__(self) -> str:
        seqid = f"{self.seqnum}{self.icode.strip()}"
        alt = f".{self.altloc}" if self.altloc else ""
        return f"{self.chain}/{self.resname} {seqid}/{self.atom}{alt}"


@dataclass(frozen=True)
class AtomSite:
    """One atom of a neighbor pair, with its position in the model."""

    address: AtomAddress
    element: str
    covalent_radius: float
    chain_index: int
    residue_index: int


@dataclass(frozen=True)
class NeighborPair:
    """Two atoms closer than the search radius (transient)."""

    site1: AtomSite
    site2: AtomSite
    image_index: int
    dist_sq: float
    pbc_shift: tuple[int, int, int] = (0, 0, 0)

    @property
    def same_asu(self) -> bool:
        return self.image_index == 0 and self.pbc_shift == (0, 0, 0)

    @property
    def distance(self) -> float:
        return math.sqrt(self.dist_sq)


@dataclass(frozen=True)
class Connection:
    """A recorded bond between two atoms."""

    name: str
    partner1: AtomAddress
    partner2: AtomAddress
    asu_same: bool
    distance: float
    conn_type: str = "covale"

    def key(self) -> frozenset:
        """Unordered pair of address keys."""
        return frozenset((self.partner1.key(), self.partner2.key()))


@dataclass(frozen=True)
class MonomerDefinition:
    """Geometric template of one residue type."""

    name: str
    atom_names: tuple[str, ...]
    bonds: tuple[tuple[str, str], ...]
    angles: tuple[tuple[str, str, str], ...]
    source: str
    adhoc: bool = False
    chemcomp: gemmi.ChemComp | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_chemcomp(
        cls, cc: gemmi.ChemComp, source: str, adhoc: bool = False
    ) -> MonomerDefinition:
        """Summarize a gemmi ChemComp, keeping the object for topology."""
        return cls(
            name=cc.name,
            atom_names=tuple(atom.id for atom in cc.atoms),
            bonds=tuple((b.id1.atom, b.id2.atom) for b in cc.rt.bonds),
            angles=tuple((a.id1.atom, a.id2.atom, a.id3.atom) for a in cc.rt.angles),
            source=source,
            adhoc=adhoc,
            chemcomp=cc,
        )


@dataclass(frozen=True)
class MonomerSet:
    """Resolved monomer definitions, at most one per name.

    The set is a value: ``extend`` returns a new set and never replaces a
    definition that is already present.
    """

    definitions: dict[str, MonomerDefinition] = field(default_factory=dict)

    def extend(self, definitions: Iterable[MonomerDefinition]) -> MonomerSet:
        merged = dict(self.definitions)
        for definition in definitions:
            merged.setdefault(definition.name, definition)
        return MonomerSet(merged)

    def missing(self, names: Iterable[str]) -> list[str]:
        """Names not defined yet, in input order, each once."""
        result: list[str] = []
        for name in names:
            if name not in self.definitions and name not in result:
                result.append(name)
        return result

    @property
    def names(self) -> list[str]:
        return list(self.definitions)

    @property
    def adhoc_names(self) -> list[str]:
        return [name for name, d in self.definitions.items() if d.adhoc]

    def __contains__(self, name: object) -> bool:
        return name in self.definitions

    def __getitem__(self, name: str) -> MonomerDefinition:
        return self.definitions[name]

    def __iter__(self) -> Iterator[MonomerDefinition]:
        return iter(self.definitions.values())

    def __len__(self) -> int:
        return len(self.definitions)


@dataclass
class LibraryRead:
    """Definitions read from one library source."""

    source: str
    definitions: list[MonomerDefinition] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class ResolutionResult:
    """Result of resolving residue names against library sources."""

    monomers: MonomerSet
    unmet: list[str]
    warnings: list[str] = field(default_factory=list)
    sources_read: list[str] = field(default_factory=list)


@dataclass
class SynthesisResult:
    """Result of ad-hoc restraint synthesis."""

    monomers: MonomerSet
    synthesized: list[str]
    still_unmet: list[str]
    warnings: list[str] = field(default_factory=list)


class FailureKind(enum.Enum):
    CONFIG = "config"
    EMPTY_MODEL = "empty-model"
    MISSING_MONOMERS = "missing-monomers"
    NO_TEMPLATE = "no-template"
    READ_ERROR = "read-error"


@dataclass
class Failure:
    """A named failure of one preparation step."""

    kind: FailureKind
    message: str
    names: list[str] = field(default_factory=list)


@dataclass
class PreparedModel:
    """Model with resolved monomers and completed connections."""

    structure: Any
    monomers: MonomerSet
    new_connections: list[Connection] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def fatal(self) -> Failure | None:
        """First failure that stopped the run before completion, if any."""
        for failure in self.failures:
            if failure.kind is not FailureKind.NO_TEMPLATE:
                return failure
        return None


@dataclass
class SurveyEntry:
    """Survey of one structure file."""

    name: str
    file_path: str
    unmet: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class ScanResult:
    """Result of surveying multiple files."""

    scan_date: str
    total_scanned: int
    affected_entries: int
    entries: list[SurveyEntry]


@dataclass
class LoadedStructure:
    """Coordinates read from a file, with the mmCIF document when there is one."""

    path: str
    structure: Any = None
    document: Any = None
    error: str | None = None
