"""Detection of covalent links missing from the model's connection list."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import gemmi

from prep_restraints.models import AtomAddress, AtomSite, Connection, NeighborPair

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_RADIUS = 5.0
DEFAULT_CONTACT_CUTOFF = 3.5

# Added to the sum of covalent radii, in Angstroms
LINK_TOLERANCE = 0.5


def _altloc(value: str) -> str:
    return "" if value in ("\0", " ") else value


def address_of(cra: gemmi.CRA) -> AtomAddress:
    """Address of the atom pointed to by a gemmi CRA."""
    return AtomAddress(
        chain=cra.chain.name,
        seqnum=cra.residue.seqid.num,
        icode=cra.residue.seqid.icode.strip(),
        resname=cra.residue.name,
        atom=cra.atom.name,
        altloc=_altloc(cra.atom.altloc),
    )


def _residue_key(chain_name: str, residue: gemmi.Residue) -> tuple[str, int, str, str]:
    return (chain_name, residue.seqid.num, residue.seqid.icode, residue.name)


class NeighborIndex:
    """Spatial index of a model's atoms, symmetry images included."""

    def __init__(
        self,
        model: gemmi.Model,
        cell: gemmi.UnitCell,
        ns: gemmi.NeighborSearch,
        radius: float,
    ):
        self.model = model
        self.cell = cell
        self.ns = ns
        self.radius = radius
        self._positions: dict[tuple[str, int, str, str], tuple[int, int]] = {}
        for chain_index, chain in enumerate(model):
            for residue_index, residue in enumerate(chain):
                key = _residue_key(chain.name, residue)
                self._positions.setdefault(key, (chain_index, residue_index))

    @classmethod
    def build(
        cls, model: gemmi.Model, cell: gemmi.UnitCell, radius: float = DEFAULT_SEARCH_RADIUS
    ) -> NeighborIndex:
        ns = gemmi.NeighborSearch(model, cell, radius).populate()
        return cls(model, cell, ns, radius)

    def _pbc_shift(self, r: gemmi.ContactSearch.Result) -> tuple[int, int, int]:
        # image_idx is the symmetry operation; a lattice translation of the
        # identity also has image_idx 0
        if not self.cell.is_crystal():
            return (0, 0, 0)
        im = self.cell.find_nearest_pbc_image(
            r.partner1.atom.pos, r.partner2.atom.pos, r.image_idx
        )
        return tuple(im.pbc_shift)

    def _site(self, cra: gemmi.CRA) -> AtomSite:
        chain_index, residue_index = self._positions[_residue_key(cra.chain.name, cra.residue)]
        return AtomSite(
            address=address_of(cra),
            element=cra.atom.element.name,
            covalent_radius=cra.atom.element.covalent_r,
            chain_index=chain_index,
            residue_index=residue_index,
        )

    def query(self, cutoff: float | None = None) -> Iterator[NeighborPair]:
        """Yield atom pairs within ``cutoff``.

        An unordered pair is reported at most twice: once within the same
        copy and once for the closest of its symmetry images. Pairs come in
        the order gemmi finds them.
        """
        if cutoff is None:
            cutoff = self.radius
        cs = gemmi.ContactSearch(cutoff)
        cs.ignore = gemmi.ContactSearch.Ignore.Nothing

        closest: dict[tuple[frozenset, bool], NeighborPair] = {}
        for r in cs.find_contacts(self.ns):
            pair = NeighborPair(
                site1=self._site(r.partner1),
                site2=self._site(r.partner2),
                image_index=r.image_idx,
                dist_sq=r.dist * r.dist,
                pbc_shift=self._pbc_shift(r),
            )
            key = (
                frozenset((pair.site1.address.key(), pair.site2.address.key())),
                pair.same_asu,
            )
            known = closest.get(key)
            if known is None or pair.dist_sq < known.dist_sq:
                closest[key] = pair
        yield from closest.values()


def is_adjacent(pair: NeighborPair) -> bool:
    """True for atoms of the same or sequentially neighboring residues of a chain.

    Only pairs within the same copy qualify; a residue meeting a symmetry
    image of itself or of its neighbor is not adjacent.
    """
    s1, s2 = pair.site1, pair.site2
    return (
        pair.same_asu
        and s1.chain_index == s2.chain_index
        and abs(s1.residue_index - s2.residue_index) <= 1
    )


def covalent_threshold_sq(site1: AtomSite, site2: AtomSite) -> float:
    """Squared maximum distance of a plausible covalent bond."""
    return (site1.covalent_radius + site2.covalent_radius + LINK_TOLERANCE) ** 2


def filter_contacts(
    pairs: Iterable[NeighborPair],
    existing: Iterable[Connection] = (),
    bond_radius: float = DEFAULT_CONTACT_CUTOFF,
) -> Iterator[NeighborPair]:
    """Keep the pairs that look like covalent bonds not recorded yet.

    Comparisons are done on squared distances, so a pair exactly at the
    covalent threshold is accepted.
    """
    known = {conn.key() for conn in existing}
    max_sq = bond_radius * bond_radius
    for pair in pairs:
        if pair.dist_sq > max_sq:
            continue
        if is_adjacent(pair):
            continue
        key = frozenset((pair.site1.address.key(), pair.site2.address.key()))
        if key in known:
            continue
        if pair.dist_sq > covalent_threshold_sq(pair.site1, pair.site2):
            continue
        known.add(key)
        yield pair


def existing_connections(st: gemmi.Structure) -> list[Connection]:
    """Connections of the structure (LINK/SSBOND or _struct_conn) as dataclasses."""
    result: list[Connection] = []
    for con in st.connections:
        result.append(
            Connection(
                name=con.name,
                partner1=_from_gemmi_address(con.partner1),
                partner2=_from_gemmi_address(con.partner2),
                asu_same=con.asu != gemmi.Asu.Different,
                distance=con.reported_distance,
                conn_type=con.type.name.lower(),
            )
        )
    return result


def _from_gemmi_address(addr: gemmi.AtomAddress) -> AtomAddress:
    return AtomAddress(
        chain=addr.chain_name,
        seqnum=addr.res_id.seqid.num,
        icode=addr.res_id.seqid.icode.strip(),
        resname=addr.res_id.name,
        atom=addr.atom_name,
        altloc=_altloc(addr.altloc),
    )


def _to_gemmi_address(addr: AtomAddress) -> gemmi.AtomAddress:
    return gemmi.AtomAddress(
        addr.chain,
        gemmi.SeqId(addr.seqnum, addr.icode or " "),
        addr.resname,
        addr.atom,
        addr.altloc or "\0",
    )


def _link_names(used: set[str]) -> Iterator[str]:
    counter = 0
    while True:
        counter += 1
        name = f"added{counter}"
        if name not in used:
            yield name


def detect_links(
    model: gemmi.Model,
    st: gemmi.Structure,
    existing: Iterable[Connection] | None = None,
    radius: float = DEFAULT_SEARCH_RADIUS,
    bond_radius: float = DEFAULT_CONTACT_CUTOFF,
) -> list[Connection]:
    """Find covalent links not present in the existing connections.

    Args:
        model: Model to search (normally the first one).
        st: Structure providing the unit cell and, by default, the
            existing connections.
        existing: Connections already known; defaults to st.connections.
        radius: Radius of the neighbor index.
        bond_radius: Maximum distance of a contact to be considered.

    Returns:
        New connections in discovery order. The structure is not modified.
    """
    if existing is None:
        existing = existing_connections(st)
    existing = list(existing)
    names = _link_names({conn.name for conn in existing})

    index = NeighborIndex.build(model, st.cell, radius)
    new_connections: list[Connection] = []
    for pair in filter_contacts(index.query(bond_radius), existing, bond_radius):
        conn = Connection(
            name=next(names),
            partner1=pair.site1.address,
            partner2=pair.site2.address,
            asu_same=pair.same_asu,
            distance=pair.distance,
        )
        logger.info(
            "Added link %s - %s (%.2f)", conn.partner1, conn.partner2, conn.distance
        )
        new_connections.append(conn)
    return new_connections


def apply_connections(st: gemmi.Structure, connections: Iterable[Connection]) -> int:
    """Append connections to the structure. Returns the number appended."""
    count = 0
    for conn in connections:
        con = gemmi.Connection()
        con.name = conn.name
        con.type = gemmi.ConnectionType.Covale
        con.asu = gemmi.Asu.Same if conn.asu_same else gemmi.Asu.Different
        con.partner1 = _to_gemmi_address(conn.partner1)
        con.partner2 = _to_gemmi_address(conn.partner2)
        con.reported_distance = conn.distance
        st.connections.append(con)
        count += 1
    return count
