"""RelationGraph: arena of notation nodes linked by typed, directed relations."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TypeVar

from beamgroup.graph_models import Beam, Chord, Head, Node, Relation, RelationKind, Staff, Stem

logger = logging.getLogger(__name__)

N = TypeVar("N", Staff, Head, Stem, Beam, Chord)


class RelationGraph:
    """
    In-memory graph of notation nodes (beams, chords, stems, heads, staves).

    Nodes are addressed by stable integer ids allocated by the graph. Entities
    refer to each other through these ids only, never through object
    references, so the cyclic beam/chord/group structure is resolved through
    this arena.

    Relations are directed edges carrying a ``RelationKind``. Lookups that do
    not care about direction (``relation``) check both orientations.

    Any node may additionally be flagged as VIP, which makes the components
    working on it log their actions at INFO level.
    """

    def __init__(self) -> None:
        self._nodes: dict[int, Node] = {}
        self._relations: dict[int, Relation] = {}
        self._incident: dict[int, set[int]] = defaultdict(set)
        self._vip: set[int] = set()
        self._next_node_id = 1
        self._next_relation_id = 1

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node: N) -> N:
        """
        Insert a node, allocating its id unless one is already set.

        Raises:
            ValueError: If the node carries an id already used by another node.
        """
        if node.id:
            if node.id in self._nodes and self._nodes[node.id] is not node:
                raise ValueError(f"Node id {node.id} is already in use.")
            self._next_node_id = max(self._next_node_id, node.id + 1)
        else:
            node.id = self._next_node_id
            self._next_node_id += 1

        self._nodes[node.id] = node
        return node

    def node(self, node_id: int) -> Node:
        """Return the node with the given id."""
        return self._nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def nodes(self, node_type: type[N]) -> list[N]:
        """Return all nodes of the given type, ordered by id."""
        return [
            node for _, node in sorted(self._nodes.items())
            if isinstance(node, node_type)
        ]

    def beam(self, node_id: int) -> Beam:
        return self._typed(node_id, Beam)

    def chord(self, node_id: int) -> Chord:
        return self._typed(node_id, Chord)

    def stem(self, node_id: int) -> Stem:
        return self._typed(node_id, Stem)

    def head(self, node_id: int) -> Head:
        return self._typed(node_id, Head)

    def staff(self, node_id: int) -> Staff:
        return self._typed(node_id, Staff)

    def _typed(self, node_id: int, node_type: type[N]) -> N:
        node = self._nodes[node_id]
        if not isinstance(node, node_type):
            raise KeyError(f"Node {node_id} is a {type(node).__name__}, not a {node_type.__name__}")
        return node

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def add_edge(self, source: int, target: int, relation: Relation) -> Relation:
        """
        Insert ``relation`` as an edge from ``source`` to ``target``.

        The relation object is reused as is, so a relation removed from one
        pair of nodes can be re-inserted between another pair.
        """
        for node_id in (source, target):
            if node_id not in self._nodes:
                raise KeyError(f"Unknown node {node_id}")

        if relation.id and relation.id in self._relations:
            raise ValueError(f"Relation {relation.id} is already inserted.")

        relation.source = source
        relation.target = target
        if relation.id:
            self._next_relation_id = max(self._next_relation_id, relation.id + 1)
        else:
            relation.id = self._next_relation_id
            self._next_relation_id += 1

        self._relations[relation.id] = relation
        self._incident[source].add(relation.id)
        self._incident[target].add(relation.id)
        return relation

    def remove_edge(self, relation: Relation) -> None:
        """Remove an edge, keeping the relation object reusable."""
        if self._relations.pop(relation.id, None) is None:
            logger.warning("relation_not_found relation=%s", relation)
            return

        for node_id in (relation.source, relation.target):
            if node_id is not None:
                self._incident[node_id].discard(relation.id)

        relation.source = None
        relation.target = None
        relation.id = 0

    def relations(self, node_id: int, kind: RelationKind | None = None) -> list[Relation]:
        """Return the relations touching a node, optionally of one kind, in creation order."""
        found = [self._relations[rid] for rid in sorted(self._incident.get(node_id, ()))]
        if kind is None:
            return found
        return [rel for rel in found if rel.kind is kind]

    def all_relations(self) -> list[Relation]:
        """Return every relation of the graph, in creation order."""
        return [rel for _, rel in sorted(self._relations.items())]

    def relation(self, a: int, b: int, kind: RelationKind) -> Relation | None:
        """Return the first relation of ``kind`` between ``a`` and ``b``, in either direction."""
        for rel in self.relations(a, kind):
            if {rel.source, rel.target} == {a, b}:
                return rel
        return None

    def opposite(self, node_id: int, relation: Relation) -> int:
        """Return the id of the node at the other end of ``relation``."""
        if relation.source == node_id and relation.target is not None:
            return relation.target
        if relation.target == node_id and relation.source is not None:
            return relation.source
        raise KeyError(f"Node {node_id} is not an end of {relation}")

    def has_no_exclusion(self, a: int, b: int) -> bool:
        """Report whether the default conflict check between two nodes is overridden."""
        return self.relation(a, b, RelationKind.NO_EXCLUSION) is not None

    # ------------------------------------------------------------------
    # VIP (traceable) capability
    # ------------------------------------------------------------------

    def flag_vip(self, node_id: int, vip: bool = True) -> None:
        if vip:
            self._vip.add(node_id)
        else:
            self._vip.discard(node_id)

    def is_vip(self, node_id: int) -> bool:
        return node_id in self._vip

    @property
    def vip_ids(self) -> list[int]:
        return sorted(self._vip)
