"""Measure and MeasureStack: chords, beam groups and staff scale of one bar."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from beamgroup.graph_models import Box, Chord, Point
from beamgroup.relation_graph import RelationGraph

if TYPE_CHECKING:
    from beamgroup.beam_group import BeamGroup

logger = logging.getLogger(__name__)


class Measure:
    """
    One bar of one part, with the chords and beam groups it contains.

    The measure owns the ordered list of its beam groups (insertion order is id
    order) and allocates their ids. Chords, beams and relations live in the
    shared ``RelationGraph`` and are only referenced here by id.

    Args:
        graph:     Relation graph holding the measure nodes.
        interline: Staff scale, in pixels per interline.
        measure_id: Identity of the measure within its stack.
    """

    def __init__(self, graph: RelationGraph, interline: float, measure_id: int = 1) -> None:
        if interline <= 0:
            raise ValueError(f"Interline must be positive, got {interline}.")
        self.id = measure_id
        self.graph = graph
        self.interline = interline
        self.chord_ids: list[int] = []
        self.groups: list[BeamGroup] = []
        self._last_group_id = 0

    def __repr__(self) -> str:
        return f"Measure#{self.id}"

    # ------------------------------------------------------------------
    # Chords
    # ------------------------------------------------------------------

    def add_chord(self, chord: Chord) -> Chord:
        """Insert a chord into the measure (and into the graph if needed)."""
        if chord.id not in self.graph or self.graph.node(chord.id) is not chord:
            self.graph.add_node(chord)
        if chord.id not in self.chord_ids:
            self.chord_ids.append(chord.id)
        return chord

    @property
    def chords(self) -> list[Chord]:
        return [self.graph.chord(cid) for cid in self.chord_ids]

    def head_chords(self) -> list[Chord]:
        return [chord for chord in self.chords if not chord.rest]

    def rest_chords(self) -> list[Chord]:
        return [chord for chord in self.chords if chord.rest]

    def bounds(self, chord: Chord) -> Box:
        """Bounding box of a chord: union of its heads and its stem."""
        boxes = [self.graph.head(hid).box for hid in chord.head_ids]
        if chord.stem_id is not None:
            boxes.append(self.graph.stem(chord.stem_id).box)
        if not boxes:
            raise ValueError(f"Chord#{chord.id} has neither heads nor stem.")
        return boxes[0].union(*boxes[1:])

    def abscissa(self, chord: Chord) -> float:
        return self.bounds(chord).center.x

    def x_order(self, chord: Chord) -> tuple[float, int]:
        """Sort key ordering chords left to right, ties broken by id."""
        return self.abscissa(chord), chord.id

    def stem_dir(self, chord: Chord) -> int:
        """
        Direction of the stem seen from the heads.

        Returns:
            +1 when the heads sit at the top of a stem going down,
            -1 when the stem goes up from the heads, 0 without stem.
        """
        if chord.stem_id is None or not chord.head_ids:
            return 0
        stem = self.graph.stem(chord.stem_id)
        heads_y = sum(self.graph.head(hid).box.center.y for hid in chord.head_ids) / len(chord.head_ids)
        stem_y = (stem.top.y + stem.bottom.y) / 2
        return 1 if heads_y < stem_y else -1

    def tail_location(self, chord: Chord) -> Point:
        """Stem end located away from the heads (chord center for stemless chords)."""
        if chord.stem_id is None:
            return self.bounds(chord).center
        stem = self.graph.stem(chord.stem_id)
        return stem.bottom if self.stem_dir(chord) > 0 else stem.top

    def lookup_rest(self, prev: Chord, chord: Chord) -> Chord | None:
        """
        Look for a rest chord interleaved between two beamed chords.

        Returns:
            The left-most rest chord strictly between ``prev`` and ``chord``
            abscissae, or None.
        """
        left, right = sorted((self.abscissa(prev), self.abscissa(chord)))
        candidates = [
            rest for rest in self.rest_chords()
            if left < self.abscissa(rest) < right
        ]
        if not candidates:
            return None
        return min(candidates, key=self.x_order)

    def to_interline(self, pixels: float) -> float:
        """Normalize a pixel distance by the staff scale."""
        return pixels / self.interline

    # ------------------------------------------------------------------
    # Beam groups
    # ------------------------------------------------------------------

    def create_group(self) -> BeamGroup:
        """Create a new, empty beam group with the next sequential id."""
        from beamgroup.beam_group import BeamGroup

        self._last_group_id += 1
        group = BeamGroup(self._last_group_id, measure=self)
        self.groups.append(group)
        logger.debug("%s created %s", self, group)
        return group

    def register_group(self, group: BeamGroup) -> None:
        """Attach an existing (reloaded) group, keeping the id allocator ahead of it."""
        if any(g.id == group.id for g in self.groups if g is not group):
            raise ValueError(f"Duplicate beam group id {group.id} in {self}.")
        if group not in self.groups:
            self.groups.append(group)
            self.groups.sort(key=lambda g: g.id)
        group.measure = self
        self._last_group_id = max(self._last_group_id, group.id)

    def group(self, group_id: int) -> BeamGroup:
        for group in self.groups:
            if group.id == group_id:
                return group
        raise KeyError(f"No beam group {group_id} in {self}")

    def beam_group_of(self, beam_id: int) -> BeamGroup | None:
        group_id = self.graph.beam(beam_id).group_id
        return None if group_id is None else self.group(group_id)

    def switch_beam(self, beam_id: int, group: BeamGroup) -> None:
        """Move a beam from its current group (if any) to ``group``."""
        current = self.beam_group_of(beam_id)
        if current is group:
            return
        if current is not None:
            current.remove_beam(beam_id)
        group.add_beam(beam_id)
        self.graph.beam(beam_id).group_id = group.id


@dataclass
class MeasureStack:
    """The same bar across all parts of a system, processed by a single worker."""

    id: int
    measures: list[Measure] = field(default_factory=list)
