"""GroupSplitter: splits a beam group in two around a shared pivot chord."""

from __future__ import annotations

import logging

from beamgroup.beam_group import BeamGroup
from beamgroup.errors import StructuralError
from beamgroup.geometry import rint, x_at_y
from beamgroup.graph_models import Chord, Head, Point, Relation, RelationKind, Stem

logger = logging.getLogger(__name__)


class GroupSplitter:
    """
    Split a beam group, triggered by a chord detected as alien to it.

    The beams of the alien chord move to a new (alien) group. The two groups
    are articulated around a pivot chord, common to both of them, which is
    then duplicated:

    - the group whose beams sit at the tail of the pivot stem keeps the pivot
      chord and its long stem;
    - the group closer to the heads gets a new chord, with duplicated heads and
      a short stem extracted from the long one.

    Args:
        group:       The group to split (it keeps part of its beams).
        alien_chord: Chord that belongs to the new group.
    """

    def __init__(self, group: BeamGroup, alien_chord: Chord) -> None:
        if group.measure is None:
            raise RuntimeError(f"{group} is not linked to a measure.")
        self.group = group
        self.measure = group.measure
        self.graph = group.measure.graph
        self.alien_chord = alien_chord

        # Beams initially attached to alien_chord (hooks excepted)
        self.alien_beams: set[int] = set()
        self.alien_group: BeamGroup | None = None
        self.pivot_chord: Chord | None = None
        self.short_chord: Chord | None = None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _is_hook(self, beam_id: int) -> bool:
        return self.graph.beam(beam_id).hook

    def _require_alien_group(self) -> BeamGroup:
        if self.alien_group is None:
            raise RuntimeError(f"No alien group created yet for {self.group}.")
        return self.alien_group

    def _require_pivot(self) -> Chord:
        if self.pivot_chord is None:
            raise RuntimeError(f"No pivot chord detected yet for {self.group}.")
        return self.pivot_chord

    def _in_alien_group(self, beam_id: int) -> bool:
        return self.graph.beam(beam_id).group_id == self._require_alien_group().id

    def _move_to_alien(self, beam_id: int) -> None:
        self.measure.switch_beam(beam_id, self._require_alien_group())

    def _create_alien_group(self) -> BeamGroup:
        """Create the alien group and move into it the beams of alien_chord."""
        self.alien_beams = {
            bid for bid in self.alien_chord.beam_ids
            if not self._is_hook(bid) and bid in self.group.beams
        }
        self.alien_group = self.measure.create_group()

        for beam_id in sorted(self.alien_beams):
            self._move_to_alien(beam_id)

        return self.alien_group

    def _detect_pivot_chord(self) -> Chord | None:
        """
        Find the chord shared by this group and the alien group.

        When several chords are shared, the left-most one is used.
        """
        alien_chords = {chord.id for chord in self._require_alien_group().chords()}
        commons = [
            chord for chord in self.group.chords()
            if chord.id in alien_chords and chord.id != self.alien_chord.id
        ]

        if not commons:
            return None
        if len(commons) > 1:
            logger.warning(
                "several_pivot_chords group=%s candidates=%s using=%s",
                self.group,
                [chord.id for chord in commons],
                commons[0].id,
            )
        return commons[0]

    def _dispatch_pivot_beams(self) -> None:
        """
        Move to the alien group the pivot beams lying on the alien side.

        The pivot beams are walked from tail to head until the tail beam of
        alien_chord is met. If the walk started on the alien side, every beam
        before it is alien ("alien end"), otherwise every beam from it on is
        alien ("alien start"). Hooks are dispatched later, with the chord.
        """
        pivot = self._require_pivot()
        tail_beams = [bid for bid in self.alien_chord.beam_ids if not self._is_hook(bid)]
        if not tail_beams:
            return
        alien_tail_beam = tail_beams[0]

        pivot_beams = list(pivot.beam_ids)
        on_alien_side: bool | None = None

        for ib, beam_id in enumerate(pivot_beams):
            if self._is_hook(beam_id):
                continue

            if on_alien_side is None:
                on_alien_side = beam_id in self.alien_beams

            if beam_id == alien_tail_beam:
                if on_alien_side:
                    logger.debug("alien_end pivot=%s index=%s", pivot.id, ib)
                    side = pivot_beams[: ib + 1]
                else:
                    logger.debug("alien_start pivot=%s index=%s", pivot.id, ib)
                    side = pivot_beams[ib:]

                for other in side:
                    if not self._is_hook(other) and other not in self.alien_beams:
                        self._move_to_alien(other)
                return

    def _dispatch_all_beams(self) -> None:
        """
        Move to the alien group every remaining beam connected to an alien beam.

        Connections through the pivot chord do not count. Passes are repeated
        until no beam moves, which closes the alien group under adjacency.
        """
        pivot_beams = set(self.pivot_chord.beam_ids) if self.pivot_chord is not None else set()
        moved = True

        while moved:
            moved = False
            for beam_id in sorted(self.group.beams):
                if beam_id in pivot_beams:
                    continue

                beam = self.graph.beam(beam_id)
                if any(
                    self._in_alien_group(other)
                    for chord_id in beam.chord_ids
                    for other in self.graph.chord(chord_id).beam_ids
                ):
                    self._move_to_alien(beam_id)
                    moved = True

    def _extract_short_stem(self, chord: Chord, y_stop: int) -> Stem:
        """
        Build a stem from the head side of the chord stem up to ``y_stop``.

        Raises:
            StructuralError: If the stem extent is degenerate or does not
                             contain ``y_stop``.
        """
        if chord.stem_id is None:
            raise StructuralError(f"Chord#{chord.id} has no stem.")
        root_stem = self.graph.stem(chord.stem_id)

        if root_stem.length <= 0:
            raise StructuralError(f"Stem#{root_stem.id} has a degenerate extent.")
        if not root_stem.top.y <= y_stop <= root_stem.bottom.y:
            raise StructuralError(
                f"Ordinate {y_stop} is outside Stem#{root_stem.id} "
                f"[{root_stem.top.y}, {root_stem.bottom.y}]."
            )

        # Ordinate of head side of stem
        y_start = root_stem.top.y if self.measure.stem_dir(chord) > 0 else root_stem.bottom.y
        top_y, bottom_y = sorted((y_start, float(y_stop)))
        if bottom_y <= top_y:
            raise StructuralError(f"Empty sub-stem extracted from Stem#{root_stem.id}.")

        short_stem = Stem(
            top=Point(x_at_y(root_stem.top, root_stem.bottom, top_y), top_y),
            bottom=Point(x_at_y(root_stem.top, root_stem.bottom, bottom_y), bottom_y),
            width=root_stem.width,
            staff_id=root_stem.staff_id,
        )
        return self.graph.add_node(short_stem)

    def _duplicate_chord(self, chord: Chord) -> Chord:
        """Clone a chord with mirrored heads, but no stem or beams."""
        clone = self.graph.add_node(Chord(duration=chord.duration))

        for head_id in chord.head_ids:
            head = self.graph.head(head_id)
            mirror = self.graph.add_node(Head(box=head.box, chord_id=clone.id, mirror_id=head.id))
            head.mirror_id = mirror.id
            clone.head_ids.append(mirror.id)

        return clone

    def _head_side_beams(self) -> list[int]:
        """
        Determine the pivot beams that migrate to the short chord.

        Hooks follow the side they lie on: hooks located after the first
        head-side beam join the head-side group, the others the tail-side one.
        """
        pivot = self._require_pivot()
        alien_group = self._require_alien_group()
        pivot_beams = list(pivot.beam_ids)
        full_beams = [bid for bid in pivot_beams if not self._is_hook(bid)]
        if not full_beams:
            return []

        aliens_at_tail = self._in_alien_group(full_beams[0])
        head_group = self.group if aliens_at_tail else alien_group
        tail_group = alien_group if aliens_at_tail else self.group

        first = next(
            (
                ib for ib, bid in enumerate(pivot_beams)
                if not self._is_hook(bid) and self.graph.beam(bid).group_id == head_group.id
            ),
            None,
        )
        if first is None:
            return []

        head_beams: list[int] = []
        for ib, beam_id in enumerate(pivot_beams):
            if self._is_hook(beam_id):
                self.measure.switch_beam(beam_id, head_group if ib > first else tail_group)
                if ib > first:
                    head_beams.append(beam_id)
            elif ib >= first:
                if self.graph.beam(beam_id).group_id == head_group.id:
                    head_beams.append(beam_id)
                else:
                    logger.warning(
                        "interleaved_pivot_beam pivot=%s beam=%s", pivot.id, beam_id
                    )

        return head_beams

    def _split_chord(self) -> None:
        """
        Split the pivot chord between the two groups.

        The head-side beams are moved, with their relations, from the pivot
        chord and long stem to a new chord with a short stem. A no-exclusion
        relation is kept between each of these beams and the long stem.
        """
        pivot = self._require_pivot()
        logger.debug("split_chord pivot=%s", pivot.id)

        if pivot.stem_id is None:
            raise StructuralError(f"Pivot Chord#{pivot.id} has no stem.")
        pivot_stem_id = pivot.stem_id

        head_beams = self._head_side_beams()
        if not head_beams:
            logger.debug("pivot_not_shared pivot=%s", pivot.id)
            return

        # Short stem goes from heads to the extension point of first head beam
        bs_rel = self.graph.relation(head_beams[0], pivot_stem_id, RelationKind.BEAM_STEM)
        if bs_rel is None or bs_rel.extension_point is None:
            raise StructuralError(
                f"No beam-stem extension point between Beam#{head_beams[0]} and Stem#{pivot_stem_id}."
            )
        short_stem = self._extract_short_stem(pivot, rint(bs_rel.extension_point.y))

        short_chord = self._duplicate_chord(pivot)
        short_chord.stem_id = short_stem.id
        self.graph.add_edge(short_stem.id, pivot_stem_id, Relation(RelationKind.STEM_ALIGNMENT))

        # Link mirrored heads to short stem
        for head_id in short_chord.head_ids:
            mirror_id = self.graph.head(head_id).mirror_id
            if mirror_id is None:
                continue
            for hs in self.graph.relations(mirror_id, RelationKind.HEAD_STEM):
                self.graph.add_edge(head_id, short_stem.id, hs.duplicate())

        for beam_id in head_beams:
            beam = self.graph.beam(beam_id)

            # Avoid exclusion between head beam and pivot stem
            self.graph.add_edge(beam_id, pivot_stem_id, Relation(RelationKind.NO_EXCLUSION))

            bs = self.graph.relation(beam_id, pivot_stem_id, RelationKind.BEAM_STEM)
            if bs is not None:
                self.graph.remove_edge(bs)
                self.graph.add_edge(beam_id, short_stem.id, bs)

            for bh in self.graph.relations(beam_id, RelationKind.BEAM_HEAD):
                head = self.graph.head(self.graph.opposite(beam_id, bh))
                if head.chord_id == pivot.id and head.mirror_id is not None:
                    self.graph.remove_edge(bh)
                    self.graph.add_edge(beam_id, head.mirror_id, bh)

            pivot.beam_ids.remove(beam_id)
            beam.chord_ids = [short_chord.id if cid == pivot.id else cid for cid in beam.chord_ids]
            short_chord.beam_ids.append(beam_id)

        self.measure.add_chord(short_chord)
        self.short_chord = short_chord

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(self) -> BeamGroup | None:
        """
        Actually split the group in two, around the detected pivot chord.

        Returns:
            The new alien group, or None when alien_chord carries no beam of
            this group (nothing to split).

        Raises:
            StructuralError: If the pivot chord cannot be duplicated. The
                             alien group is already created and the beams
                             already dispatched at that point, so the measure
                             is left partly split: its step must discard it.
        """
        logger.debug("%s splitter on Chord#%s", self.group, self.alien_chord.id)

        if not any(
            not self._is_hook(bid) and bid in self.group.beams
            for bid in self.alien_chord.beam_ids
        ):
            logger.warning(
                "split_without_alien_beams group=%s chord=%s", self.group, self.alien_chord.id
            )
            return None

        alien_group = self._create_alien_group()
        self.pivot_chord = self._detect_pivot_chord()

        if self.pivot_chord is None:
            # Alien beams are already disconnected from the rest of the group
            logger.debug("no_pivot_chord group=%s alien=%s", self.group, alien_group)
            self._dispatch_all_beams()
            return alien_group

        self._dispatch_pivot_beams()
        self._dispatch_all_beams()
        self._split_chord()

        logger.debug("split_done group=%s alien=%s", self.group, alien_group)
        return alien_group
