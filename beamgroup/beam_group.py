"""BeamGroup: a set of beams that belong to the same rhythmic group."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from beamgroup.graph_models import Chord

if TYPE_CHECKING:
    from beamgroup.measure import Measure

logger = logging.getLogger(__name__)


class BeamGroup:
    """
    A group of related beams within a measure.

    Beams are held by id and in no particular order. The chords of the group
    are derived from its beams and always reported left to right.

    Attributes:
        id:          Sequential id, unique within the measure (from 1).
        beams:       Ids of the contained beams.
        multi_staff: True once the group is found linked to several staves.
        voice:       Voice shared by all chords of the group, if assigned.
        measure:     Owning measure, None until relinked after a reload.
        vip:         Debug flag, set when a VIP beam joins the group.
    """

    def __init__(
        self,
        group_id: int,
        measure: Measure | None = None,
        beams: set[int] | None = None,
        multi_staff: bool = False,
    ) -> None:
        self.id = group_id
        self.measure = measure
        self.beams: set[int] = set(beams or ())
        self.multi_staff = multi_staff
        self.voice: int | None = None
        self.vip = False

    def __repr__(self) -> str:
        beams = " ".join(f"Beam#{bid}" for bid in sorted(self.beams))
        return f"{{BeamGroup#{self.id} beams[{beams}]}}"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_measure(self) -> Measure:
        if self.measure is None:
            raise RuntimeError(f"{self} is not linked to a measure; relink it after reload.")
        return self.measure

    def _trace(self, message: str, *args: object) -> None:
        level = logging.INFO if self.vip else logging.DEBUG
        logger.log(level, message, *args)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_beam(self, beam_id: int) -> None:
        """Include a beam in this group; a duplicate insertion is logged and ignored."""
        if beam_id in self.beams:
            logger.warning("beam_already_in_group beam=%s group=%s", beam_id, self)
            return

        self.beams.add(beam_id)

        if self.measure is not None and self.measure.graph.is_vip(beam_id):
            self.vip = True

        self._trace("%s added Beam#%s to %s", self.measure, beam_id, self)

    def remove_beam(self, beam_id: int) -> None:
        """Remove a beam from this group (in order to assign it to another group)."""
        if beam_id not in self.beams:
            logger.warning("beam_not_in_group beam=%s group=%s", beam_id, self)
            return
        self.beams.remove(beam_id)

    def chords(self) -> list[Chord]:
        """
        Report the x-ordered chords touched by the beams of this group.

        The result holds no duplicates and does not depend on the iteration
        order of the beam set.
        """
        measure = self._require_measure()
        graph = measure.graph
        chord_ids = {cid for bid in self.beams for cid in graph.beam(bid).chord_ids}
        return sorted((graph.chord(cid) for cid in chord_ids), key=measure.x_order)

    @property
    def first_chord(self) -> Chord | None:
        chords = self.chords()
        return chords[0] if chords else None

    @property
    def last_chord(self) -> Chord | None:
        chords = self.chords()
        return chords[-1] if chords else None

    @property
    def is_empty(self) -> bool:
        return not self.beams

    def is_multi_staff(self) -> bool:
        return self.multi_staff

    def reset_timing(self) -> None:
        self.voice = None
