"""GroupBuilder: connected components of beams within a measure."""

from __future__ import annotations

import logging

from beamgroup.beam_group import BeamGroup
from beamgroup.measure import Measure

logger = logging.getLogger(__name__)


class GroupBuilder:
    """
    Build one BeamGroup per connected component of beams.

    Two beams are connected when they touch a common chord. The traversal uses
    an explicit worklist, so long beam chains cannot exhaust the call stack.
    Beams are visited in id order, which makes group ids reproducible.
    """

    def _measure_beams(self, measure: Measure) -> list[int]:
        """Beams attached to any head chord of the measure, in id order."""
        return sorted({bid for chord in measure.head_chords() for bid in chord.beam_ids})

    def _assign_group(self, measure: Measure, group: BeamGroup, seed: int) -> None:
        """Absorb into ``group`` every ungrouped beam reachable from ``seed``."""
        graph = measure.graph
        worklist = [seed]

        while worklist:
            beam_id = worklist.pop()
            beam = graph.beam(beam_id)
            if beam.group_id is not None:
                continue

            measure.switch_beam(beam_id, group)

            for chord_id in beam.chord_ids:
                for other in graph.chord(chord_id).beam_ids:
                    if graph.beam(other).group_id is None:
                        worklist.append(other)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, measure: Measure) -> list[BeamGroup]:
        """
        Create the beam groups for all ungrouped beams of a measure.

        Args:
            measure: Measure whose head chords already carry their beams.

        Returns:
            The groups created by this call, in id order. Beams already
            grouped (e.g. after a reload) are left untouched.
        """
        created: list[BeamGroup] = []

        for beam_id in self._measure_beams(measure):
            if measure.graph.beam(beam_id).group_id is None:
                group = measure.create_group()
                self._assign_group(measure, group, beam_id)
                logger.debug("%s built %s", measure, group)
                created.append(group)

        return created
