"""ConsistencyChecker: detects beam groups to split and drives the repair loop."""

from __future__ import annotations

import logging

from beamgroup.beam_group import BeamGroup
from beamgroup.config import Settings
from beamgroup.geometry import rint, x_overlap, y_overlap
from beamgroup.graph_models import Beam, Chord
from beamgroup.group_splitter import GroupSplitter
from beamgroup.measure import Measure

logger = logging.getLogger(__name__)


class ConsistencyChecker:
    """
    Check that every chord of a beam group really belongs to it.

    Algorithm overview
    ------------------
    For each chord of a group, from left to right:

    1. **Questionable beams** – Beams of the group that are not hooks, are not
       attached to the chord, but overlap the chord horizontally. Each one is
       projected at the chord tail abscissa; the beam is questionable when the
       projection falls outside the chord bounding box.

    2. **Nearest beam** – Among questionable beams, the one closest to the
       chord tail gives the vertical gap.

    3. **Threshold** – When that gap, in interline units, exceeds
       ``max_chord_dy``, the chord does not belong to the group: it is returned
       as the split trigger.

    Args:
        settings: Engine settings (``max_chord_dy``, ``max_split_loops``).
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _questionable_beams(self, measure: Measure, group: BeamGroup, chord: Chord) -> list[Beam]:
        chord_box = measure.bounds(chord)
        tail = measure.tail_location(chord)
        questionable: list[Beam] = []

        for beam_id in sorted(group.beams):
            beam = measure.graph.beam(beam_id)
            if beam.hook or chord.id in beam.chord_ids:
                continue
            if x_overlap(beam.bounds, chord_box) <= 0:
                continue

            line_y = rint(beam.median.y_at_x(tail.x))
            if y_overlap(line_y, chord_box) < 0:
                questionable.append(beam)

        return questionable

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check_for_split(self, group: BeamGroup) -> Chord | None:
        """
        Run the consistency check on one group.

        Returns:
            The first chord (left to right) that should belong to another
            group, or None when the group is consistent.
        """
        measure = group.measure
        if measure is None:
            raise RuntimeError(f"{group} is not linked to a measure.")

        for chord in group.chords():
            questionable = self._questionable_beams(measure, group, chord)
            if not questionable:
                continue

            tail = measure.tail_location(chord)
            nearest = min(
                questionable,
                key=lambda b: (abs(b.median.y_at_x(tail.x) - tail.y), b.id),
            )
            tail_dy = abs(rint(nearest.median.y_at_x(tail.x)) - tail.y)
            normed_dy = measure.to_interline(tail_dy)

            if normed_dy > self.settings.max_chord_dy:
                logger.debug(
                    "vertical_gap chord=%s beam=%s dy=%.3f max=%.3f",
                    chord.id,
                    nearest.id,
                    normed_dy,
                    self.settings.max_chord_dy,
                )
                return chord

        return None

    def check_beam_groups(self, measure: Measure) -> tuple[BeamGroup, Chord] | None:
        """Find the first group of the measure needing a split, with its trigger chord."""
        for group in list(measure.groups):
            if group.is_empty:
                continue
            alien_chord = self.check_for_split(group)
            if alien_chord is not None:
                return group, alien_chord
        return None

    def repair(self, measure: Measure) -> int:
        """
        Split inconsistent groups until the measure is consistent.

        Each split may introduce new inconsistencies, so the whole measure is
        checked again after every split. At most ``max_split_loops`` splits are
        performed; past that bound the loop stops with a warning and the
        groups are left in their last state.

        Returns:
            The number of splits performed.
        """
        splits = 0

        while True:
            found = self.check_beam_groups(measure)
            if found is None:
                break

            if splits >= self.settings.max_split_loops:
                logger.warning(
                    "split_loop_limit measure=%s splits=%s limit=%s",
                    measure,
                    splits,
                    self.settings.max_split_loops,
                )
                break

            group, alien_chord = found
            GroupSplitter(group, alien_chord).process()
            splits += 1

        return splits
