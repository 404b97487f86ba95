"""Timing and voice propagation across the chords of a beam group."""

from __future__ import annotations

import logging
from fractions import Fraction

from beamgroup.beam_group import BeamGroup
from beamgroup.errors import TimingError
from beamgroup.graph_models import RelationKind
from beamgroup.measure import Measure

logger = logging.getLogger(__name__)


def _measure_of(group: BeamGroup) -> Measure:
    if group.measure is None:
        raise RuntimeError(f"{group} is not linked to a measure.")
    return group.measure


def compute_time_offsets(group: BeamGroup) -> None:
    """
    Compute time offsets for all chords of a group from its first chord.

    The first chord must already carry its time offset. Each following chord
    starts when the previous one ends, unless a rest is interleaved between
    them: the rest then starts when the previous chord ends, and the chord
    when the rest ends.

    A chord whose start cannot be computed is logged and left as is; the pass
    goes on with the next chord.
    """
    measure = _measure_of(group)
    prev = None

    for chord in group.chords():
        if prev is not None:
            try:
                # Check for interleaved rest
                rest = measure.lookup_rest(prev, chord)
                if rest is not None:
                    rest.time_offset = prev.end_time
                    chord.time_offset = rest.end_time
                else:
                    chord.time_offset = prev.end_time
            except (TimingError, KeyError, ValueError) as exc:
                logger.warning(
                    "chord_time_unknown chord=%s prev=%s group=%s error=%s",
                    chord.id,
                    prev.id,
                    group.id,
                    exc,
                )
        elif chord.time_offset is None:
            logger.warning("first_chord_time_unset chord=%s group=%s", chord.id, group.id)

        prev = chord


def get_duration(group: BeamGroup) -> Fraction:
    """
    Report the total duration of the sequence of chords within a group.

    Beware, there may be rests inserted within beam-grouped notes.

    Raises:
        TimingError: If the group has no chord, or if its first or last chord
                     has no time offset (or the last one no duration).
    """
    chords = group.chords()
    if not chords:
        raise TimingError(f"{group} has no chord")

    first, last = chords[0], chords[-1]
    if first.time_offset is None:
        raise TimingError(f"First Chord#{first.id} of {group} has no time offset")

    return last.end_time - first.time_offset


def _check_reassignment(group: BeamGroup, voice: int | None) -> bool:
    """Return True when ``voice`` must be written on the group."""
    if voice == group.voice:
        return False
    if voice is not None and group.voice is not None:
        logger.warning(
            "voice_reassigned group=%s old=%s new=%s", group.id, group.voice, voice
        )
    return True


def assign_voice(group: BeamGroup, voice: int | None) -> None:
    """Just assign a voice to the group, without forwarding it to the chords."""
    if _check_reassignment(group, voice):
        group.voice = voice


def set_voice(group: BeamGroup, voice: int | None) -> None:
    """
    Assign a voice to a group, and forward it to the beamed chords.

    Interleaved rests get the voice as well. Setting the current voice again
    does nothing; clearing (None) only clears the group. Assigning a different
    voice overwrites the previous one (last write wins) with a warning.
    """
    if not _check_reassignment(group, voice):
        return

    group.voice = voice
    if voice is None:
        return

    measure = _measure_of(group)
    prev = None

    for chord in group.chords():
        if prev is not None:
            rest = measure.lookup_rest(prev, chord)
            if rest is not None:
                rest.voice = voice
        chord.voice = voice
        prev = chord


def count_staves(group: BeamGroup) -> int:
    """
    Check whether a group is linked to more than one staff, flagging it if so.

    Staves are found through the stems related to the group beams. The
    multi-staff flag is only ever raised, never reset.

    Returns:
        The number of distinct staves found.
    """
    graph = _measure_of(group).graph
    staves: set[int] = set()

    for beam_id in group.beams:
        for rel in graph.relations(beam_id, RelationKind.BEAM_STEM):
            stem = graph.stem(graph.opposite(beam_id, rel))
            if stem.staff_id is not None:
                staves.add(stem.staff_id)

    if len(staves) > 1:
        group.multi_staff = True

    return len(staves)
