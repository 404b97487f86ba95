"""Shared measure builders for beamgroup tests (no files or heavy deps needed)."""

from fractions import Fraction

import pytest

from beamgroup.graph_models import Beam, Box, Chord, Head, Line, Point, Relation, RelationKind, Staff, Stem
from beamgroup.measure import Measure
from beamgroup.relation_graph import RelationGraph

INTERLINE = 20.0
EIGHTH = Fraction(1, 8)


class MeasureBuilder:
    """
    Build measures of up-stem chords (heads at the bottom, beams at the top).

    Each chord at abscissa ``x`` has a head box spanning ``x - 18 .. x`` and
    ``head_y .. head_y + 16``, and a 2-pixel stem at ``x`` going from
    ``stem_top`` down to ``stem_bottom``.
    """

    def __init__(self, interline: float = INTERLINE) -> None:
        self.graph = RelationGraph()
        self.measure = Measure(self.graph, interline)
        self.staff = self.graph.add_node(Staff())

    def chord(
        self,
        x: float,
        stem_top: float,
        stem_bottom: float = 200.0,
        head_y: float = 192.0,
        staff: Staff | None = None,
        duration: Fraction | None = EIGHTH,
        time_offset: Fraction | None = None,
    ) -> Chord:
        stem = self.graph.add_node(
            Stem(Point(x, stem_top), Point(x, stem_bottom), width=2.0, staff_id=(staff or self.staff).id)
        )
        chord = self.graph.add_node(Chord(stem_id=stem.id, duration=duration, time_offset=time_offset))
        head = self.graph.add_node(Head(Box(x - 18, head_y, 18, 16), chord_id=chord.id))
        chord.head_ids.append(head.id)
        self.graph.add_edge(head.id, stem.id, Relation(RelationKind.HEAD_STEM))
        return self.measure.add_chord(chord)

    def beam(
        self,
        p1: tuple[float, float],
        p2: tuple[float, float],
        chords: list[Chord],
        hook: bool = False,
        height: float = 8.0,
    ) -> Beam:
        """Add a beam; call in tail-to-head order for each chord."""
        beam = self.graph.add_node(Beam(Line(Point(*p1), Point(*p2)), height, hook=hook))
        for chord in chords:
            chord.beam_ids.append(beam.id)
            beam.chord_ids.append(chord.id)
            stem = self.graph.stem(chord.stem_id)
            y = beam.median.y_at_x(stem.top.x)
            self.graph.add_edge(
                beam.id,
                stem.id,
                Relation(RelationKind.BEAM_STEM, extension_point=Point(stem.top.x, y)),
            )
            self.graph.add_edge(beam.id, chord.head_ids[0], Relation(RelationKind.BEAM_HEAD))
        return beam

    def rest(self, x: float, duration: Fraction | None = EIGHTH) -> Chord:
        chord = self.graph.add_node(Chord(rest=True, duration=duration))
        head = self.graph.add_node(Head(Box(x - 5, 150, 10, 30), chord_id=chord.id))
        chord.head_ids.append(head.id)
        return self.measure.add_chord(chord)


@pytest.fixture
def builder() -> MeasureBuilder:
    return MeasureBuilder()


@pytest.fixture
def split_measure(builder: MeasureBuilder) -> dict:
    """
    Three chords where beam B1 passes 16 px (0.8 interline) above the tail of C3.

    B1 joins C1 and C2 at y=100 and extends over C3; B2 joins C2 and C3 at
    y=116. C2 is the chord shared by both beams.
    """
    c1 = builder.chord(100, stem_top=100)
    c2 = builder.chord(200, stem_top=100)
    c3 = builder.chord(250, stem_top=116)
    b1 = builder.beam((100, 100), (260, 100), [c1, c2])
    b2 = builder.beam((200, 116), (250, 116), [c2, c3])
    return {"builder": builder, "measure": builder.measure, "chords": (c1, c2, c3), "beams": (b1, b2)}


@pytest.fixture
def consistent_measure(builder: MeasureBuilder) -> dict:
    """Same layout as ``split_measure`` but with a 0.4 interline gap above C3."""
    c1 = builder.chord(100, stem_top=100)
    c2 = builder.chord(200, stem_top=100)
    c3 = builder.chord(250, stem_top=108)
    b1 = builder.beam((100, 100), (260, 100), [c1, c2])
    b2 = builder.beam((200, 108), (250, 108), [c2, c3])
    return {"builder": builder, "measure": builder.measure, "chords": (c1, c2, c3), "beams": (b1, b2)}


@pytest.fixture
def make_builder():
    """Factory for tests that need several independent measures."""
    return MeasureBuilder
