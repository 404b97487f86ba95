"""Unit tests for BeamGroupStep: per-measure pipeline and failure containment."""

import logging
from fractions import Fraction

from beamgroup.graph_models import Beam, RelationKind
from beamgroup.measure import MeasureStack
from beamgroup.steps import BeamGroupStep


def _split_stack(builder, stack_id: int, break_stem: bool = False) -> MeasureStack:
    c1 = builder.chord(100, stem_top=100, time_offset=Fraction(0))
    c2 = builder.chord(200, stem_top=100)
    c3 = builder.chord(250, stem_top=116)
    builder.beam((100, 100), (260, 100), [c1, c2])
    b2 = builder.beam((200, 116), (250, 116), [c2, c3])
    if break_stem:
        graph = builder.graph
        graph.remove_edge(graph.relation(b2.id, c2.stem_id, RelationKind.BEAM_STEM))
    return MeasureStack(id=stack_id, measures=[builder.measure])


def test_process_measure_splits_and_keeps_partition(split_measure) -> None:
    measure = split_measure["measure"]
    b1, b2 = split_measure["beams"]

    splits = BeamGroupStep().process_measure(measure)

    assert splits == 1
    assert [g.id for g in measure.groups] == [1, 2]
    assert [g.beams for g in measure.groups] == [{b1.id}, {b2.id}]
    assert all(not g.multi_staff for g in measure.groups)
    assert len(measure.chords) == 4


def test_run_isolates_structural_failures(make_builder, caplog) -> None:
    stacks = [
        _split_stack(make_builder(), 1),
        _split_stack(make_builder(), 2, break_stem=True),
        _split_stack(make_builder(), 3),
    ]

    with caplog.at_level(logging.ERROR):
        report = BeamGroupStep().run(stacks)

    assert report.processed == [1, 3]
    assert list(report.failed) == [2]
    assert report.splits == 2
    assert not report.ok
    assert "step_failed" in caplog.text


def test_compute_timing_propagates_from_timed_first_chord(builder) -> None:
    stack = _split_stack(builder, 1)
    step = BeamGroupStep()
    step.doit(stack)

    processed = step.compute_timing(stack)

    measure = stack.measures[0]
    first_group = measure.groups[0]
    assert processed == 1
    assert [c.time_offset for c in first_group.chords()] == [0, Fraction(1, 8)]
    # The second group starts on the duplicated pivot chord, not timed yet
    assert measure.groups[1].first_chord.time_offset is None


def test_run_contains_dangling_references(make_builder, caplog) -> None:
    broken = _split_stack(make_builder(), 1)
    beam = broken.measures[0].graph.nodes(Beam)[0]
    beam.chord_ids.append(999)
    stacks = [broken, _split_stack(make_builder(), 2)]

    with caplog.at_level(logging.ERROR):
        report = BeamGroupStep().run(stacks)

    assert report.processed == [2]
    assert list(report.failed) == [1]
    assert "999" in report.failed[1]
    assert report.splits == 1
    assert "step_failed" in caplog.text
