"""Unit tests for ConsistencyChecker and the bounded repair loop."""

import logging

from beamgroup.config import Settings
from beamgroup.consistency_checker import ConsistencyChecker
from beamgroup.group_builder import GroupBuilder


def test_spanning_beams_are_consistent(builder) -> None:
    c1 = builder.chord(100, stem_top=100)
    c2 = builder.chord(200, stem_top=100)
    c3 = builder.chord(300, stem_top=112)
    builder.beam((100, 100), (200, 100), [c1, c2])
    builder.beam((100, 112), (300, 112), [c1, c2, c3])
    measure = builder.measure
    groups = GroupBuilder().build(measure)

    checker = ConsistencyChecker()

    assert checker.check_for_split(groups[0]) is None
    assert checker.repair(measure) == 0
    assert len(measure.groups) == 1


def test_small_gap_below_threshold_is_consistent(consistent_measure) -> None:
    measure = consistent_measure["measure"]
    group = GroupBuilder().build(measure)[0]

    assert ConsistencyChecker().check_for_split(group) is None


def test_large_gap_returns_trigger_chord(split_measure) -> None:
    measure = split_measure["measure"]
    _, _, c3 = split_measure["chords"]
    group = GroupBuilder().build(measure)[0]

    assert ConsistencyChecker().check_for_split(group) is c3


def test_threshold_is_configurable(split_measure) -> None:
    measure = split_measure["measure"]
    group = GroupBuilder().build(measure)[0]

    # The gap above C3 is 0.8 interline
    assert ConsistencyChecker(Settings(max_chord_dy=0.9)).check_for_split(group) is None
    assert ConsistencyChecker(Settings(max_chord_dy=0.7)).check_for_split(group) is not None


def test_hooks_are_not_questionable(split_measure) -> None:
    measure = split_measure["measure"]
    b1, _ = split_measure["beams"]
    b1.hook = True
    group = GroupBuilder().build(measure)[0]

    assert ConsistencyChecker().check_for_split(group) is None


def test_repair_splits_once_and_converges(split_measure) -> None:
    measure = split_measure["measure"]
    b1, b2 = split_measure["beams"]
    GroupBuilder().build(measure)

    splits = ConsistencyChecker().repair(measure)

    assert splits == 1
    assert [g.beams for g in measure.groups] == [{b1.id}, {b2.id}]


def test_repair_loop_limit_with_retriggering_splitter_in_isolation(split_measure, monkeypatch, caplog) -> None:
    measure = split_measure["measure"]
    _, _, c3 = split_measure["chords"]
    group = GroupBuilder().build(measure)[0]
    calls: list[int] = []

    class RetriggeringSplitter:
        def __init__(self, group, alien_chord) -> None:
            self.group = group

        def process(self) -> None:
            calls.append(self.group.id)

    # Every split leaves the measure inconsistent again
    monkeypatch.setattr("beamgroup.consistency_checker.GroupSplitter", RetriggeringSplitter)
    checker = ConsistencyChecker()
    monkeypatch.setattr(checker, "check_for_split", lambda g: c3)

    with caplog.at_level(logging.WARNING):
        splits = checker.repair(measure)

    assert splits == 10
    assert calls == [group.id] * 10
    assert "split_loop_limit" in caplog.text


def test_zero_loop_limit_performs_no_split(split_measure, caplog) -> None:
    measure = split_measure["measure"]
    GroupBuilder().build(measure)

    with caplog.at_level(logging.WARNING):
        splits = ConsistencyChecker(Settings(max_split_loops=0)).repair(measure)

    assert splits == 0
    assert len(measure.groups) == 1
    assert "split_loop_limit" in caplog.text


def test_repair_stops_at_loop_limit_on_inconsistent_measure(builder, caplog) -> None:
    # Eleven separate three-chord patterns, each needing one split
    patterns = []
    for i in range(11):
        x = 400.0 * i
        c1 = builder.chord(x + 100, stem_top=100)
        c2 = builder.chord(x + 200, stem_top=100)
        c3 = builder.chord(x + 250, stem_top=116)
        builder.beam((x + 100, 100), (x + 260, 100), [c1, c2])
        builder.beam((x + 200, 116), (x + 250, 116), [c2, c3])
        patterns.append(c3)
    measure = builder.measure
    GroupBuilder().build(measure)
    checker = ConsistencyChecker()

    with caplog.at_level(logging.WARNING):
        splits = checker.repair(measure)

    assert splits == 10
    assert len(measure.groups) == 21
    assert "split_loop_limit" in caplog.text
    assert checker.check_beam_groups(measure) == (measure.groups[10], patterns[10])
