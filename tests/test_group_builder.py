"""Unit tests for GroupBuilder and BeamGroup membership."""

import logging

from beamgroup.beam_group import BeamGroup
from beamgroup.group_builder import GroupBuilder


def test_connected_beams_form_one_group(split_measure) -> None:
    measure = split_measure["measure"]
    b1, b2 = split_measure["beams"]

    groups = GroupBuilder().build(measure)

    assert len(groups) == 1
    assert groups[0].beams == {b1.id, b2.id}
    assert b1.group_id == b2.group_id == groups[0].id


def test_disconnected_beams_form_separate_groups(builder) -> None:
    c1 = builder.chord(100, stem_top=100)
    c2 = builder.chord(150, stem_top=100)
    c3 = builder.chord(300, stem_top=100)
    c4 = builder.chord(350, stem_top=100)
    b1 = builder.beam((100, 100), (150, 100), [c1, c2])
    b2 = builder.beam((300, 100), (350, 100), [c3, c4])

    groups = GroupBuilder().build(builder.measure)

    assert [g.id for g in groups] == [1, 2]
    assert [g.beams for g in groups] == [{b1.id}, {b2.id}]


def test_every_beam_ends_in_exactly_one_group(builder) -> None:
    chords = [builder.chord(100 + 40 * i, stem_top=100) for i in range(8)]
    beams = [builder.beam((100, 100), (220, 100), chords[0:4])]
    beams.append(builder.beam((180, 108), (220, 108), chords[2:4]))
    beams.append(builder.beam((260, 100), (340, 100), chords[4:7]))
    beams.append(builder.beam((380, 100), (385, 100), chords[7:8], hook=True))

    groups = GroupBuilder().build(builder.measure)

    members = [bid for group in groups for bid in group.beams]
    assert sorted(members) == sorted(b.id for b in beams)
    assert len(members) == len(set(members))
    assert all(not group.is_empty for group in groups)
    assert len(groups) == 3


def test_long_beam_chain_does_not_recurse(builder) -> None:
    chords = [builder.chord(10.0 * i, stem_top=100) for i in range(3001)]
    for i, (left, right) in enumerate(zip(chords, chords[1:])):
        builder.beam((10.0 * i, 100), (10.0 * (i + 1), 100), [left, right])

    groups = GroupBuilder().build(builder.measure)

    assert len(groups) == 1
    assert len(groups[0].beams) == 3000


def test_build_skips_already_grouped_beams(split_measure) -> None:
    measure = split_measure["measure"]
    GroupBuilder().build(measure)

    assert GroupBuilder().build(measure) == []
    assert len(measure.groups) == 1


def test_group_chords_are_ordered_and_deduplicated(split_measure) -> None:
    measure = split_measure["measure"]
    c1, c2, c3 = split_measure["chords"]
    b1, b2 = split_measure["beams"]

    forward = BeamGroup(1, measure=measure, beams={b1.id, b2.id})
    backward = BeamGroup(2, measure=measure)
    backward.beams.add(b2.id)
    backward.beams.add(b1.id)

    assert [c.id for c in forward.chords()] == [c1.id, c2.id, c3.id]
    assert [c.id for c in backward.chords()] == [c1.id, c2.id, c3.id]
    assert forward.first_chord is c1
    assert forward.last_chord is c3


def test_duplicate_beam_insertion_is_logged(split_measure, caplog) -> None:
    measure = split_measure["measure"]
    b1, _ = split_measure["beams"]
    group = measure.create_group()
    group.add_beam(b1.id)

    with caplog.at_level(logging.WARNING):
        group.add_beam(b1.id)

    assert group.beams == {b1.id}
    assert "beam_already_in_group" in caplog.text


def test_group_ids_are_sequential_and_never_reused(split_measure) -> None:
    measure = split_measure["measure"]
    first = measure.create_group()
    second = measure.create_group()
    measure.groups.remove(second)
    third = measure.create_group()

    assert (first.id, second.id, third.id) == (1, 2, 3)


def test_vip_beam_flags_its_group(split_measure, caplog) -> None:
    measure = split_measure["measure"]
    b1, _ = split_measure["beams"]
    measure.graph.flag_vip(b1.id)

    with caplog.at_level(logging.INFO, logger="beamgroup.beam_group"):
        groups = GroupBuilder().build(measure)

    assert groups[0].vip
    assert f"Beam#{b1.id}" in caplog.text
