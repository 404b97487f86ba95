"""Explicit JSON persistence for measures, beam groups and whole sheets."""

from __future__ import annotations

import json
from fractions import Fraction
from pathlib import Path
from typing import Any

from beamgroup.beam_group import BeamGroup
from beamgroup.graph_models import Beam, Box, Chord, Head, Line, Point, Relation, RelationKind, Staff, Stem
from beamgroup.measure import Measure, MeasureStack
from beamgroup.relation_graph import RelationGraph

# ── Value helpers ────────────────────────────────────────────────────────────


def _point(value: list[float] | None) -> Point | None:
    return None if value is None else Point(float(value[0]), float(value[1]))


def _point_list(point: Point | None) -> list[float] | None:
    return None if point is None else [point.x, point.y]


def _fraction(value: str | int | None) -> Fraction | None:
    return None if value is None else Fraction(value)


def _fraction_str(value: Fraction | None) -> str | None:
    return None if value is None else str(value)


# ── Beam groups ──────────────────────────────────────────────────────────────


def group_to_dict(group: BeamGroup) -> dict[str, Any]:
    """Serialize a group as ``{id, beams, multiStaff}``."""
    return {
        "id": group.id,
        "beams": sorted(group.beams),
        "multiStaff": group.multi_staff,
    }


def group_from_dict(data: dict[str, Any]) -> BeamGroup:
    """
    Deserialize a group.

    The returned group is not linked: its measure is None and the beams do
    not point back to it until ``relink_groups`` is run.
    """
    return BeamGroup(
        int(data["id"]),
        beams={int(bid) for bid in data.get("beams", ())},
        multi_staff=bool(data.get("multiStaff", False)),
    )


def relink_groups(measure: Measure, groups: list[BeamGroup]) -> None:
    """
    Restore the back-references of reloaded groups.

    Each group gets its owning measure, every beam gets its owning group id,
    and the measure group id allocator is moved past the reloaded ids.

    Raises:
        ValueError: If a beam is claimed by two groups.
        KeyError:   If a group references an unknown beam.
    """
    owners: dict[int, int] = {}
    for group in groups:
        for beam_id in group.beams:
            if beam_id in owners:
                raise ValueError(
                    f"Beam#{beam_id} is claimed by groups {owners[beam_id]} and {group.id}."
                )
            owners[beam_id] = group.id

    for group in groups:
        measure.register_group(group)
        for beam_id in group.beams:
            measure.graph.beam(beam_id).group_id = group.id


# ── Measures ─────────────────────────────────────────────────────────────────


def _measure_node_ids(measure: Measure) -> set[int]:
    """
    Ids of the graph nodes used by a measure.

    These are the measure chords with their heads, stems and beams, the beams
    of its groups, and the staves of those stems.
    """
    graph = measure.graph
    node_ids: set[int] = set()

    for chord in measure.chords:
        node_ids.add(chord.id)
        node_ids.update(chord.head_ids)
        node_ids.update(chord.beam_ids)
        if chord.stem_id is not None:
            node_ids.add(chord.stem_id)
            staff_id = graph.stem(chord.stem_id).staff_id
            if staff_id is not None:
                node_ids.add(staff_id)

    for group in measure.groups:
        node_ids.update(group.beams)

    return node_ids


def measure_to_dict(measure: Measure) -> dict[str, Any]:
    """
    Serialize a measure, with the graph nodes and relations it uses.

    The graph may be shared by several measures: only the nodes reachable from
    the measure chords and groups are written, with the relations linking two
    of them.
    """
    graph = measure.graph
    used = _measure_node_ids(measure)
    return {
        "id": measure.id,
        "staves": [{"id": staff.id} for staff in graph.nodes(Staff) if staff.id in used],
        "heads": [
            {
                "id": head.id,
                "box": [head.box.x, head.box.y, head.box.width, head.box.height],
                "chord": head.chord_id,
                "mirror": head.mirror_id,
            }
            for head in graph.nodes(Head)
            if head.id in used
        ],
        "stems": [
            {
                "id": stem.id,
                "top": _point_list(stem.top),
                "bottom": _point_list(stem.bottom),
                "width": stem.width,
                "staff": stem.staff_id,
            }
            for stem in graph.nodes(Stem)
            if stem.id in used
        ],
        "beams": [
            {
                "id": beam.id,
                "median": [_point_list(beam.median.p1), _point_list(beam.median.p2)],
                "height": beam.height,
                "hook": beam.hook,
                "chords": list(beam.chord_ids),
            }
            for beam in graph.nodes(Beam)
            if beam.id in used
        ],
        "chords": [
            {
                "id": chord.id,
                "heads": list(chord.head_ids),
                "stem": chord.stem_id,
                "beams": list(chord.beam_ids),
                "duration": _fraction_str(chord.duration),
                "timeOffset": _fraction_str(chord.time_offset),
                "voice": chord.voice,
                "rest": chord.rest,
            }
            for chord in measure.chords
        ],
        "relations": [
            {
                "kind": rel.kind.value,
                "source": rel.source,
                "target": rel.target,
                "extensionPoint": _point_list(rel.extension_point),
            }
            for rel in graph.all_relations()
            if rel.source in used and rel.target in used
        ],
        "vip": [node_id for node_id in graph.vip_ids if node_id in used],
        "groups": [group_to_dict(group) for group in measure.groups],
    }


def measure_from_dict(data: dict[str, Any], interline: float) -> Measure:
    """
    Rebuild a measure and its graph, then relink its persisted groups.

    A beam whose ``chords`` list is omitted is attached to every chord that
    lists it in its ``beams``.

    Raises:
        ValueError: If a beam references a chord missing from the measure.
    """
    graph = RelationGraph()

    for staff in data.get("staves", ()):
        graph.add_node(Staff(id=int(staff["id"])))

    for head in data.get("heads", ()):
        graph.add_node(
            Head(
                box=Box(*(float(v) for v in head["box"])),
                chord_id=head.get("chord"),
                mirror_id=head.get("mirror"),
                id=int(head["id"]),
            )
        )

    for stem in data.get("stems", ()):
        graph.add_node(
            Stem(
                top=_point(stem["top"]),
                bottom=_point(stem["bottom"]),
                width=float(stem.get("width", 1.0)),
                staff_id=stem.get("staff"),
                id=int(stem["id"]),
            )
        )

    for beam in data.get("beams", ()):
        p1, p2 = beam["median"]
        graph.add_node(
            Beam(
                median=Line(_point(p1), _point(p2)),
                height=float(beam["height"]),
                hook=bool(beam.get("hook", False)),
                chord_ids=[int(cid) for cid in beam.get("chords", ())],
                id=int(beam["id"]),
            )
        )

    measure = Measure(graph, interline, measure_id=int(data.get("id", 1)))
    explicit_chords = {int(b["id"]) for b in data.get("beams", ()) if "chords" in b}

    for item in data.get("chords", ()):
        chord = Chord(
            head_ids=[int(hid) for hid in item.get("heads", ())],
            stem_id=item.get("stem"),
            beam_ids=[int(bid) for bid in item.get("beams", ())],
            duration=_fraction(item.get("duration")),
            time_offset=_fraction(item.get("timeOffset")),
            voice=item.get("voice"),
            rest=bool(item.get("rest", False)),
            id=int(item["id"]),
        )
        measure.add_chord(chord)
        for head_id in chord.head_ids:
            head = graph.head(head_id)
            if head.chord_id is None:
                head.chord_id = chord.id
        for beam_id in chord.beam_ids:
            beam = graph.beam(beam_id)
            if beam_id not in explicit_chords and chord.id not in beam.chord_ids:
                beam.chord_ids.append(chord.id)

    loaded_chords = set(measure.chord_ids)
    for beam in graph.nodes(Beam):
        unknown = [cid for cid in beam.chord_ids if cid not in loaded_chords]
        if unknown:
            raise ValueError(f"Beam#{beam.id} references unknown chords {unknown}.")

    for rel in data.get("relations", ()):
        graph.add_edge(
            int(rel["source"]),
            int(rel["target"]),
            Relation(RelationKind(rel["kind"]), extension_point=_point(rel.get("extensionPoint"))),
        )

    for node_id in data.get("vip", ()):
        graph.flag_vip(int(node_id))

    relink_groups(measure, [group_from_dict(g) for g in data.get("groups", ())])
    return measure


# ── Sheets ───────────────────────────────────────────────────────────────────


def sheet_to_dict(stacks: list[MeasureStack], interline: float) -> dict[str, Any]:
    return {
        "interline": interline,
        "stacks": [
            {"id": stack.id, "measures": [measure_to_dict(m) for m in stack.measures]}
            for stack in stacks
        ],
    }


def sheet_from_dict(data: dict[str, Any]) -> tuple[list[MeasureStack], float]:
    """
    Rebuild the measure stacks of a sheet document.

    Returns:
        The stacks, and the sheet interline (pixels per interline).
    """
    interline = float(data["interline"])
    stacks = [
        MeasureStack(
            id=int(stack["id"]),
            measures=[measure_from_dict(m, interline) for m in stack.get("measures", ())],
        )
        for stack in data.get("stacks", ())
    ]
    return stacks, interline


def load_sheet(path: str | Path) -> tuple[list[MeasureStack], float]:
    """
    Read a sheet document from disk.

    Raises:
        OSError:    If the file cannot be read.
        ValueError: If the content is not a valid sheet document.
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    try:
        return sheet_from_dict(data)
    except (KeyError, TypeError, IndexError) as exc:
        raise ValueError(f"Invalid sheet document '{path}': {exc!r}") from exc


def save_sheet(path: str | Path, stacks: list[MeasureStack], interline: float) -> None:
    """Write a sheet document to disk as indented JSON."""
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(sheet_to_dict(stacks, interline), fh, indent=2)
        fh.write("\n")
