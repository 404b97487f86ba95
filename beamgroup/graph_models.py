"""Data models for the nodes and relations of the notation relation graph."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from fractions import Fraction

from beamgroup.errors import TimingError
from beamgroup.geometry import union_boxes, y_at_x


# ── Geometry values ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Point:
    """A point in sheet pixel coordinates (y grows downwards)."""

    x: float
    y: float


@dataclass(frozen=True)
class Box:
    """An axis-aligned rectangle in sheet pixel coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def union(self, *others: Box) -> Box:
        """Return the smallest box containing this box and all ``others``."""
        return Box(*union_boxes([self, *others]))


@dataclass(frozen=True)
class Line:
    """A line segment, used as the median line of a beam."""

    p1: Point
    p2: Point

    def y_at_x(self, x: float) -> float:
        """Ordinate of the (extended) line at abscissa ``x``."""
        return y_at_x(self, x)


# ── Graph nodes ──────────────────────────────────────────────────────────────

@dataclass
class Staff:
    """A staff, only referenced by identity to detect multi-staff groups."""

    id: int = 0


@dataclass
class Head:
    """
    A note head (or the rest symbol of a rest chord).

    Attributes:
        box:       Bounding box of the head glyph.
        chord_id:  Id of the chord the head belongs to.
        mirror_id: Id of the duplicated head when the chord was split.
    """

    box: Box
    chord_id: int | None = None
    mirror_id: int | None = None
    id: int = 0


@dataclass
class Stem:
    """
    A stem glyph, described by its two ends and its thickness.

    A stem extracted from a longer one (see the group splitter) reuses part of
    the longer stem extent.
    """

    top: Point
    bottom: Point
    width: float = 1.0
    staff_id: int | None = None
    id: int = 0

    @property
    def box(self) -> Box:
        left = min(self.top.x, self.bottom.x) - self.width / 2
        right = max(self.top.x, self.bottom.x) + self.width / 2
        return Box(left, self.top.y, right - left, self.bottom.y - self.top.y)

    @property
    def length(self) -> float:
        return self.bottom.y - self.top.y


@dataclass
class Beam:
    """
    A beam (or beam hook) connecting stems.

    Attributes:
        median:    Median line of the beam glyph.
        height:    Beam thickness in pixels.
        hook:      True for a beam hook, attached to a single stem.
        chord_ids: Chords touched by the beam, in no particular order.
        group_id:  Id of the owning BeamGroup within its measure, if any.
    """

    median: Line
    height: float
    hook: bool = False
    chord_ids: list[int] = field(default_factory=list)
    group_id: int | None = None
    id: int = 0

    @property
    def bounds(self) -> Box:
        half = self.height / 2
        left = min(self.median.p1.x, self.median.p2.x)
        right = max(self.median.p1.x, self.median.p2.x)
        top = min(self.median.p1.y, self.median.p2.y) - half
        bottom = max(self.median.p1.y, self.median.p2.y) + half
        return Box(left, top, right - left, bottom - top)


@dataclass
class Chord:
    """
    A chord: heads sharing one stem, or a rest.

    Attributes:
        head_ids:    Heads of the chord (a single rest symbol for a rest chord).
        stem_id:     Stem of the chord, None for rests.
        beam_ids:    Attached beams, ordered from stem tail towards heads.
        duration:    Chord duration, as resolved by the rhythm pass.
        time_offset: Time offset within the measure, None until assigned.
        voice:       Voice identifier, None until assigned.
        rest:        True for a rest chord.
    """

    head_ids: list[int] = field(default_factory=list)
    stem_id: int | None = None
    beam_ids: list[int] = field(default_factory=list)
    duration: Fraction | None = None
    time_offset: Fraction | None = None
    voice: int | None = None
    rest: bool = False
    id: int = 0

    @property
    def end_time(self) -> Fraction:
        """
        Time offset at which the chord ends.

        Raises:
            TimingError: If the time offset or the duration is not known.
        """
        if self.time_offset is None:
            raise TimingError(f"Chord#{self.id} has no time offset")
        if self.duration is None:
            raise TimingError(f"Chord#{self.id} has no duration")
        return self.time_offset + self.duration


Node = Staff | Head | Stem | Beam | Chord


# ── Relations ────────────────────────────────────────────────────────────────

class RelationKind(str, Enum):
    """Kinds of typed relations between graph nodes."""

    BEAM_STEM = "beam-stem"
    BEAM_HEAD = "beam-head"
    HEAD_STEM = "head-stem"
    STEM_ALIGNMENT = "stem-alignment"
    NO_EXCLUSION = "no-exclusion"


@dataclass
class Relation:
    """
    A typed, directed edge between two graph nodes.

    Attributes:
        kind:            The relation kind.
        extension_point: For beam-stem relations, the stem point where the
                         beam visually ends.
        source:          Source node id, set when the edge is inserted.
        target:          Target node id, set when the edge is inserted.
    """

    kind: RelationKind
    extension_point: Point | None = None
    source: int | None = None
    target: int | None = None
    id: int = 0

    def duplicate(self) -> Relation:
        """Copy the relation payload, without its end points."""
        return replace(self, source=None, target=None, id=0)
