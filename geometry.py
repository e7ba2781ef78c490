"""
Ribbon geometry between two summits.

A ribbon leaves the "from" circle through two anchors at +/-60 degrees off the
connecting axis and lands on a mirrored pair of anchors on the "to" side. The
connection weight only moves the cubic control points: at value 1 they sit on
the anchors, and as the value drops they swing away and the ribbon droops.
"""
import math
from typing import NamedTuple, Optional, Tuple

from state import Summit

SIDE_SCALE = math.sqrt(3 / 4)
PATH_PRECISION = 6


class Vec(NamedTuple):
    x: float
    y: float

    def __add__(self, other: "Vec") -> "Vec":
        return Vec(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vec") -> "Vec":
        return Vec(self.x - other.x, self.y - other.y)

    def __neg__(self) -> "Vec":
        return Vec(-self.x, -self.y)

    def scale(self, k: float) -> "Vec":
        return Vec(self.x * k, self.y * k)

    def length(self) -> float:
        return math.hypot(self.x, self.y)


class Circle(NamedTuple):
    x: float
    y: float
    r: float

    @property
    def center(self) -> Vec:
        return Vec(self.x, self.y)

    @classmethod
    def of(cls, summit: Summit) -> Optional["Circle"]:
        if not summit.has_geometry:
            return None
        return cls(summit.x, summit.y, summit.r)


class RibbonSide(NamedTuple):
    """Anchors and control points of one end of a ribbon, in world space."""
    s0: Vec
    s1: Vec
    tail0: Vec
    tail1: Vec


class RibbonGeometry(NamedTuple):
    direction: Vec
    start: Vec
    near: RibbonSide
    far: RibbonSide
    approach: Vec


def rot90(p: Vec) -> Vec:
    return Vec(-p.y, p.x)


def rot90_inv(p: Vec) -> Vec:
    return Vec(p.y, -p.x)


def normalize(d: Vec) -> Optional[Vec]:
    length = d.length()
    if length == 0 or not math.isfinite(length):
        return None
    return d.scale(1 / length)


def control_offset(value: float) -> float:
    """How far a control point swings off its anchor, in unit-circle lengths."""
    return 1 - value


def local_side(n: Vec, value: float) -> RibbonSide:
    """Anchors and control points on the unit circle for direction `n`."""
    half = n.scale(0.5)
    side = Vec(-n.y, n.x).scale(SIDE_SCALE)
    s0 = half + side
    s1 = half - side
    k = control_offset(value)
    return RibbonSide(
        s0=s0,
        s1=s1,
        tail0=s0 + rot90(s0).scale(k),
        tail1=s1 + rot90_inv(s1).scale(k),
    )


def _to_world(side: RibbonSide, origin: Vec, r: float) -> RibbonSide:
    return RibbonSide(*(p.scale(r) + origin for p in side))


def _mirror(side: RibbonSide) -> RibbonSide:
    return RibbonSide(*(-p for p in side))


def _all_finite(*points: Vec) -> bool:
    return all(math.isfinite(p.x) and math.isfinite(p.y) for p in points)


def ribbon_geometry(source: Circle, target: Circle, value: float) -> Optional[RibbonGeometry]:
    """
    World-space points of the ribbon, or None when the direction is undefined
    or any point overflows to a non-finite coordinate.
    """
    n = normalize(target.center - source.center)
    if n is None:
        return None
    local = local_side(n, value)
    approach = target.center - n.scale(target.r)
    near = _to_world(local, source.center, source.r)
    far = _to_world(_mirror(local), approach, target.r)
    if not _all_finite(source.center, approach, *near, *far):
        return None
    return RibbonGeometry(
        direction=n,
        start=source.center,
        near=near,
        far=far,
        approach=approach,
    )


def format_number(v: float) -> str:
    text = f"{v:.{PATH_PRECISION}f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _pt(p: Vec) -> str:
    return f"{format_number(p.x)} {format_number(p.y)}"


def format_path(geo: RibbonGeometry) -> str:
    near, far = geo.near, geo.far
    return " ".join([
        f"M {_pt(geo.start)}",
        f"L {_pt(near.s1)}",
        f"C {_pt(near.tail1)} {_pt(far.tail0)} {_pt(far.s0)}",
        f"L {_pt(geo.approach)}",
        f"L {_pt(far.s1)}",
        f"C {_pt(far.tail1)} {_pt(near.tail0)} {_pt(near.s0)}",
        "Z",
    ])


def ribbon_path(source: Circle, target: Circle, value: float) -> Optional[str]:
    """Closed SVG path for a ribbon; None for degenerate geometry."""
    geo = ribbon_geometry(source, target, value)
    if geo is None:
        return None
    return format_path(geo)


def summit_ribbon_path(source: Summit, target: Summit, value: float) -> Optional[str]:
    """Same as ribbon_path, but also None while either summit lacks geometry."""
    a, b = Circle.of(source), Circle.of(target)
    if a is None or b is None:
        return None
    return ribbon_path(a, b, value)


def bounds(circles) -> Optional[Tuple[float, float, float, float]]:
    """(min_x, min_y, width, height) covering every circle, or None when empty."""
    circles = list(circles)
    if not circles:
        return None
    min_x = min(c.x - c.r for c in circles)
    min_y = min(c.y - c.r for c in circles)
    max_x = max(c.x + c.r for c in circles)
    max_y = max(c.y + c.r for c in circles)
    box = (min_x, min_y, max_x - min_x, max_y - min_y)
    if not all(math.isfinite(v) for v in box):
        return None
    return box
