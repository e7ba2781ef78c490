"""
Binds summits and connections to persistent SVG elements.

Each summit gets one <g class="summit"> (circle + title), each ordered
connection pair one <path class="connection">. Handles are created once and
then only mutated: transforms and text for summits, the `d` string for ribbons.
"""
import colorsys
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

from bs4 import BeautifulSoup

from geometry import Circle, bounds, format_number, summit_ribbon_path
from state import Connection, Summit, SummitId

logger = logging.getLogger("summits.render")

SVG_NS = "http://www.w3.org/2000/svg"
SATURATIONS = (0.35, 0.5, 0.65)
DEFAULT_NODE_LIGHTNESS = 0.4
DEFAULT_EDGE_LIGHTEN = 0.25
MAX_LIGHTNESS = 0.95
VIEW_PADDING = 1.0


def identity_color(identity: str, lightness: float = DEFAULT_NODE_LIGHTNESS) -> str:
    """Stable hex color for an identity string (hue and saturation from its hash)."""
    digest = int(hashlib.sha256(identity.encode("utf-8")).hexdigest(), 16)
    hue = (digest % 360) / 360.0
    saturation = SATURATIONS[(digest // 360) % len(SATURATIONS)]
    lightness = min(max(lightness, 0.0), MAX_LIGHTNESS)
    r, g, b = colorsys.hls_to_rgb(hue, lightness, saturation)
    return f"#{int(round(r * 255)):02x}{int(round(g * 255)):02x}{int(round(b * 255)):02x}"


class RenderSurface(Protocol):
    """The scene graph the binding draws into."""

    summit_layer: Any
    connection_layer: Any

    def create_element(self, tag: str) -> Any: ...

    def set_attribute(self, element: Any, name: str, value: str) -> None: ...

    def set_text(self, element: Any, text: str) -> None: ...

    def append_child(self, parent: Any, child: Any) -> None: ...


class SvgSurface:
    """
    In-memory SVG document. Ribbons live in their own layer below the summit
    layer so circles always paint over connection ends.
    """

    def __init__(self):
        self.soup = BeautifulSoup("", "html.parser")
        self.svg = self.soup.new_tag("svg", attrs={"xmlns": SVG_NS})
        self.soup.append(self.svg)
        self.graph = self._layer(self.svg, "graph")
        self.connection_layer = self._layer(self.graph, "connections")
        self.summit_layer = self._layer(self.graph, "summits")

    def _layer(self, parent, css_class: str):
        group = self.create_element("g")
        self.set_attribute(group, "class", css_class)
        self.append_child(parent, group)
        return group

    def create_element(self, tag: str):
        return self.soup.new_tag(tag)

    def set_attribute(self, element, name: str, value: str) -> None:
        element[name] = value

    def set_text(self, element, text: str) -> None:
        element.string = text

    def append_child(self, parent, child) -> None:
        parent.append(child)

    def set_view_box(self, box: Optional[Tuple[float, float, float, float]]) -> None:
        if box is None:
            if "viewBox" in self.svg.attrs:
                del self.svg["viewBox"]
            return
        min_x, min_y, width, height = box
        self.svg["viewBox"] = " ".join(format_number(v) for v in (
            min_x - VIEW_PADDING,
            min_y - VIEW_PADDING,
            width + 2 * VIEW_PADDING,
            height + 2 * VIEW_PADDING,
        ))

    def to_svg(self) -> str:
        return self.soup.decode()


@dataclass
class SummitHandle:
    group: Any
    circle: Any
    text: Any


class RenderBinding:
    """Owns every visual handle; the stores only ever hand it ids and records."""

    def __init__(
        self,
        surface: RenderSurface,
        node_lightness: float = DEFAULT_NODE_LIGHTNESS,
        edge_lighten: float = DEFAULT_EDGE_LIGHTEN,
    ):
        self.surface = surface
        self.node_lightness = node_lightness
        self.edge_lighten = edge_lighten
        self._summits: Dict[SummitId, SummitHandle] = {}
        self._connections: Dict[Tuple[SummitId, SummitId], Any] = {}
        self.node_redraws = 0
        self.edge_redraws = 0

    def summit_handle(self, summit_id: SummitId) -> Optional[SummitHandle]:
        return self._summits.get(summit_id)

    def connection_handle(self, from_id: SummitId, to_id: SummitId):
        return self._connections.get((from_id, to_id))

    def create_summit(self, summit: Summit) -> SummitHandle:
        handle = self._summits.get(summit.id)
        if handle is not None:
            return handle
        surface = self.surface
        circle = surface.create_element("circle")
        for name, value in (
            ("cx", "0"),
            ("cy", "0"),
            ("r", "1"),
            ("stroke", "none"),
            ("fill", identity_color(summit.id, self.node_lightness)),
        ):
            surface.set_attribute(circle, name, value)
        text = surface.create_element("text")
        for name, value in (
            ("x", "0"),
            ("y", "0"),
            ("class", "summit-title"),
            ("text-anchor", "middle"),
            ("dominant-baseline", "central"),
        ):
            surface.set_attribute(text, name, value)
        group = surface.create_element("g")
        surface.set_attribute(group, "class", "summit")
        surface.set_attribute(group, "data-summit", summit.id)
        surface.append_child(group, circle)
        surface.append_child(group, text)
        surface.append_child(self.surface.summit_layer, group)
        handle = self._summits[summit.id] = SummitHandle(group=group, circle=circle, text=text)
        logger.debug("Added summit %s to the scene", summit.id)
        return handle

    def set_title(self, summit: Summit) -> None:
        handle = self.create_summit(summit)
        self.surface.set_text(handle.text, summit.title)

    def redraw_summit(self, summit: Summit) -> bool:
        if not summit.has_geometry:
            return False
        handle = self.create_summit(summit)
        transform = "translate({} {}) scale({})".format(
            format_number(summit.x), format_number(summit.y), format_number(summit.r)
        )
        self.surface.set_attribute(handle.group, "transform", transform)
        self.node_redraws += 1
        return True

    def _create_connection(self, connection: Connection):
        path = self.surface.create_element("path")
        self.surface.set_attribute(path, "class", "connection")
        self.surface.set_attribute(path, "data-from", connection.from_id)
        self.surface.set_attribute(path, "data-to", connection.to_id)
        self.surface.set_attribute(
            path, "fill", identity_color(connection.from_id, self.node_lightness + self.edge_lighten)
        )
        self.surface.append_child(self.surface.connection_layer, path)
        return path

    def redraw_connection(self, connection: Connection, source: Summit, target: Summit) -> bool:
        """Replaces the ribbon's path; skipped when the geometry is degenerate."""
        key = connection.key
        path = self._connections.get(key)
        if path is None:
            path = self._connections[key] = self._create_connection(connection)
        d = summit_ribbon_path(source, target, connection.value)
        if d is None:
            logger.debug("Skipping degenerate ribbon %s -> %s", *key)
            return False
        self.surface.set_attribute(path, "d", d)
        self.edge_redraws += 1
        return True

    def fit_view(self, summits) -> None:
        """Sizes the SVG viewBox around every summit that has geometry."""
        set_view_box = getattr(self.surface, "set_view_box", None)
        if set_view_box is None:
            return
        circles = [Circle.of(s) for s in summits if s.has_geometry]
        set_view_box(bounds(circles))
