"""
Routes summit updates into the stores and issues the minimal set of redraws.

Each message is applied to completion, in the order received:
data -> geometry -> roles -> connections.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set, Tuple

from render_binding import RenderBinding
from state import (
    Connection,
    GeometryChange,
    MalformedUpdate,
    SummitId,
    SummitRoles,
    SummitUpdate,
    parse_update,
)
from summit_store import ConnectionStore, SummitStore

logger = logging.getLogger("summits.dispatcher")


@dataclass
class DispatchResult:
    summit_id: SummitId
    title_changed: bool = False
    geometry: GeometryChange = field(default_factory=GeometryChange)
    connections: List[Connection] = field(default_factory=list)


class GraphDispatcher:
    def __init__(self, binding: RenderBinding):
        self.binding = binding
        self.summits = SummitStore(on_create=binding.create_summit)
        self.connections = ConnectionStore(self.summits)
        self.messages_applied = 0
        self.messages_dropped = 0

    def handle(self, raw: Any) -> Optional[DispatchResult]:
        """Decodes and applies one raw frame; malformed frames are dropped."""
        try:
            update = parse_update(raw)
        except MalformedUpdate as exc:
            self.messages_dropped += 1
            logger.warning("Dropping malformed summit update: %s", exc)
            return None
        return self.handle_update(update)

    def handle_update(self, update: SummitUpdate) -> DispatchResult:
        summit = self.summits.get_or_create(update.id)
        result = DispatchResult(summit_id=summit.id)

        if update.data is not None:
            result.title_changed = self.summits.apply_data(summit.id, update.data)
            if result.title_changed:
                self.binding.set_title(summit)

        result.geometry = self.summits.apply_geometry(summit.id, update.geometry)

        if update.roles is not None:
            self._apply_roles(summit.id, update.roles)

        for connection in update.iter_connections():
            changed = self.connections.apply_connection(connection)
            if changed is not None:
                result.connections.append(changed)

        # Stores are settled before drawing, so each ribbon is drawn once
        # with its final weight.
        redrawn = set()
        if result.geometry:
            redrawn = self.redraw_summit(summit.id)
        for connection in result.connections:
            if connection.key not in redrawn:
                self._redraw_connection(connection)

        self.messages_applied += 1
        return result

    def redraw_summit(self, summit_id: SummitId) -> Set[Tuple[SummitId, SummitId]]:
        """Moves the summit and rebuilds every ribbon that touches it."""
        summit = self.summits.get(summit_id)
        if summit is None or not self.binding.redraw_summit(summit):
            return set()
        logger.debug("Redrawing summit %s at (%s, %s) r=%s", summit.id, summit.x, summit.y, summit.r)
        redrawn = set()
        for connection in self.connections.incident(summit_id):
            self._redraw_connection(connection)
            redrawn.add(connection.key)
        return redrawn

    def _redraw_connection(self, connection: Connection) -> None:
        source = self.summits.get(connection.from_id)
        target = self.summits.get(connection.to_id)
        self.binding.redraw_connection(connection, source, target)

    def _apply_roles(self, summit_id: SummitId, roles: SummitRoles) -> None:
        # Roles are accepted on the wire but have no rendering yet.
        logger.debug("Ignoring %d role(s) for summit %s", len(roles.roles), summit_id)

    def snapshot(self) -> dict:
        return {
            "summits": self.summits.snapshot(),
            "connections": self.connections.snapshot(),
            "stats": {
                "summits": len(self.summits),
                "connections": len(self.connections),
                "messages_applied": self.messages_applied,
                "messages_dropped": self.messages_dropped,
                "node_redraws": self.binding.node_redraws,
                "edge_redraws": self.binding.edge_redraws,
            },
        }
