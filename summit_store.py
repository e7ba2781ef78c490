"""
In-memory stores for summits and the directed connections between them.

Both stores only ever grow: there is no delete message in the protocol, so
entities live for the lifetime of the process.
"""
import logging
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from state import Connection, GeometryChange, Summit, SummitData, SummitGeometry, SummitId

logger = logging.getLogger("summits.store")


class SummitStore:
    """Owns every Summit, keyed by its externally assigned id."""

    def __init__(self, on_create: Optional[Callable[[Summit], None]] = None):
        self._summits: Dict[SummitId, Summit] = {}
        self._on_create = on_create

    def __contains__(self, summit_id: SummitId) -> bool:
        return summit_id in self._summits

    def __len__(self) -> int:
        return len(self._summits)

    def __iter__(self) -> Iterator[Summit]:
        return iter(self._summits.values())

    def get(self, summit_id: SummitId) -> Optional[Summit]:
        return self._summits.get(summit_id)

    def get_or_create(self, summit_id: SummitId) -> Summit:
        summit = self._summits.get(summit_id)
        if summit is not None:
            return summit
        summit = self._summits[summit_id] = Summit(id=summit_id)
        logger.debug("Created summit %s", summit_id)
        if self._on_create:
            self._on_create(summit)
        return summit

    def apply_data(self, summit_id: SummitId, data: SummitData) -> bool:
        """Stores title and description; returns True when the title changed."""
        summit = self.get_or_create(summit_id)
        summit.description = data.description
        if summit.title == data.title:
            return False
        summit.title = data.title
        return True

    def apply_geometry(self, summit_id: SummitId, geometry: SummitGeometry) -> GeometryChange:
        summit = self.get_or_create(summit_id)
        change = GeometryChange(
            x=_update_field(summit, "x", geometry.x),
            y=_update_field(summit, "y", geometry.y),
            r=_update_field(summit, "r", geometry.r),
        )
        return change

    def snapshot(self) -> Dict[SummitId, dict]:
        return {summit_id: summit.to_dict() for summit_id, summit in self._summits.items()}


def _update_field(summit: Summit, name: str, value: float) -> bool:
    if getattr(summit, name) == value:
        return False
    setattr(summit, name, value)
    return True


class ConnectionStore:
    """
    Single table of directed connections keyed by (from, to).

    Summits only keep the ids of their neighbours; `outgoing` and `incoming`
    both resolve to the very same Connection objects held here, so a weight
    update is visible from either direction.
    """

    def __init__(self, summits: SummitStore):
        self._summits = summits
        self._table: Dict[Tuple[SummitId, SummitId], Connection] = {}

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self) -> Iterator[Connection]:
        return iter(self._table.values())

    def get(self, from_id: SummitId, to_id: SummitId) -> Optional[Connection]:
        return self._table.get((from_id, to_id))

    def apply_connection(self, connection: Connection) -> Optional[Connection]:
        """
        Upserts an edge. Returns the stored Connection when it is new or its
        weight changed, None when nothing changed or an endpoint is unknown.
        """
        source = self._summits.get(connection.from_id)
        target = self._summits.get(connection.to_id)
        if source is None or target is None:
            logger.debug(
                "Dropping connection %s -> %s: unknown endpoint",
                connection.from_id,
                connection.to_id,
            )
            return None

        key = (connection.from_id, connection.to_id)
        existing = self._table.get(key)
        if existing is None:
            stored = self._table[key] = Connection(*key, value=connection.value)
            source.connections_to.add(target.id)
            target.connections_from.add(source.id)
            return stored
        if existing.value == connection.value:
            return None
        existing.value = connection.value
        return existing

    def outgoing(self, summit_id: SummitId) -> Dict[SummitId, Connection]:
        summit = self._summits.get(summit_id)
        if summit is None:
            return {}
        return {to_id: self._table[(summit_id, to_id)] for to_id in summit.connections_to}

    def incoming(self, summit_id: SummitId) -> Dict[SummitId, Connection]:
        summit = self._summits.get(summit_id)
        if summit is None:
            return {}
        return {from_id: self._table[(from_id, summit_id)] for from_id in summit.connections_from}

    def incident(self, summit_id: SummitId) -> List[Connection]:
        """Every connection touching the summit, in either direction."""
        seen = {}
        for connection in self.outgoing(summit_id).values():
            seen[connection.key] = connection
        for connection in self.incoming(summit_id).values():
            seen[connection.key] = connection
        return [seen[key] for key in sorted(seen)]

    def snapshot(self) -> List[dict]:
        return [self._table[key].to_dict() for key in sorted(self._table)]
