"""
Defines the inbound summit update messages and the in-memory graph records.

Update messages are validated with pydantic; the records held by the stores are
plain dataclasses mutated in place by the dispatcher.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, ValidationError

SummitId = str


class MalformedUpdate(ValueError):
    """Raised when an inbound payload cannot be decoded into a SummitUpdate."""


# --- Pydantic Models for the Update Stream ---

class SummitData(BaseModel):
    title: str = ""
    description: str = ""


class SummitGeometry(BaseModel):
    """Center and radius of a summit in the shared local coordinate space."""
    x: float = Field(..., allow_inf_nan=False)
    y: float = Field(..., allow_inf_nan=False)
    r: float = Field(..., allow_inf_nan=False)


class Role(BaseModel):
    name: str
    identity: str


class SummitRoles(BaseModel):
    roles: List[Role] = Field(default_factory=list)


class ConnectionFeatures(BaseModel):
    """
    A directed, weighted edge as carried inside a summit update.
    `from`/`to` may be omitted on the wire; they are then inferred from the
    map the entry sits in and the id of the summit being updated.
    """
    model_config = ConfigDict(populate_by_name=True)

    from_id: Optional[SummitId] = Field(default=None, alias="from")
    to_id: Optional[SummitId] = Field(default=None, alias="to")
    value: float = Field(..., allow_inf_nan=False)


class SummitConnections(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: Dict[SummitId, ConnectionFeatures] = Field(default_factory=dict)
    from_: Dict[SummitId, ConnectionFeatures] = Field(default_factory=dict, alias="from")


class SummitUpdate(BaseModel):
    """One update for one summit, as received from the stream."""
    id: SummitId = Field(..., min_length=1)
    data: Optional[SummitData] = None
    geometry: SummitGeometry
    roles: Optional[SummitRoles] = None
    connections: Optional[SummitConnections] = None

    def iter_connections(self) -> List["Connection"]:
        """Resolves both connection maps into concrete (from, to, value) edges."""
        if not self.connections:
            return []
        resolved: List[Connection] = []
        for other_id, features in self.connections.to.items():
            resolved.append(Connection(
                from_id=features.from_id or self.id,
                to_id=features.to_id or other_id,
                value=features.value,
            ))
        for other_id, features in self.connections.from_.items():
            resolved.append(Connection(
                from_id=features.from_id or other_id,
                to_id=features.to_id or self.id,
                value=features.value,
            ))
        return resolved


def parse_update(raw: Any) -> SummitUpdate:
    """Decodes a raw frame (str, bytes or an already-decoded dict)."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedUpdate(f"Update is not valid UTF-8: {exc}") from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedUpdate(f"Update is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise MalformedUpdate(f"Update must be a JSON object, got {type(raw).__name__}")
    try:
        return SummitUpdate.model_validate(raw)
    except ValidationError as exc:
        raise MalformedUpdate(f"Update failed validation: {exc.error_count()} error(s)") from exc


# --- Graph Records ---

@dataclass
class Summit:
    """A graph node. x/y/r stay None until the first geometry update."""
    id: SummitId
    title: str = ""
    description: str = ""
    x: Optional[float] = None
    y: Optional[float] = None
    r: Optional[float] = None
    # Ids only; the Connection objects live in the ConnectionStore table.
    connections_to: Set[SummitId] = field(default_factory=set)
    connections_from: Set[SummitId] = field(default_factory=set)

    @property
    def has_geometry(self) -> bool:
        return self.x is not None and self.y is not None and self.r is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "x": self.x,
            "y": self.y,
            "r": self.r,
            "connections": {
                "to": sorted(self.connections_to),
                "from": sorted(self.connections_from),
            },
        }


@dataclass
class Connection:
    from_id: SummitId
    to_id: SummitId
    value: float

    @property
    def key(self) -> tuple:
        return (self.from_id, self.to_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_id, "to": self.to_id, "value": self.value}


@dataclass(frozen=True)
class GeometryChange:
    """Per-field report of a geometry update; truthy when anything moved."""
    x: bool = False
    y: bool = False
    r: bool = False

    def __bool__(self) -> bool:
        return self.x or self.y or self.r
