"""TopoJSON topology models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from shapely.geometry.base import BaseGeometry


class GeometryType(str, Enum):
    """Geometry types allowed inside a topology object."""

    POINT = "Point"
    MULTI_POINT = "MultiPoint"
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"
    GEOMETRY_COLLECTION = "GeometryCollection"


# Nesting depth of the arcs array for each geometry type
ARC_DEPTH = {
    GeometryType.LINE_STRING: 1,
    GeometryType.MULTI_LINE_STRING: 2,
    GeometryType.POLYGON: 2,
    GeometryType.MULTI_POLYGON: 3,
}


class ArcRef(BaseModel):
    """A reference to an arc in the topology's arc table.

    TopoJSON encodes a reversed arc as the one's complement of its index
    (``~i``); that encoding is converted to an explicit flag on ingestion.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    reversed: bool = False

    @classmethod
    def from_raw(cls, value: int) -> "ArcRef":
        """Convert a raw (possibly complemented) TopoJSON arc index."""
        if value < 0:
            return cls(index=~value, reversed=True)
        return cls(index=value)


def _to_arc_refs(value: Any) -> Any:
    """Recursively convert nested raw arc indexes into ArcRef values."""
    if isinstance(value, ArcRef):
        return value
    if isinstance(value, bool):
        raise ValueError("arc index must be an integer")
    if isinstance(value, int):
        return ArcRef.from_raw(value)
    if isinstance(value, float) and value.is_integer():
        return ArcRef.from_raw(int(value))
    if isinstance(value, dict):
        return ArcRef(**value)
    if isinstance(value, (list, tuple)):
        return [_to_arc_refs(v) for v in value]
    raise ValueError(f"invalid arc reference: {value!r}")


def _arc_depths(value: list, depth: int = 1) -> Iterator[int]:
    """Nesting depth of every arc reference in an arcs array."""
    for v in value:
        if isinstance(v, ArcRef):
            yield depth
        elif isinstance(v, list):
            yield from _arc_depths(v, depth + 1)


def _iter_arc_refs(value: Any) -> Iterator[ArcRef]:
    if isinstance(value, ArcRef):
        yield value
    elif isinstance(value, list):
        for v in value:
            yield from _iter_arc_refs(v)


class TopoTransform(BaseModel):
    """Quantization transform of a topology."""

    scale: tuple[float, float]
    translate: tuple[float, float]


class TopoGeometry(BaseModel):
    """A geometry object inside a topology."""

    type: Optional[GeometryType] = None
    id: Optional[Union[str, int]] = None
    properties: Optional[dict[str, Any]] = None
    arcs: Optional[list[Any]] = None
    coordinates: Optional[list[Any]] = None
    geometries: Optional[list["TopoGeometry"]] = None

    @field_validator("arcs", mode="before")
    @classmethod
    def convert_arcs(cls, value):
        if value is None:
            return None
        return _to_arc_refs(value)

    @model_validator(mode="after")
    def check_arc_depth(self) -> "TopoGeometry":
        expected = ARC_DEPTH.get(self.type)
        if expected is None or self.arcs is None:
            return self
        for depth in _arc_depths(self.arcs):
            if depth != expected:
                raise ValueError(
                    f"{self.type.value} arcs must be nested {expected} deep, found an arc at depth {depth}"
                )
        return self

    def arc_refs(self) -> Iterator[ArcRef]:
        """Iterate over every arc referenced by this geometry and its members."""
        yield from _iter_arc_refs(self.arcs)
        for geometry in self.geometries or []:
            yield from geometry.arc_refs()


class Topology(BaseModel):
    """A TopoJSON topology: a shared arc table plus named geometry objects."""

    type: str = "Topology"
    bbox: Optional[list[float]] = None
    transform: Optional[TopoTransform] = None
    arcs: list[list[list[float]]] = Field(default_factory=list)
    objects: dict[str, TopoGeometry] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_arc_indexes(self) -> "Topology":
        arc_count = len(self.arcs)
        for name, geometry in self.objects.items():
            for ref in geometry.arc_refs():
                if ref.index >= arc_count:
                    raise ValueError(
                        f"object '{name}' references arc {ref.index} "
                        f"but the topology only has {arc_count} arcs"
                    )
        return self

    @property
    def is_empty(self) -> bool:
        return not self.arcs or not self.objects


@dataclass
class Feature:
    """A single map region decoded from a topology."""

    id: Optional[str]
    geometry: Optional[BaseGeometry]
    properties: dict[str, Any] = field(default_factory=dict)
