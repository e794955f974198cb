"""Service for decoding TopoJSON topologies into drawable features."""

import logging
from typing import Optional

import numpy as np
from shapely.geometry import (
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from shapely.geometry.base import BaseGeometry

from ..models.topology import ArcRef, Feature, GeometryType, TopoGeometry, Topology, TopoTransform

logger = logging.getLogger(__name__)

# Minimum number of points in a closed ring (first == last)
MIN_RING_POINTS = 4


class TopologyService:
    """Converts a topology into a list of features with absolute coordinates.

    Each object in the topology becomes one feature, in input order. Members of
    a GeometryCollection each become a feature of their own. Arcs shared between
    neighbouring regions are decoded once and stitched into every ring that
    references them.
    """

    def decode(self, topology: Optional[Topology]) -> list[Feature]:
        """Decode all objects of a topology into features.

        Args:
            topology: The topology to decode. May be None.

        Returns:
            One feature per geometry, or an empty list when the topology has
            no arcs or no objects.
        """
        if topology is None or topology.is_empty:
            logger.debug("Topology missing or empty; no features decoded")
            return []

        arcs = self.decode_arcs(topology)
        features: list[Feature] = []
        for name, obj in topology.objects.items():
            if obj.type == GeometryType.GEOMETRY_COLLECTION:
                for member in obj.geometries or []:
                    features.append(self._to_feature(member, arcs, topology.transform))
            else:
                features.append(self._to_feature(obj, arcs, topology.transform))

        logger.debug("Decoded %d features from %d objects", len(features), len(topology.objects))
        return features

    @staticmethod
    def decode_arcs(topology: Topology) -> list[np.ndarray]:
        """Convert the arc table to absolute coordinates.

        Quantized topologies store each point of an arc as an offset from the
        previous point; a running sum recovers the quantized positions, which
        the transform then maps back to longitude/latitude.
        """
        transform = topology.transform
        decoded = []
        for arc in topology.arcs:
            points = np.asarray([p[:2] for p in arc], dtype=float).reshape(-1, 2)
            if transform is not None:
                points = np.cumsum(points, axis=0)
                points = points * np.asarray(transform.scale) + np.asarray(transform.translate)
            decoded.append(points)
        return decoded

    @staticmethod
    def resolve_line(refs: list[ArcRef], arcs: list[np.ndarray]) -> np.ndarray:
        """Concatenate the referenced arcs into a single line.

        The first point of every arc after the first duplicates the last point
        of the previous arc and is dropped.
        """
        parts = []
        for i, ref in enumerate(refs):
            points = arcs[ref.index]
            if ref.reversed:
                points = points[::-1]
            if i > 0:
                points = points[1:]
            parts.append(points)
        if not parts:
            return np.empty((0, 2))
        return np.concatenate(parts)

    def resolve_ring(self, refs: list[ArcRef], arcs: list[np.ndarray]) -> np.ndarray:
        """Resolve a ring, closing it if the stitched arcs do not already close."""
        ring = self.resolve_line(refs, arcs)
        if len(ring) > 0 and not np.array_equal(ring[0], ring[-1]):
            ring = np.vstack([ring, ring[:1]])
        return ring

    def _polygon(self, rings: list[list[ArcRef]], arcs: list[np.ndarray]) -> Optional[Polygon]:
        resolved = [self.resolve_ring(r, arcs) for r in rings]
        if not resolved or len(resolved[0]) < MIN_RING_POINTS:
            return None
        holes = [r for r in resolved[1:] if len(r) >= MIN_RING_POINTS]
        return Polygon(resolved[0], holes)

    @staticmethod
    def _transform_point(position: list[float], transform: Optional[TopoTransform]) -> tuple[float, float]:
        x, y = float(position[0]), float(position[1])
        if transform is not None:
            x = x * transform.scale[0] + transform.translate[0]
            y = y * transform.scale[1] + transform.translate[1]
        return (x, y)

    def to_geometry(
        self,
        obj: TopoGeometry,
        arcs: list[np.ndarray],
        transform: Optional[TopoTransform] = None,
    ) -> Optional[BaseGeometry]:
        """Build the shapely geometry for a single topology geometry."""
        geometry_type = obj.type
        if geometry_type is None:
            return None

        if geometry_type == GeometryType.POLYGON:
            return self._polygon(obj.arcs or [], arcs)

        if geometry_type == GeometryType.MULTI_POLYGON:
            polygons = [self._polygon(p, arcs) for p in obj.arcs or []]
            polygons = [p for p in polygons if p is not None]
            return MultiPolygon(polygons) if polygons else None

        if geometry_type == GeometryType.LINE_STRING:
            line = self.resolve_line(obj.arcs or [], arcs)
            return LineString(line) if len(line) >= 2 else None

        if geometry_type == GeometryType.MULTI_LINE_STRING:
            lines = [self.resolve_line(refs, arcs) for refs in obj.arcs or []]
            lines = [line for line in lines if len(line) >= 2]
            return MultiLineString(lines) if lines else None

        if geometry_type == GeometryType.POINT:
            if not obj.coordinates:
                return None
            return Point(self._transform_point(obj.coordinates, transform))

        if geometry_type == GeometryType.MULTI_POINT:
            points = [self._transform_point(p, transform) for p in obj.coordinates or []]
            return MultiPoint(points) if points else None

        logger.warning("Unsupported nested geometry type %s", geometry_type)
        return None

    def _to_feature(
        self,
        obj: TopoGeometry,
        arcs: list[np.ndarray],
        transform: Optional[TopoTransform],
    ) -> Feature:
        feature_id = None if obj.id is None else str(obj.id)
        return Feature(
            id=feature_id,
            geometry=self.to_geometry(obj, arcs, transform),
            properties=dict(obj.properties or {}),
        )

    @staticmethod
    def bounds(features: list[Feature]) -> Optional[tuple[float, float, float, float]]:
        """Combined (min_x, min_y, max_x, max_y) of all feature geometries."""
        boxes = [
            f.geometry.bounds
            for f in features
            if f.geometry is not None and not f.geometry.is_empty
        ]
        if not boxes:
            return None
        arr = np.asarray(boxes)
        return (
            float(arr[:, 0].min()),
            float(arr[:, 1].min()),
            float(arr[:, 2].max()),
            float(arr[:, 3].max()),
        )
