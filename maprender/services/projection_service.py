"""Mercator projection of decoded features onto an svg viewBox."""

import math
from typing import Optional

import numpy as np
from shapely import transform as shapely_transform
from shapely.geometry import LineString, MultiLineString, MultiPoint, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry

# Latitude limit of the Web Mercator projection
MAX_LATITUDE = 85.0511

# Width used when no sizing information is supplied
DEFAULT_WIDTH = 400.0


def mercator(lon: np.ndarray, lat: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Project longitude/latitude (degrees) to Mercator x/y (degrees)."""
    lat = np.clip(lat, -MAX_LATITUDE, MAX_LATITUDE)
    y = np.degrees(np.log(np.tan(math.pi / 4 + np.radians(lat) / 2)))
    return np.asarray(lon, dtype=float), y


def resolve_width(width: float, min_width: float, max_width: float, default: float = DEFAULT_WIDTH) -> float:
    """Choose the viewBox width.

    The fixed width if given, otherwise the average of the min and max width
    if both are given, otherwise the default.
    """
    if width > 0:
        return float(width)
    if min_width > 0 and max_width > 0:
        return (min_width + max_width) / 2.0
    return float(default)


class ProjectionService:
    """Projects geometries in lon/lat into a viewBox of a given width.

    The height is derived from the width and the projected bounding box, so
    the map keeps its true aspect ratio.
    """

    def __init__(self, bounds: tuple[float, float, float, float], width: float):
        """Initialize the projection.

        Args:
            bounds: (west, south, east, north) of the geometries in degrees.
            width: Target viewBox width.
        """
        west, south, east, north = bounds
        xs, ys = mercator(np.array([west, east]), np.array([south, north]))
        self.min_x, self.max_x = float(xs[0]), float(xs[1])
        self.min_y, self.max_y = float(ys[0]), float(ys[1])
        self.width = float(width)

        span_x = self.max_x - self.min_x
        span_y = self.max_y - self.min_y
        if span_x > 0:
            self.scale = self.width / span_x
        elif span_y > 0:
            self.scale = self.width / span_y
        else:
            self.scale = 1.0
        self.height = span_y * self.scale

    @classmethod
    def height_for_width(cls, bounds: tuple[float, float, float, float], width: float) -> float:
        """Height of the viewBox that preserves the aspect ratio at the given width."""
        return cls(bounds, width).height

    def project_coords(self, coords: np.ndarray) -> np.ndarray:
        """Project an (n, 2) array of lon/lat into viewBox coordinates."""
        x, y = mercator(coords[:, 0], coords[:, 1])
        px = (x - self.min_x) * self.scale
        py = (self.max_y - y) * self.scale  # svg y axis points down
        return np.column_stack([px, py])

    def project(self, geometry: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
        """Project a shapely geometry into viewBox coordinates."""
        if geometry is None:
            return None
        return shapely_transform(geometry, self.project_coords)


def _format_number(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _coords_to_path(coords, close: bool) -> str:
    points = [f"{_format_number(x)},{_format_number(y)}" for x, y in coords]
    if not points:
        return ""
    path = "M" + "L".join(points)
    return path + "Z" if close else path


def to_path(geometry: Optional[BaseGeometry]) -> str:
    """Convert a projected geometry to the ``d`` attribute of an svg path.

    Points are drawn as a tiny closed square so that they remain visible.
    """
    if geometry is None or geometry.is_empty:
        return ""
    if isinstance(geometry, Polygon):
        rings = [geometry.exterior, *geometry.interiors]
        return "".join(_coords_to_path(list(r.coords)[:-1], close=True) for r in rings)
    if isinstance(geometry, LineString):
        return _coords_to_path(geometry.coords, close=False)
    if isinstance(geometry, Point):
        x, y = geometry.x, geometry.y
        return _coords_to_path([(x - 1, y - 1), (x + 1, y - 1), (x + 1, y + 1), (x - 1, y + 1)], close=True)
    if isinstance(geometry, (MultiPolygon, MultiLineString, MultiPoint)):
        return "".join(to_path(g) for g in geometry.geoms)
    return ""
