from __future__ import annotations

from shapely.geometry import Polygon as ShapelyPolygon
from shapely.validation import explain_validity


class GeometryError(Exception):
    pass


def _closed(poly_points: list[tuple[float, float]]) -> list[tuple[float, float]]:
    pts = list(poly_points)
    if pts and pts[0] != pts[-1]:
        pts = pts + [pts[0]]
    return pts


def validate_polygon(poly_points: list[tuple[float, float]], *, name: str = "polygon") -> ShapelyPolygon:
    # Open polygons are accepted and closed here.
    if len(poly_points) < 3:
        raise GeometryError(f"{name} needs at least 3 points")
    poly = ShapelyPolygon(_closed(poly_points))
    if not poly.is_valid:
        raise GeometryError(f"{name} is invalid: {explain_validity(poly)}")
    if poly.area <= 0:
        raise GeometryError(f"{name} has zero area")
    return poly


def polygon_area_m2(poly_points: list[tuple[float, float]]) -> float:
    return float(validate_polygon(poly_points).area)


def polygon_centroid(poly_points: list[tuple[float, float]]) -> tuple[float, float]:
    c = validate_polygon(poly_points).centroid
    return (float(c.x), float(c.y))
