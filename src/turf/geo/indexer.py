"""H3 cell indexing: bounding boxes, points and GPS tracks to cell ids.

Everything here is a pure function of its inputs. Invalid input raises an
``InputContractError`` subclass before any work is done; nothing is clamped.

Cell ids are canonical H3 index strings (15 lowercase hex digits). The
``h3:`` prefixed form used by older clients is accepted on input by
:func:`normalize_cell` and never produced.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

import h3

from turf.errors import (
    InvalidBBoxError,
    InvalidCellError,
    InvalidCoordinateError,
    InvalidResolutionError,
    InvalidTrackError,
    ViewportTooLargeError,
)

MIN_RESOLUTION = 0
MAX_RESOLUTION = 15

CELL_PREFIX = "h3:"
_CELL_RE = re.compile(r"^[0-9a-f]{15,16}$")

_EARTH_RADIUS_KM = 6371.0088
_KM_PER_DEGREE = 111.32
# polygon_to_cells follows great-circle edges, so wide boxes are filled in strips.
_MAX_STRIP_WIDTH_DEG = 90.0


@dataclass(frozen=True)
class BBox:
    """Latitude/longitude bounding box in degrees."""

    north: float
    south: float
    east: float
    west: float

    @property
    def is_degenerate(self) -> bool:
        return self.north == self.south or self.east == self.west

    def area_km2(self) -> float:
        """Spherical area of the box."""
        width = math.radians(self.east - self.west)
        band = math.sin(math.radians(self.north)) - math.sin(math.radians(self.south))
        return _EARTH_RADIUS_KM**2 * width * band


# ── Validation ──


def validate_resolution(res: Any) -> int:
    """Return ``res`` if it is an integer H3 resolution, else raise."""
    if isinstance(res, bool) or not isinstance(res, int):
        msg = f"H3 resolution must be an integer between {MIN_RESOLUTION} and {MAX_RESOLUTION}"
        raise InvalidResolutionError(msg, resolution=repr(res))
    if not MIN_RESOLUTION <= res <= MAX_RESOLUTION:
        msg = f"H3 resolution must be an integer between {MIN_RESOLUTION} and {MAX_RESOLUTION}"
        raise InvalidResolutionError(msg, resolution=res)
    return res


def _check_number(name: str, value: Any, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{name} must be a number"
        raise InvalidCoordinateError(msg, field=name)
    if not math.isfinite(value) or not -limit <= value <= limit:
        msg = f"{name} must be between {-limit:g} and {limit:g}"
        raise InvalidCoordinateError(msg, field=name, value=value)
    return float(value)


def validate_latlng(lat: Any, lng: Any) -> tuple[float, float]:
    return _check_number("lat", lat, 90), _check_number("lng", lng, 180)


def validate_bbox(bbox: BBox) -> BBox:
    """Check ranges and corner ordering.

    A box crossing the antimeridian (west > east) is rejected, not wrapped.
    """
    _check_number("north", bbox.north, 90)
    _check_number("south", bbox.south, 90)
    _check_number("east", bbox.east, 180)
    _check_number("west", bbox.west, 180)
    if bbox.south > bbox.north or bbox.west > bbox.east:
        msg = "Invalid bounding box: south <= north and west <= east are required"
        raise InvalidBBoxError(msg)
    return bbox


def estimate_cell_count(bbox: BBox, res: int) -> int:
    """Rough number of cells covering ``bbox``."""
    return math.ceil(bbox.area_km2() / h3.average_hexagon_area(res, unit="km^2"))


# ── Cells ──


def normalize_cell(cell: Any) -> str:
    """Return the canonical form of a cell id or raise ``InvalidCellError``."""
    if not isinstance(cell, str):
        raise InvalidCellError("Invalid H3 cell ID", cell=repr(cell))
    value = cell.strip().lower()
    if value.startswith(CELL_PREFIX):
        value = value[len(CELL_PREFIX):]
    if not _CELL_RE.match(value) or not h3.is_valid_cell(value):
        raise InvalidCellError("Invalid H3 cell ID", cell=cell)
    return value


def normalize_cells(cells: Iterable[Any]) -> list[str]:
    """Normalize and de-duplicate ``cells``, sorted for stable batching."""
    return sorted({normalize_cell(c) for c in cells})


def cell_for_point(lat: float, lng: float, res: int) -> str:
    """The single cell containing the point."""
    res = validate_resolution(res)
    lat, lng = validate_latlng(lat, lng)
    return h3.latlng_to_cell(lat, lng, res)


def _sample_step_deg(res: int) -> float:
    # A quarter of the average edge keeps consecutive samples in the same or
    # adjacent cells, with room for cells smaller than the average.
    return h3.average_hexagon_edge_length(res, unit="km") / _KM_PER_DEGREE / 4


def _interpolate(
    start: tuple[float, float], end: tuple[float, float], step: float
) -> Iterator[tuple[float, float]]:
    """Points from ``start`` to ``end`` (lat, lng), both ends included."""
    dlat = end[0] - start[0]
    dlng = end[1] - start[1]
    n = max(1, math.ceil(max(abs(dlat), abs(dlng)) / step))
    for i in range(n + 1):
        t = i / n
        yield start[0] + dlat * t, start[1] + dlng * t


def _boundary_cells(bbox: BBox, res: int) -> set[str]:
    step = _sample_step_deg(res)
    sw = (bbox.south, bbox.west)
    nw = (bbox.north, bbox.west)
    ne = (bbox.north, bbox.east)
    se = (bbox.south, bbox.east)
    cells: set[str] = set()
    for start, end in ((sw, nw), (nw, ne), (ne, se), (se, sw)):
        for lat, lng in _interpolate(start, end, step):
            cells.add(h3.latlng_to_cell(lat, lng, res))
    return cells


def _interior_cells(bbox: BBox, res: int) -> set[str]:
    cells: set[str] = set()
    strips = max(1, math.ceil((bbox.east - bbox.west) / _MAX_STRIP_WIDTH_DEG))
    width = (bbox.east - bbox.west) / strips
    for i in range(strips):
        west = bbox.west + i * width
        east = bbox.east if i == strips - 1 else west + width
        poly = h3.LatLngPoly(
            [(bbox.south, west), (bbox.north, west), (bbox.north, east), (bbox.south, east)]
        )
        cells.update(h3.polygon_to_cells(poly, res))
    return cells


def cells_for_bbox(bbox: BBox, res: int, max_cells: int | None = None) -> frozenset[str]:
    """Cells whose area intersects ``bbox`` at resolution ``res``.

    The polygon fill covers cells centred inside the box; boundary sampling
    adds cells that only clip an edge, and the cell holding the whole box
    when it is smaller than one cell.
    """
    res = validate_resolution(res)
    validate_bbox(bbox)
    if max_cells is not None:
        estimate = estimate_cell_count(bbox, res)
        if estimate > max_cells:
            msg = f"Bounding box covers about {estimate} cells at resolution {res}; the limit is {max_cells}"
            raise ViewportTooLargeError(msg, estimate=estimate, limit=max_cells)

    cells = _boundary_cells(bbox, res)
    if not bbox.is_degenerate:
        cells |= _interior_cells(bbox, res)
    return frozenset(cells)


# ── Tracks ──


def _track_lines(track: Any) -> list[list[Any]]:
    geometry = track.get("geometry") if isinstance(track, dict) and track.get("type") == "Feature" else track
    if not isinstance(geometry, dict):
        raise InvalidTrackError("Track must be a GeoJSON Feature or geometry")
    kind = geometry.get("type")
    coords = geometry.get("coordinates")
    if kind == "LineString" and isinstance(coords, list):
        return [coords]
    if kind == "MultiLineString" and isinstance(coords, list) and all(isinstance(c, list) for c in coords):
        return coords
    raise InvalidTrackError("GeoJSON must be a valid Feature with LineString or MultiLineString geometry")


def _track_points(line: list[Any]) -> list[tuple[float, float]]:
    points = []
    for position in line:
        if not isinstance(position, (list, tuple)) or len(position) < 2:
            raise InvalidTrackError("Track positions must be [lng, lat] pairs")
        try:
            lat, lng = validate_latlng(position[1], position[0])
        except InvalidCoordinateError as e:
            raise InvalidTrackError(f"Invalid track position: {e.message}") from e
        points.append((lat, lng))
    return points


def validate_track(track: Any) -> None:
    """Raise ``InvalidTrackError`` unless ``track`` is a usable line geometry."""
    for line in _track_lines(track):
        _track_points(line)


def cells_for_track(track: Any, res: int) -> frozenset[str]:
    """Cells visited by a LineString/MultiLineString track."""
    res = validate_resolution(res)
    step = _sample_step_deg(res)
    cells: set[str] = set()
    for line in _track_lines(track):
        points = _track_points(line)
        if len(points) == 1:
            cells.add(h3.latlng_to_cell(points[0][0], points[0][1], res))
        for start, end in zip(points, points[1:]):
            for lat, lng in _interpolate(start, end, step):
                cells.add(h3.latlng_to_cell(lat, lng, res))
    return frozenset(cells)
