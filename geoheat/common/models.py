"""Dataclasses shared between the ingestion and heatmap layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class LocationSample:
    """A captured fix. Only the coordinates feed the heatmap."""

    latitude: float
    longitude: float
    timestamp: datetime
    accuracy: float = 0.0
    altitude: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)

    def distance_to(self, other: "LocationSample") -> float:
        """Great-circle distance to another sample in meters."""

        from .geo import haversine_distance  # local import to avoid cycle

        return haversine_distance(self.point, other.point)

    def __str__(self) -> str:
        return (
            f"Lat: {self.latitude:.6f}, Lng: {self.longitude:.6f}, "
            f"Time: {self.timestamp:%Y-%m-%d %H:%M:%S}, Accuracy: {self.accuracy:.1f}m"
        )


@dataclass(frozen=True)
class GeoBounds:
    """Rectangular lat/lng region; min <= max on both axes."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def lat_span(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def lng_span(self) -> float:
        return self.max_lng - self.min_lng

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.min_lat <= latitude <= self.max_lat and self.min_lng <= longitude <= self.max_lng


@dataclass(frozen=True, eq=False)
class DensityGrid:
    """Square density raster sampled at the top-left corner of each cell."""

    values: np.ndarray  # (N, N) float64, rows follow latitude
    bounds: GeoBounds
    lat_step: float
    lng_step: float

    @property
    def size(self) -> int:
        return int(self.values.shape[0])

    @property
    def max_density(self) -> float:
        if not self.values.size:
            return 0.0
        return float(self.values.max())

    def cell_origin(self, row: int, col: int) -> GeoPoint:
        return GeoPoint(
            self.bounds.min_lat + row * self.lat_step,
            self.bounds.min_lng + col * self.lng_step,
        )

    def peak_cell(self) -> Tuple[int, int]:
        """Row-major index of the first cell holding the maximum density."""

        flat = int(np.argmax(self.values))
        return divmod(flat, self.size)


@dataclass(frozen=True)
class HeatmapColor:
    red: int
    green: int
    blue: int
    alpha: int

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.red, self.green, self.blue, self.alpha)

    @property
    def hex(self) -> str:
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}{self.alpha:02X}"


@dataclass(frozen=True)
class HeatmapPolygon:
    """One emitted grid cell, ready for a renderer."""

    density: float
    intensity: float
    color: HeatmapColor
    vertices: Tuple[GeoPoint, GeoPoint, GeoPoint, GeoPoint]

    @property
    def center(self) -> GeoPoint:
        lat = sum(v.latitude for v in self.vertices) / len(self.vertices)
        lng = sum(v.longitude for v in self.vertices) / len(self.vertices)
        return GeoPoint(lat, lng)
