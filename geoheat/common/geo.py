"""Geospatial helpers for grid-based density estimation."""

from __future__ import annotations

import math
from typing import Iterable, Tuple

import numpy as np

from .models import GeoBounds, GeoPoint

EARTH_RADIUS_M = 6_371_000.0  # Mean radius, spherical approximation


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters between two coordinates.

    Works on anything exposing ``latitude``/``longitude``. Out-of-range
    coordinates are not checked; NaN inputs give a NaN distance.
    """

    d_lat = math.radians(b.latitude - a.latitude)
    d_lng = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude)) * math.cos(math.radians(b.latitude)) * math.sin(d_lng / 2) ** 2
    )
    if h > 1.0:
        # Rounding near antipodes can push h just past 1.
        h = 1.0
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_distances(lat, lng, lats, lngs) -> np.ndarray:
    """Vectorised ``haversine_distance`` from origin(s) ``lat``/``lng`` to ``lats``/``lngs``.

    Arguments broadcast with numpy rules, so a column of origins against a row
    of points yields the full distance matrix.
    """

    lat = np.asarray(lat, dtype=np.float64)
    lng = np.asarray(lng, dtype=np.float64)
    lats = np.asarray(lats, dtype=np.float64)
    lngs = np.asarray(lngs, dtype=np.float64)

    d_lat = np.radians(lats - lat)
    d_lng = np.radians(lngs - lng)
    h = np.sin(d_lat / 2) ** 2 + np.cos(np.radians(lat)) * np.cos(np.radians(lats)) * np.sin(d_lng / 2) ** 2
    h = np.minimum(h, 1.0)
    return 2 * EARTH_RADIUS_M * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def coordinate_arrays(points: Iterable) -> Tuple[np.ndarray, np.ndarray]:
    """Snapshot latitude/longitude of ``points`` into two float64 arrays."""

    coords = np.array([(p.latitude, p.longitude) for p in points], dtype=np.float64).reshape(-1, 2)
    return coords[:, 0].copy(), coords[:, 1].copy()


def compute_bounds(points: Iterable, padding_fraction: float = 0.1) -> GeoBounds:
    """Padded bounding box of a non-empty point collection."""

    lats, lngs = coordinate_arrays(points)
    return bounds_from_arrays(lats, lngs, padding_fraction)


def bounds_from_arrays(lats: np.ndarray, lngs: np.ndarray, padding_fraction: float = 0.1) -> GeoBounds:
    if lats.size == 0 or lngs.size == 0:
        raise ValueError("Cannot compute bounds of an empty point set.")

    min_lat, max_lat = float(lats.min()), float(lats.max())
    min_lng, max_lng = float(lngs.min()), float(lngs.max())

    # Zero span gives zero padding; the degenerate box is accepted.
    lat_pad = (max_lat - min_lat) * padding_fraction
    lng_pad = (max_lng - min_lng) * padding_fraction
    return GeoBounds(
        min_lat=min_lat - lat_pad,
        max_lat=max_lat + lat_pad,
        min_lng=min_lng - lng_pad,
        max_lng=max_lng + lng_pad,
    )
