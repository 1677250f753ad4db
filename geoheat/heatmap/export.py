"""Flatten heatmap polygons into a DataFrame for map layers."""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from geoheat.common.models import HeatmapPolygon

POLYGON_COLUMNS = [
    "density",
    "intensity",
    "red",
    "green",
    "blue",
    "alpha",
    "color",
    "lat1",
    "lng1",
    "lat2",
    "lng2",
    "vertices",
]


def polygons_to_frame(polygons: Iterable[HeatmapPolygon]) -> pd.DataFrame:
    """One row per polygon; ``vertices`` holds the ring as ``[lng, lat]`` pairs."""

    rows = []
    for polygon in polygons:
        first, _, third, _ = polygon.vertices
        rows.append(
            {
                "density": polygon.density,
                "intensity": polygon.intensity,
                "red": polygon.color.red,
                "green": polygon.color.green,
                "blue": polygon.color.blue,
                "alpha": polygon.color.alpha,
                "color": polygon.color.hex,
                "lat1": first.latitude,
                "lng1": first.longitude,
                "lat2": third.latitude,
                "lng2": third.longitude,
                "vertices": [[vertex.longitude, vertex.latitude] for vertex in polygon.vertices],
            }
        )
    return pd.DataFrame(rows, columns=POLYGON_COLUMNS)
