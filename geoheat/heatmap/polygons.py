"""Turn a density grid into colored cell polygons."""

from __future__ import annotations

from typing import List

import numpy as np

from geoheat.common.models import DensityGrid, GeoPoint, HeatmapColor, HeatmapPolygon


def heatmap_color(intensity: float) -> HeatmapColor:
    """Blue -> cyan -> green -> yellow -> red ramp over four 0.25-wide segments.

    Channels are truncated to int. RGB is continuous across segment edges;
    alpha is not, it drops at 0.25 and at 0.5.
    """

    intensity = max(0.0, min(1.0, intensity))

    if intensity < 0.25:
        t = intensity / 0.25
        return HeatmapColor(0, int(255 * t), 255, int(128 + 127 * t))
    if intensity < 0.5:
        t = (intensity - 0.25) / 0.25
        return HeatmapColor(0, 255, int(255 * (1 - t)), int(255 * (0.5 + 0.5 * t)))
    if intensity < 0.75:
        t = (intensity - 0.5) / 0.25
        return HeatmapColor(int(255 * t), 255, 0, int(255 * (0.75 + 0.25 * t)))
    t = (intensity - 0.75) / 0.25
    return HeatmapColor(255, int(255 * (1 - t)), 0, int(255 * (1.0 - 0.2 * t)))


class PolygonGenerator:
    """Thresholds a grid and emits one quadrilateral per significant cell."""

    def __init__(self, significance_threshold: float = 0.05) -> None:
        if not 0.0 <= significance_threshold < 1.0:
            raise ValueError(f"significance_threshold must be in [0, 1), got {significance_threshold}.")
        self.significance_threshold = float(significance_threshold)

    def generate(self, grid: DensityGrid) -> List[HeatmapPolygon]:
        max_density = grid.max_density
        if not max_density > 0:
            return []

        # The last row and column are never emitted.
        inner = grid.values[:-1, :-1]
        rows, cols = np.nonzero(inner > max_density * self.significance_threshold)

        polygons = [
            self._cell_polygon(grid, int(i), int(j), float(inner[i, j]), max_density)
            for i, j in zip(rows, cols)
        ]
        # list.sort is stable, so equal densities keep row-major order.
        polygons.sort(key=lambda polygon: polygon.density)
        return polygons

    @staticmethod
    def _cell_polygon(grid: DensityGrid, i: int, j: int, density: float, max_density: float) -> HeatmapPolygon:
        bounds = grid.bounds
        lat1 = bounds.min_lat + i * grid.lat_step
        lng1 = bounds.min_lng + j * grid.lng_step
        lat2 = bounds.min_lat + (i + 1) * grid.lat_step
        lng2 = bounds.min_lng + (j + 1) * grid.lng_step

        intensity = density / max_density
        return HeatmapPolygon(
            density=density,
            intensity=intensity,
            color=heatmap_color(intensity),
            vertices=(
                GeoPoint(lat1, lng1),
                GeoPoint(lat1, lng2),
                GeoPoint(lat2, lng2),
                GeoPoint(lat2, lng1),
            ),
        )


def generate_polygons(grid: DensityGrid, significance_threshold: float = 0.05) -> List[HeatmapPolygon]:
    return PolygonGenerator(significance_threshold).generate(grid)
