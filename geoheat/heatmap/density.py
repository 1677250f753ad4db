"""Gaussian-kernel density estimation over a flat lat/lng grid."""

from __future__ import annotations

import logging
from typing import Iterable, Tuple

import numpy as np

from geoheat.common.config import validate_radius
from geoheat.common.geo import coordinate_arrays, haversine_distances
from geoheat.common.models import DensityGrid, GeoBounds
from geoheat.heatmap.executors import SerialRowExecutor

logger = logging.getLogger(__name__)

DEFAULT_GRID_SIZE = 256


class RowKernel:
    """Computes one grid row; picklable so it can ship to Spark workers."""

    def __init__(
        self,
        lats: np.ndarray,
        lngs: np.ndarray,
        bounds: GeoBounds,
        lat_step: float,
        lng_step: float,
        grid_size: int,
        radius: float,
        sigma_divisor: float,
        point_chunk_size: int,
    ) -> None:
        self.lats = lats
        self.lngs = lngs
        self.min_lat = bounds.min_lat
        self.min_lng = bounds.min_lng
        self.lat_step = lat_step
        self.lng_step = lng_step
        self.grid_size = grid_size
        self.radius = radius
        sigma = radius / sigma_divisor
        self.two_sigma_sq = 2 * sigma * sigma
        self.point_chunk_size = point_chunk_size

    def __call__(self, row: int) -> Tuple[int, np.ndarray]:
        # Cells are sampled at their top-left corner.
        cell_lat = self.min_lat + row * self.lat_step
        cell_lngs = self.min_lng + np.arange(self.grid_size, dtype=np.float64) * self.lng_step

        density = np.zeros(self.grid_size, dtype=np.float64)
        for start in range(0, self.lats.size, self.point_chunk_size):
            stop = start + self.point_chunk_size
            distances = haversine_distances(
                cell_lat,
                cell_lngs[:, np.newaxis],
                self.lats[np.newaxis, start:stop],
                self.lngs[np.newaxis, start:stop],
            )
            weights = np.exp(-(distances * distances) / self.two_sigma_sq)
            # Hard cut: points past the radius add exactly nothing.
            density += np.where(distances <= self.radius, weights, 0.0).sum(axis=1)
        return row, density


class DensityGridBuilder:
    """Rasterises a bounded region and accumulates kernel density per cell."""

    def __init__(
        self,
        grid_size: int = DEFAULT_GRID_SIZE,
        sigma_divisor: float = 2.0,
        point_chunk_size: int = 4096,
        executor=None,
    ) -> None:
        if grid_size < 2:
            raise ValueError(f"grid_size must be at least 2, got {grid_size}.")
        if not sigma_divisor > 0:
            raise ValueError(f"sigma_divisor must be positive, got {sigma_divisor}.")
        if point_chunk_size < 1:
            raise ValueError(f"point_chunk_size must be positive, got {point_chunk_size}.")
        self.grid_size = int(grid_size)
        self.sigma_divisor = float(sigma_divisor)
        self.point_chunk_size = int(point_chunk_size)
        self.executor = executor or SerialRowExecutor()

    def build(self, points: Iterable, bounds: GeoBounds, radius: float) -> DensityGrid:
        lats, lngs = coordinate_arrays(points)
        return self.build_from_arrays(lats, lngs, bounds, radius)

    def build_from_arrays(
        self, lats: np.ndarray, lngs: np.ndarray, bounds: GeoBounds, radius: float
    ) -> DensityGrid:
        radius = validate_radius(radius)
        lat_step = self._step(bounds.lat_span)
        lng_step = self._step(bounds.lng_span)
        values = np.zeros((self.grid_size, self.grid_size), dtype=np.float64)

        if lats.size:
            kernel = RowKernel(
                lats,
                lngs,
                bounds,
                lat_step,
                lng_step,
                self.grid_size,
                radius,
                self.sigma_divisor,
                self.point_chunk_size,
            )
            for row, density in self.executor.map_rows(kernel, range(self.grid_size)):
                values[row] = density

        logger.debug(
            "Built %dx%d density grid from %d points (radius=%.1fm, lat_step=%g, lng_step=%g)",
            self.grid_size,
            self.grid_size,
            lats.size,
            radius,
            lat_step,
            lng_step,
        )

        return DensityGrid(values=values, bounds=bounds, lat_step=lat_step, lng_step=lng_step)

    def _step(self, span: float) -> float:
        # Zero-width axis: every cell samples the same coordinate.
        if not span > 0:
            return 0.0
        return span / self.grid_size


def build_grid(
    points: Iterable,
    bounds: GeoBounds,
    radius: float,
    grid_size: int = DEFAULT_GRID_SIZE,
    sigma_divisor: float = 2.0,
    point_chunk_size: int = 4096,
    executor=None,
) -> DensityGrid:
    """Functional shortcut around ``DensityGridBuilder``."""

    builder = DensityGridBuilder(
        grid_size=grid_size,
        sigma_divisor=sigma_divisor,
        point_chunk_size=point_chunk_size,
        executor=executor,
    )
    return builder.build(points, bounds, radius)
