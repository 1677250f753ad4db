"""Heatmap facade: points -> bounds -> density grid -> polygons."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from pyspark.sql import SparkSession

from geoheat.common.config import AppConfig, HeatmapConfig, validate_radius
from geoheat.common.geo import bounds_from_arrays, coordinate_arrays
from geoheat.common.models import DensityGrid, HeatmapPolygon
from geoheat.heatmap.density import DensityGridBuilder
from geoheat.heatmap.executors import make_executor
from geoheat.heatmap.polygons import PolygonGenerator

logger = logging.getLogger(__name__)


class HeatmapEngine:
    """Stateless between calls; safe to share across threads."""

    def __init__(self, config: HeatmapConfig | None = None, executor=None) -> None:
        self.config = (config or HeatmapConfig()).validate()
        self.grid_builder = DensityGridBuilder(
            grid_size=self.config.grid_size,
            sigma_divisor=self.config.sigma_divisor,
            point_chunk_size=self.config.point_chunk_size,
            executor=executor,
        )
        self.polygon_generator = PolygonGenerator(self.config.significance_threshold)

    @classmethod
    def from_config(cls, config: AppConfig, spark: SparkSession | None = None) -> "HeatmapEngine":
        return cls(config.heatmap, make_executor(config.execution, spark))

    def generate(self, points: Iterable, radius: Optional[float] = None) -> List[HeatmapPolygon]:
        """Compute the heatmap polygons for ``points``.

        Empty input is a no-op and returns an empty list. ``radius`` (meters)
        defaults to ``config.default_radius``.
        """

        grid = self.generate_grid(points, radius)
        if grid is None:
            return []
        polygons = self.polygon_generator.generate(grid)
        logger.info("Generated %d heatmap polygons", len(polygons))
        return polygons

    def generate_grid(self, points: Iterable, radius: Optional[float] = None) -> Optional[DensityGrid]:
        """Density grid for ``points``, or ``None`` when there is nothing to grid."""

        lats, lngs = coordinate_arrays(points)
        if not lats.size:
            logger.info("No location points provided; skipping heatmap generation")
            return None

        radius = validate_radius(self.config.default_radius if radius is None else radius)
        logger.info("Generating heatmap from %d location points with radius %.1fm", lats.size, radius)

        bounds = bounds_from_arrays(lats, lngs, self.config.padding_fraction)
        grid = self.grid_builder.build_from_arrays(lats, lngs, bounds, radius)
        logger.debug("Heatmap bounds %s, max density %.6f", bounds, grid.max_density)
        return grid

    def generate_from_store(self, store, radius: Optional[float] = None) -> List[HeatmapPolygon]:
        """Run ``generate`` on a snapshot of everything ``store.fetch_all()`` returns."""

        return self.generate(store.fetch_all(), radius)


def generate_heatmap(
    points: Iterable, radius: Optional[float] = None, config: HeatmapConfig | None = None
) -> List[HeatmapPolygon]:
    """Without ``radius``, falls back to ``config.default_radius`` (50 m by default)."""

    return HeatmapEngine(config).generate(points, radius)
