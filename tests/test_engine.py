import math
from collections import deque
from datetime import datetime, timedelta

import numpy as np
import pytest

from geoheat.common.config import AppConfig, ExecutionConfig, HeatmapConfig
from geoheat.common.geo import EARTH_RADIUS_M, haversine_distance
from geoheat.common.models import GeoPoint, LocationSample
from geoheat.heatmap.engine import HeatmapEngine, generate_heatmap
from geoheat.heatmap.executors import SerialRowExecutor, SparkRowExecutor, ThreadedRowExecutor
from geoheat.ingest.store import InMemorySampleStore

METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0
SMALL = HeatmapConfig(grid_size=64)


def _cluster(center: GeoPoint, count: int, spread_m: float, seed: int = 3):
    rng = np.random.RandomState(seed)
    angles = rng.uniform(0, 2 * math.pi, count)
    radii = spread_m * np.sqrt(rng.uniform(0, 1, count))
    lng_scale = METERS_PER_DEGREE * math.cos(math.radians(center.latitude))
    return [
        GeoPoint(center.latitude + r * math.cos(a) / METERS_PER_DEGREE, center.longitude + r * math.sin(a) / lng_scale)
        for a, r in zip(angles, radii)
    ]


def _components(mask: np.ndarray) -> int:
    seen = np.zeros_like(mask, dtype=bool)
    count = 0
    for start in zip(*np.nonzero(mask)):
        if seen[start]:
            continue
        count += 1
        queue = deque([start])
        seen[start] = True
        while queue:
            r, c = queue.popleft()
            for dr, dc in ((1, 0), (-1, 0), (0, 1), (0, -1)):
                nr, nc = r + dr, c + dc
                if 0 <= nr < mask.shape[0] and 0 <= nc < mask.shape[1] and mask[nr, nc] and not seen[nr, nc]:
                    seen[nr, nc] = True
                    queue.append((nr, nc))
    return count


@pytest.mark.parametrize("radius", [10.0, 50.0, 200.0, -1.0])
def test_empty_input_is_a_noop(radius):
    assert generate_heatmap([], radius) == []
    assert HeatmapEngine(SMALL).generate_grid([], radius) is None


def test_single_point_polygons_have_full_intensity():
    point = GeoPoint(40.0, -74.0)
    engine = HeatmapEngine(HeatmapConfig(grid_size=16))

    grid = engine.generate_grid([point], 50.0)
    polygons = engine.generate([point], 50.0)

    origin = grid.cell_origin(*grid.peak_cell())
    assert haversine_distance(origin, point) < 1e-6
    assert len(polygons) == 15 * 15
    assert all(p.intensity == 1.0 for p in polygons)
    assert max(p.intensity for p in polygons) == 1.0


def test_two_points_100m_apart_give_two_peaks():
    p1 = GeoPoint(40.0, -74.0)
    p2 = GeoPoint(40.0 + 100.0 / METERS_PER_DEGREE, -74.0)
    engine = HeatmapEngine(SMALL)

    grid = engine.generate_grid([p1, p2], 50.0)
    polygons = engine.generate([p1, p2], 50.0)

    column = grid.values[:, 0]
    row_p1 = int(round((p1.latitude - grid.bounds.min_lat) / grid.lat_step))
    row_p2 = int(round((p2.latitude - grid.bounds.min_lat) / grid.lat_step))
    middle = (row_p1 + row_p2) // 2
    peak1 = int(np.argmax(column[:middle]))
    peak2 = middle + int(np.argmax(column[middle:]))

    assert abs(peak1 - row_p1) <= 1
    assert abs(peak2 - row_p2) <= 1
    assert column[middle] < 0.5 * min(column[peak1], column[peak2])

    assert len(polygons) >= 2
    nearer_p1 = [p for p in polygons if haversine_distance(p.center, p1) < haversine_distance(p.center, p2)]
    nearer_p2 = [p for p in polygons if haversine_distance(p.center, p2) < haversine_distance(p.center, p1)]
    assert nearer_p1 and nearer_p2


def test_tight_cluster_forms_one_region():
    points = _cluster(GeoPoint(52.52, 13.405), 500, spread_m=10.0)
    engine = HeatmapEngine(SMALL)

    grid = engine.generate_grid(points, 50.0)
    polygons = engine.generate(points, 50.0)

    assert 300.0 < grid.max_density <= 500.0
    assert polygons
    emitted = np.zeros((grid.size, grid.size), dtype=bool)
    inner = grid.values[:-1, :-1] > grid.max_density * SMALL.significance_threshold
    emitted[:-1, :-1] = inner
    assert _components(emitted) == 1
    assert len(polygons) == int(inner.sum())


def test_polygons_sorted_by_density():
    points = _cluster(GeoPoint(34.05, -118.24), 80, spread_m=150.0)
    polygons = HeatmapEngine(SMALL).generate(points, 40.0)

    densities = [p.density for p in polygons]
    assert densities == sorted(densities)
    assert all(0.0 < p.intensity <= 1.0 for p in polygons)
    assert all(len(p.vertices) == 4 for p in polygons)


def test_generation_is_idempotent():
    points = _cluster(GeoPoint(-23.55, -46.63), 120, spread_m=200.0)
    engine = HeatmapEngine(SMALL)

    first = engine.generate(points, 60.0)
    second = engine.generate(points, 60.0)

    assert first == second
    assert generate_heatmap(points, 60.0, SMALL) == first


def test_radius_smaller_than_cell_spacing_yields_nothing():
    points = [GeoPoint(0.0, 0.0), GeoPoint(1.0, 1.0)]
    engine = HeatmapEngine(HeatmapConfig(grid_size=8))

    # No cell corner lands within 10 m of either point.
    assert engine.generate_grid(points, 10.0).max_density == 0.0
    assert engine.generate(points, 10.0) == []


def test_default_radius_comes_from_config():
    points = _cluster(GeoPoint(1.3521, 103.8198), 30, spread_m=100.0)
    engine = HeatmapEngine(HeatmapConfig(grid_size=32, default_radius=75.0))

    assert engine.generate(points) == engine.generate(points, 75.0)


def test_generate_heatmap_uses_config_default_radius():
    points = _cluster(GeoPoint(1.3521, 103.8198), 30, spread_m=100.0)
    config = HeatmapConfig(grid_size=32, default_radius=75.0)

    implicit = generate_heatmap(points, config=config)

    assert implicit == generate_heatmap(points, 75.0, config)
    assert implicit != generate_heatmap(points, 50.0, config)
    assert generate_heatmap(points, config=SMALL) == generate_heatmap(points, 50.0, SMALL)


def test_invalid_radius_with_points_raises():
    with pytest.raises(ValueError):
        HeatmapEngine(SMALL).generate([GeoPoint(0.0, 0.0)], 0.0)


def test_accepts_location_samples():
    when = datetime(2024, 5, 1, 8, 0, 0)
    samples = [LocationSample(p.latitude, p.longitude, when, accuracy=4.0) for p in _cluster(GeoPoint(10.0, 10.0), 20, 30.0)]
    points = [sample.point for sample in samples]
    engine = HeatmapEngine(SMALL)

    assert engine.generate(samples, 50.0) == engine.generate(points, 50.0)


def test_generate_from_store_uses_snapshot():
    start = datetime(2024, 5, 1, 8, 0, 0)
    samples = [
        LocationSample(p.latitude, p.longitude, start + timedelta(minutes=i))
        for i, p in enumerate(_cluster(GeoPoint(45.0, 7.0), 25, 40.0))
    ]
    store = InMemorySampleStore(samples)
    engine = HeatmapEngine(SMALL)

    assert engine.generate_from_store(store, 50.0) == engine.generate(samples, 50.0)
    assert engine.generate_from_store(InMemorySampleStore(), 50.0) == []


def test_from_config_picks_executor():
    serial = HeatmapEngine.from_config(AppConfig(heatmap=SMALL))
    threaded = HeatmapEngine.from_config(AppConfig(heatmap=SMALL, execution=ExecutionConfig(mode="threads", max_workers=2)))

    assert isinstance(serial.grid_builder.executor, SerialRowExecutor)
    assert isinstance(threaded.grid_builder.executor, ThreadedRowExecutor)
    assert threaded.grid_builder.grid_size == 64

    points = _cluster(GeoPoint(41.9, 12.5), 40, 90.0)
    assert serial.generate(points, 50.0) == threaded.generate(points, 50.0)


def test_spark_mode_requires_session():
    with pytest.raises(RuntimeError):
        HeatmapEngine.from_config(AppConfig(execution=ExecutionConfig(mode="spark")))


def test_spark_rows_match_serial_rows(spark):
    points = _cluster(GeoPoint(59.33, 18.07), 50, 80.0)
    config = AppConfig(heatmap=HeatmapConfig(grid_size=16), execution=ExecutionConfig(mode="spark", spark_partitions=4))

    distributed = HeatmapEngine.from_config(config, spark)
    local = HeatmapEngine(HeatmapConfig(grid_size=16))

    assert isinstance(distributed.grid_builder.executor, SparkRowExecutor)
    assert np.allclose(distributed.generate_grid(points, 50.0).values, local.generate_grid(points, 50.0).values)
    assert len(distributed.generate(points, 50.0)) == len(local.generate(points, 50.0))
