import numpy as np

from geoheat.common.models import DensityGrid, GeoBounds
from geoheat.heatmap.export import POLYGON_COLUMNS, polygons_to_frame
from geoheat.heatmap.polygons import generate_polygons


def test_polygons_flatten_into_rows():
    values = np.zeros((4, 4))
    values[0, 0] = 2.0
    values[1, 1] = 8.0
    grid = DensityGrid(values=values, bounds=GeoBounds(0.0, 0.4, 0.0, 0.4), lat_step=0.1, lng_step=0.1)

    frame = polygons_to_frame(generate_polygons(grid))

    assert list(frame.columns) == POLYGON_COLUMNS
    assert len(frame) == 2
    top = frame.iloc[-1]
    assert top["density"] == 8.0
    assert top["intensity"] == 1.0
    assert top["color"] == "#FF0000CC"
    assert (top["red"], top["green"], top["blue"], top["alpha"]) == (255, 0, 0, 204)
    assert abs(top["lat1"] - 0.1) < 1e-12 and abs(top["lat2"] - 0.2) < 1e-12
    assert len(top["vertices"]) == 4
    assert abs(top["vertices"][1][0] - 0.2) < 1e-12  # [lng, lat]


def test_empty_polygons_give_empty_frame():
    frame = polygons_to_frame([])

    assert frame.empty
    assert list(frame.columns) == POLYGON_COLUMNS
