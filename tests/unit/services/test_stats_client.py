import asyncio
import math

import numpy as np
import pytest

from covplatform.contracts.assets import AssetKind, AssetRef
from covplatform.services.stats_client import (
    StatsClient, coerce_stat_value, normalize_stat_result, vector_stats_for,
)
from factories import FakeZonalStats


@pytest.mark.parametrize("requested,expected", [
    (["mean", "majority", "min"], ["mean", "min"]),
    (["majority"], ["mean", "min", "max"]),
    (["majority", "minority", "variety"], ["mean", "min", "max"]),
    (["std", "count"], ["std", "count"]),
])
def test_vector_stats_drop_raster_only(requested, expected):
    assert vector_stats_for(requested) == expected


@pytest.mark.parametrize("raw,expected", [
    (1, 1.0),
    (2.5, 2.5),
    (np.float32(1.5), 1.5),
    (np.int64(7), 7.0),
    (float("nan"), None),
    (np.nan, None),
    (None, None),
    (True, None),
    ("12", None),
])
def test_coerce_stat_value(raw, expected):
    assert coerce_stat_value(raw) == expected


def test_normalize_drops_non_mapping_entries():
    out = normalize_stat_result({"band_1": {"mean": 1, "max": math.nan}, "detail": "ignored"})
    assert out == {"band_1": {"mean": 1.0, "max": None}}


def test_raster_request_passes_stats_unchanged():
    port = FakeZonalStats()
    client = StatsClient(port)
    asset = AssetRef(kind=AssetKind.RASTER, url="https://x/a.tif")
    out = asyncio.run(client.get_zonal_stats((115.2, -8.5), 1000.0, ["mean", "majority"], asset))
    call = port.calls[0]
    assert call["kind"] == "raster"
    assert call["point"] == (115.2, -8.5)
    assert call["radius"] == 1000.0
    assert call["stats"] == ["mean", "majority"]
    assert out["band_1"]["mean"] == 27.5


def test_vector_request_filters_stats_and_sends_columns():
    port = FakeZonalStats(response={"cover": {"mean": 0.4}, "depth": {"mean": None}})
    client = StatsClient(port)
    asset = AssetRef(kind=AssetKind.VECTOR, url="https://x/r.parquet", columns=("cover", "depth"))
    out = asyncio.run(client.get_zonal_stats((1.0, 2.0), 500.0, ["majority"], asset))
    call = port.calls[0]
    assert call["kind"] == "vector"
    assert call["stats"] == ["mean", "min", "max"]
    assert call["columns"] == ["cover", "depth"]
    assert out == {"cover": {"mean": 0.4}, "depth": {"mean": None}}


@pytest.mark.parametrize("raw,expected,kind", [
    (12, 12, int),
    (np.int32(5), 5, int),
    (np.float64(2.5), 2.5, float),
    (12.0, 12.0, float),
])
def test_coerce_keeps_integer_type(raw, expected, kind):
    out = coerce_stat_value(raw)
    assert out == expected
    assert type(out) is kind
