import asyncio
from datetime import date

from covplatform.contracts.assets import NOT_FOUND, AssetKind, AssetRef, CatalogItem, Unresolved
from covplatform.services.asset_resolver import (
    AssetResolver, ResolutionCache, after_range, asset_for_item, before_range,
)
from factories import FakeCatalog, make_collection, make_item


def _catalog(*items, **kw):
    return FakeCatalog({"sst": list(items)}, **kw)


def test_ranges_cover_whole_sample_day():
    d = date(2024, 3, 5)
    assert before_range(d) == "../2024-03-05T23:59:59Z"
    assert after_range(d) == "2024-03-05T00:00:00Z/.."


def test_prior_item_wins_even_if_later_is_closer():
    cat = _catalog(
        make_item("t-2", "2024-03-03T00:00:00Z"),
        make_item("t+1", "2024-03-06T00:00:00Z"),
    )
    item = asyncio.run(AssetResolver(cat).resolve_item("sst", date(2024, 3, 5)))
    assert item.id == "t-2"
    assert cat.search_calls == [("sst", "../2024-03-05T23:59:59Z", "desc")]


def test_same_day_late_item_counts_as_prior():
    cat = _catalog(make_item("same", "2024-03-05T18:00:00Z"), make_item("old", "2024-01-01T00:00:00Z"))
    item = asyncio.run(AssetResolver(cat).resolve_item("sst", date(2024, 3, 5)))
    assert item.id == "same"


def test_falls_back_to_first_later_item():
    cat = _catalog(
        make_item("t+10", "2024-03-15T00:00:00Z"),
        make_item("t+3", "2024-03-08T00:00:00Z"),
    )
    item = asyncio.run(AssetResolver(cat).resolve_item("sst", date(2024, 3, 5)))
    assert item.id == "t+3"
    assert [c[2] for c in cat.search_calls] == ["desc", "asc"]


def test_empty_collection_is_not_found():
    cat = _catalog()
    assert asyncio.run(AssetResolver(cat).resolve_item("sst", date(2024, 3, 5))) is NOT_FOUND


def test_asset_for_item_outcomes():
    col = make_collection()
    assert asset_for_item(NOT_FOUND, col).message == "No imagery found for this date"

    no_asset = make_item(assets={"thumb": {"href": "https://x/t.png", "type": "image/png"}})
    missing = asset_for_item(no_asset, col)
    assert isinstance(missing, Unresolved)
    assert missing.message == "No COG URL in item"

    ref = asset_for_item(make_item("abc"), col)
    assert isinstance(ref, AssetRef)
    assert ref.kind is AssetKind.RASTER
    assert ref.url == "https://cdn.example.org/abc.tif"


def test_vector_asset_uses_probed_columns_as_fallback():
    col = make_collection("reefs", raster=False, vector=True, columns=("cover",))
    item = make_item(assets={"data": {"href": "https://x/r.parquet"}})
    ref = asset_for_item(item, col)
    assert ref.kind is AssetKind.VECTOR
    assert ref.columns == ("cover",)


def test_list_collections_probes_and_sorts_usable_first():
    cat = FakeCatalog(
        {
            "sst": [make_item()],
            "reefs": [make_item(assets={"data": {"href": "https://x/r.parquet", "columns": ["cover"]}})],
        },
        collections=[
            {"id": "empty", "title": "Alpha"},
            {"id": "sst", "title": "Sea Surface Temp"},
            {"id": "broken", "title": "Broken"},
            {"id": "reefs", "title": "coral reefs"},
            {"title": "no id"},
        ],
        probe_fail={"broken"},
    )
    cols = asyncio.run(AssetResolver(cat, probe_concurrency=2).list_collections())
    assert [c.id for c in cols] == ["reefs", "sst", "empty", "broken"]
    by_id = {c.id: c for c in cols}
    assert by_id["sst"].capability.has_raster
    assert by_id["reefs"].capability.vector_columns == ("cover",)
    assert not by_id["broken"].capability.usable


def test_cache_shares_concurrent_lookups():
    calls = []

    async def resolve():
        calls.append(1)
        await asyncio.sleep(0.01)
        return NOT_FOUND

    async def main():
        cache = ResolutionCache()
        out = await asyncio.gather(*(cache.get_or_resolve("sst:2024-03-05", resolve) for _ in range(5)))
        return cache, out

    cache, out = asyncio.run(main())
    assert calls == [1]
    assert cache.lookups == 1
    assert all(o is NOT_FOUND for o in out)
    assert "sst:2024-03-05" in cache
    assert len(cache) == 1


class _MalformedProbeCatalog(FakeCatalog):
    async def probe_item(self, collection_id):
        if collection_id == "weird":
            return CatalogItem.from_json({"id": "x", "assets": ["not", "a", "mapping"]})
        return await super().probe_item(collection_id)


def test_malformed_probe_item_means_no_capability():
    cat = _MalformedProbeCatalog(
        {"sst": [make_item()]},
        collections=[{"id": "weird", "title": "Weird"}, {"id": "sst", "title": "SST"}],
    )
    cols = asyncio.run(AssetResolver(cat).list_collections())
    assert [c.id for c in cols] == ["sst", "weird"]
    assert not cols[1].capability.usable
