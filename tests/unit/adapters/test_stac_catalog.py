import asyncio
import json

import httpx
import pytest

from covplatform.adapters.stac_catalog import StacCatalog
from covplatform.contracts.errors import ServiceFailure
from factories import item_json


def _catalog(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StacCatalog("https://stac.example.org/", client=client)


def test_search_one_posts_sorted_single_item_query():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"type": "FeatureCollection", "features": [item_json("i1")]})

    item = asyncio.run(_catalog(handler).search_one("sst", "../2024-03-05T23:59:59Z", "desc"))
    assert item.id == "i1"
    assert item.timestamp.year == 2024
    assert seen["method"] == "POST"
    assert seen["url"] == "https://stac.example.org/search"
    assert seen["body"] == {
        "collections": ["sst"],
        "datetime": "../2024-03-05T23:59:59Z",
        "sortby": [{"field": "datetime", "direction": "desc"}],
        "limit": 1,
    }


def test_empty_feature_collection_is_none():
    cat = _catalog(lambda r: httpx.Response(200, json={"features": []}))
    assert asyncio.run(cat.search_one("sst", "2024-03-05T00:00:00Z/..", "asc")) is None


def test_list_collections_and_probe():
    def handler(request):
        if request.url.path == "/collections":
            return httpx.Response(200, json={"collections": [{"id": "sst", "title": "SST"}]})
        assert request.url.path == "/collections/sst/items"
        assert request.url.params["limit"] == "1"
        return httpx.Response(200, json={"features": [item_json("probe")]})

    async def main():
        async with _catalog(handler) as cat:
            return await cat.list_collections(), await cat.probe_item("sst")

    cols, probe = asyncio.run(main())
    assert cols == [{"id": "sst", "title": "SST"}]
    assert probe.id == "probe"


def test_non_2xx_becomes_service_failure():
    cat = _catalog(lambda r: httpx.Response(502, text="bad gateway"))
    with pytest.raises(ServiceFailure) as ei:
        asyncio.run(cat.search_one("sst", "../2024-03-05T23:59:59Z", "desc"))
    assert str(ei.value) == "STAC catalog failed (502): bad gateway"
    assert ei.value.status_code == 502


def test_transport_error_becomes_service_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ServiceFailure, match="STAC catalog request failed: connection refused"):
        asyncio.run(_catalog(handler).list_collections())
