import asyncio
from datetime import date, datetime, timezone

from covplatform.contracts.assets import CatalogItem
from covplatform.contracts.core import AssetCapability, Collection, SampleEvent
from covplatform.contracts.errors import ServiceFailure


def make_event(eid="se-1", d=date(2024, 3, 5), lat=-8.5, lon=115.2, site="Site A", project="p-1", **kw):
    data = dict(
        sample_event_id=eid, project_id=project, project_name=kw.pop("project_name", "Reef Project"),
        site_name=site, latitude=lat, longitude=lon, sample_date=d,
    )
    data.update(kw)
    return SampleEvent.model_validate(data)


def make_collection(cid="sst", title="Sea Surface Temp", raster=True, vector=False, columns=()):
    return Collection(
        id=cid, title=title,
        capability=AssetCapability(has_raster=raster, has_vector=vector, vector_columns=tuple(columns)),
    )


def item_json(iid="item-1", dt="2024-03-03T00:00:00Z", collection="sst", assets=None, properties=None):
    props = {"datetime": dt}
    props.update(properties or {})
    if assets is None:
        assets = {"data": {"href": f"https://cdn.example.org/{iid}.tif",
                           "type": "image/tiff; application=geotiff; profile=cloud-optimized"}}
    return {"id": iid, "collection": collection, "properties": props, "assets": assets}


def make_item(iid="item-1", dt="2024-03-03T00:00:00Z", **kw):
    return CatalogItem.from_json(item_json(iid, dt, **kw))


class FakeCatalog:
    """Catálogo en memoria: respeta rangos `../fin` y `inicio/..` y el orden pedido."""

    def __init__(self, items_by_collection=None, collections=(), probe_fail=(), search_fail=()):
        self.items = {k: list(v) for k, v in (items_by_collection or {}).items()}
        self.collections = list(collections)
        self.probe_fail = set(probe_fail)
        self.search_fail = set(search_fail)
        self.search_calls = []
        self.probe_calls = []

    async def list_collections(self):
        return self.collections

    async def probe_item(self, collection_id):
        self.probe_calls.append(collection_id)
        await asyncio.sleep(0)
        if collection_id in self.probe_fail:
            raise ServiceFailure("STAC catalog", status_code=500, body="boom")
        items = self.items.get(collection_id) or []
        return items[0] if items else None

    async def search_one(self, collection_id, datetime_range, direction):
        self.search_calls.append((collection_id, datetime_range, direction))
        await asyncio.sleep(0)
        if collection_id in self.search_fail:
            raise ServiceFailure("STAC catalog", status_code=503, body="unavailable")
        start, end = datetime_range.split("/")
        lo = None if start == ".." else datetime.fromisoformat(start.replace("Z", "+00:00"))
        hi = None if end == ".." else datetime.fromisoformat(end.replace("Z", "+00:00"))
        cands = [
            it for it in self.items.get(collection_id, [])
            if (lo is None or it.timestamp >= lo) and (hi is None or it.timestamp <= hi)
        ]
        cands.sort(key=lambda it: it.timestamp, reverse=(direction == "desc"))
        return cands[0] if cands else None


class FakeZonalStats:
    def __init__(self, response=None, fail_urls=(), delay=0.0):
        self.response = response if response is not None else {"band_1": {"mean": 27.5, "min": 26.0, "max": 29.1}}
        self.fail_urls = set(fail_urls)
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _call(self, kind, point, radius_m, stats, url, columns=None):
        self.calls.append({"kind": kind, "point": point, "radius": radius_m, "stats": list(stats),
                           "url": url, "columns": list(columns or [])})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if url in self.fail_urls:
                raise ServiceFailure("Zonal stats", status_code=500, body="rasterio error")
            return self.response
        finally:
            self.in_flight -= 1

    async def raster_stats(self, point, radius_m, stats, url):
        return await self._call("raster", point, radius_m, stats, url)

    async def vector_stats(self, point, radius_m, stats, url, columns):
        return await self._call("vector", point, radius_m, stats, url, columns)


def utc(y, m, d):
    return datetime(y, m, d, tzinfo=timezone.utc)
