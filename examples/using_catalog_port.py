# =============================
# FILE: examples/using_catalog_port.py
# =============================
"""
Uso mínimo: StacCatalog detrás del CatalogPort, resolviendo un ítem por fecha.
"""
import asyncio
from datetime import date

from covplatform.adapters.stac_catalog import StacCatalog
from covplatform.services.asset_resolver import AssetResolver, asset_for_item


async def main() -> None:
    async with StacCatalog("http://localhost:8081") as catalog:
        resolver = AssetResolver(catalog)

        print("Colecciones:")
        collections = await resolver.list_collections()
        for c in collections:
            print(" -", c.id, c.display_title, "raster" if c.capability.has_raster else "vector")

        if not collections:
            return
        col = collections[0]
        item = await resolver.resolve_item(col.id, date(2024, 3, 5))
        print("Asset para 2024-03-05:", asset_for_item(item, col))


if __name__ == "__main__":
    asyncio.run(main())
