from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from catalog_proxy.dependencies import get_catalog_reader
from catalog_proxy.services.catalog_reader import CatalogReader

router = APIRouter(prefix="/api", tags=["catalog"])

CACHE_HEADERS = {"Cache-Control": "public, s-maxage=60, stale-while-revalidate=600"}


@router.get("/home")
async def home(reader: CatalogReader = Depends(get_catalog_reader)):
    """Active-only view of the last snapshot, [] when never synced"""
    return JSONResponse(await reader.home(), headers=CACHE_HEADERS)


@router.get("/catalog")
async def catalog(reader: CatalogReader = Depends(get_catalog_reader)):
    snapshot = await reader.catalog()
    if snapshot is None:
        return JSONResponse({"status": "ERROR", "error": "Catalog has not been synced yet"}, status_code=404)
    return JSONResponse(snapshot, headers=CACHE_HEADERS)


@router.get("/books")
async def books(reader: CatalogReader = Depends(get_catalog_reader)):
    """Storefront feed: active books with the bank transfer price"""
    return JSONResponse(await reader.books(), headers={"Cache-Control": "public, max-age=60"})


@router.get("/search")
async def search(q: str = Query(""), reader: CatalogReader = Depends(get_catalog_reader)):
    return await reader.search(q)


@router.get("/book-details")
async def book_details(id: str = Query(""), reader: CatalogReader = Depends(get_catalog_reader)):
    detail = await reader.item_detail(id)
    if detail is None:
        return JSONResponse({"status": "ERROR", "error": f"Listing {id or '?'} not found"}, status_code=404)
    return detail
