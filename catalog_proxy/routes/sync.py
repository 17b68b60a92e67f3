import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from catalog_proxy.core.enums import SyncStatus
from catalog_proxy.core.exceptions import SyncCooldownError
from catalog_proxy.core.security import require_admin
from catalog_proxy.dependencies import get_sync_service
from catalog_proxy.services.sync_service import CatalogSyncService

router = APIRouter(prefix="/api", tags=["sync"], dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)


@router.api_route("/sync-catalog", methods=["GET", "POST"])
@router.api_route("/sync-all-books", methods=["GET", "POST"])
async def sync_catalog(
    force: bool = False,
    include_items: bool = False,
    service: CatalogSyncService = Depends(get_sync_service),
):
    """Run a full catalog sync and report stats plus the log trail"""
    logger.info(f"Catalog sync requested (force={force})")
    try:
        result = await service.run_sync(force=force, include_items=include_items)
    except SyncCooldownError as e:
        return JSONResponse(
            {"status": SyncStatus.ERROR.value, "error": str(e), "retry_after": e.retry_after},
            status_code=429,
            headers={"Retry-After": str(e.retry_after)},
        )

    status_code = 500 if result.status == SyncStatus.ERROR else 200
    return JSONResponse(result.to_response(), status_code=status_code)
