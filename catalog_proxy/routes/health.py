from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from catalog_proxy.core.config import SYNC_SETTINGS, Settings, get_settings
from catalog_proxy.dependencies import get_kv_store
from catalog_proxy.services.kv_store import KVStore

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check(
    check_store: bool = False,
    settings: Settings = Depends(get_settings),
    kv: KVStore = Depends(get_kv_store),
):
    """Liveness plus configuration presence; ?check_store=true pings the store"""
    missing = settings.missing(SYNC_SETTINGS)
    response = {
        "status": "OK" if not missing else "DEGRADED",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "missing_config": missing,
    }
    if check_store:
        store_ok = await kv.ping()
        response["store"] = "connected" if store_ok else "error"
        if not store_ok:
            response["status"] = "DEGRADED"
    return response
