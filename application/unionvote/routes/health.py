from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from unionvote.config.settings import VotingConfigs
from unionvote.core.exceptions import StoreUnavailable
from unionvote.repository.base import VotingRepository
from unionvote.routes.dependencies import get_configs, get_repository

router = APIRouter()


@router.get("/health")
async def health_check(
    repository: VotingRepository = Depends(get_repository),
    configs: VotingConfigs = Depends(get_configs),
):
    try:
        store_ok = repository.ping()
    except StoreUnavailable:
        store_ok = False
    details = {
        "status": "healthy" if store_ok else "unhealthy",
        "version": configs.APP_VERSION,
        "service": configs.APP_NAME,
        "store": repository.backend_name,
    }
    return JSONResponse(status_code=200 if store_ok else 503, content=details)
