from fastapi import APIRouter, Body, Depends, Query
from typing import Any, Dict, List, Optional

from tender_ledger.core.deps import get_tender_service
from tender_ledger.schemas.tender import TenderCreate, TenderOut, TenderHistoryOut
from tender_ledger.services.tender_service import TenderService
from tender_ledger.utils.pagination import PaginationParams
from tender_ledger.utils.cache import (
    TENDER_GENERATION_KEY,
    TENDER_LIST_PREFIX,
    generate_cache_key,
    get_cached,
    get_generation,
    set_cached,
)

router = APIRouter(prefix="/api/tenders", tags=["tenders"])


@router.get("", response_model=List[TenderOut])
def list_tenders(
    service_type: Optional[List[str]] = Query(None),
    pagination: PaginationParams = Depends(),
    service: TenderService = Depends(get_tender_service),
):
    """
    Public tender listing (cached when redis caching is enabled)

    Query Parameters:
    - limit: page size (default 5)
    - offset: items to skip (default 0)
    - service_type: repeatable filter
    """
    # Read the generation before the database so a concurrent write retires this entry
    generation = get_generation(TENDER_GENERATION_KEY)
    cache_key = None
    if generation is not None:
        cache_key = generate_cache_key(
            TENDER_LIST_PREFIX,
            gen=generation,
            limit=pagination.limit,
            offset=pagination.offset,
            service_type=",".join(service_type or []),
        )
        cached = get_cached(cache_key)
        if cached is not None:
            return cached

    tenders = service.list_tenders(pagination.limit, pagination.offset, service_type)
    result = [TenderOut.model_validate(t).model_dump(mode="json", by_alias=True) for t in tenders]
    if cache_key is not None:
        set_cached(cache_key, result)
    return result


@router.post("/new", response_model=TenderOut)
def create_tender(
    data: TenderCreate,
    service: TenderService = Depends(get_tender_service),
):
    """
    Create a tender in 'Created' status at version 1.
    The creator must be responsible for the organization.
    """
    return service.create_tender(
        name=data.name,
        description=data.description,
        service_type=data.service_type,
        organization_id=data.organization_id,
        creator_username=data.creator_username,
    )


@router.get("/my", response_model=List[TenderOut])
def list_my_tenders(
    username: Optional[str] = None,
    pagination: PaginationParams = Depends(),
    service: TenderService = Depends(get_tender_service),
):
    return service.list_user_tenders(username, pagination.limit, pagination.offset)


@router.get("/{tender_id}/status", response_model=str)
def get_tender_status(
    tender_id: str,
    username: Optional[str] = None,
    service: TenderService = Depends(get_tender_service),
):
    return service.get_tender_status(tender_id, username)


@router.put("/{tender_id}/status", response_model=TenderOut)
def update_tender_status(
    tender_id: str,
    status: Optional[str] = None,
    username: Optional[str] = None,
    service: TenderService = Depends(get_tender_service),
):
    """Move the tender along its status graph. Version is not bumped."""
    return service.update_tender_status(tender_id, status, username)


@router.patch("/{tender_id}/edit", response_model=TenderOut)
def edit_tender(
    tender_id: str,
    username: Optional[str] = None,
    patch: Optional[Dict[str, Any]] = Body(None),
    service: TenderService = Depends(get_tender_service),
):
    """
    Sparse edit of name, description and serviceType.
    The previous state is kept in the history and the version is bumped.
    """
    return service.edit_tender(tender_id, username, patch)


@router.put("/{tender_id}/rollback/{version}", response_model=TenderOut)
def rollback_tender(
    tender_id: str,
    version: str,
    username: Optional[str] = None,
    service: TenderService = Depends(get_tender_service),
):
    return service.rollback_tender(tender_id, username, version)


@router.get("/{tender_id}/history", response_model=List[TenderHistoryOut])
def tender_history(
    tender_id: str,
    username: Optional[str] = None,
    service: TenderService = Depends(get_tender_service),
):
    return service.tender_history(tender_id, username)
