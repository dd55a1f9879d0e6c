from fastapi import APIRouter, Depends, Response, status

from app.schemas import (
    ApplyCouponRequest,
    DraftCreateRequest,
    DraftResponse,
    OrderDraft,
    OrderLine,
    ZoneUpdateRequest,
)
from app.services.drafts import DraftService, get_draft_service

router = APIRouter(prefix="/api/drafts", tags=["Drafts"])


def _respond(service: DraftService, draft: OrderDraft) -> DraftResponse:
    return DraftResponse(draft=draft, pricing=service.price_draft(draft))


@router.post("", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
def create_draft(
    payload: DraftCreateRequest,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    return _respond(service, service.create_draft(payload.lines, payload.zone))


@router.get("/{draft_id}", response_model=DraftResponse)
def read_draft(
    draft_id: str,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    return _respond(service, service.get_draft(draft_id))


@router.delete("/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_draft(
    draft_id: str,
    service: DraftService = Depends(get_draft_service),
) -> Response:
    service.delete_draft(draft_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# LINES
# =============================================================================

@router.post("/{draft_id}/lines", response_model=DraftResponse)
def add_line(
    draft_id: str,
    line: OrderLine,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    return _respond(service, service.add_line(draft_id, line))


@router.put("/{draft_id}/lines/{index}", response_model=DraftResponse)
def replace_line(
    draft_id: str,
    index: int,
    line: OrderLine,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    return _respond(service, service.replace_line(draft_id, index, line))


@router.delete("/{draft_id}/lines/{index}", response_model=DraftResponse)
def remove_line(
    draft_id: str,
    index: int,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    return _respond(service, service.remove_line(draft_id, index))


# =============================================================================
# ZONE & COUPON
# =============================================================================

@router.put("/{draft_id}/zone", response_model=DraftResponse)
def set_zone(
    draft_id: str,
    payload: ZoneUpdateRequest,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    return _respond(service, service.set_zone(draft_id, payload.zone))


@router.post("/{draft_id}/coupon", response_model=DraftResponse)
def apply_coupon(
    draft_id: str,
    payload: ApplyCouponRequest,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    draft = service.apply_coupon(draft_id, payload.code, payload.owner_identifier)
    return _respond(service, draft)


@router.delete("/{draft_id}/coupon", response_model=DraftResponse)
def remove_coupon(
    draft_id: str,
    service: DraftService = Depends(get_draft_service),
) -> DraftResponse:
    return _respond(service, service.remove_coupon(draft_id))
