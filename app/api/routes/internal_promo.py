from __future__ import annotations

from typing import NoReturn

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.promo.admin import PromoAdminService
from app.economy.promo.errors import (
    PromoCodeAlreadyExistsError,
    PromoCodeInvalidError,
    PromoCodeNotFoundError,
    PromoError,
)
from app.services.internal_auth import evaluate_internal_access

from .internal_promo_helpers import (
    _list_item_as_response,
    _summary_as_response,
    _usage_as_response,
)
from .internal_promo_models import (
    PromoCodeCreateRequest,
    PromoCodeListResponse,
    PromoCodeResponse,
    PromoCodeUpdateRequest,
    PromoCodeUsageResponse,
)

logger = structlog.get_logger(__name__)


def require_internal_access(request: Request) -> None:
    settings = get_settings()
    decision = evaluate_internal_access(
        peer_host=request.client.host if request.client is not None else None,
        headers=request.headers,
        expected_token=settings.internal_api_token,
        allowlist=settings.internal_api_allowlist,
        trusted_proxies=settings.internal_api_trusted_proxies,
    )
    if not decision.allowed:
        logger.warning(
            "internal_promo_auth_failed",
            reason=decision.reason,
            client_ip=decision.client_ip,
            path=request.url.path,
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"code": "E_FORBIDDEN"})


router = APIRouter(
    prefix="/internal/promo-codes",
    tags=["internal", "promo"],
    dependencies=[Depends(require_internal_access)],
)


def _raise_admin_error(exc: PromoError) -> NoReturn:
    if isinstance(exc, PromoCodeNotFoundError):
        raise HTTPException(status_code=404, detail={"code": "E_PROMO_NOT_FOUND"}) from exc
    if isinstance(exc, PromoCodeAlreadyExistsError):
        raise HTTPException(status_code=409, detail={"code": "E_PROMO_CODE_EXISTS"}) from exc
    if isinstance(exc, PromoCodeInvalidError):
        raise HTTPException(
            status_code=422,
            detail={"code": "E_PROMO_INVALID_INPUT", "message": str(exc)},
        ) from exc
    raise exc


@router.get("", response_model=PromoCodeListResponse)
async def list_promo_codes(
    is_active: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
) -> PromoCodeListResponse:
    async with SessionLocal() as session:
        items = await PromoAdminService.list_promo_codes(
            session,
            is_active=is_active,
            limit=limit,
        )
    return PromoCodeListResponse(promo_codes=[_list_item_as_response(item) for item in items])


@router.get("/{promo_code_id}", response_model=PromoCodeResponse)
async def get_promo_code(promo_code_id: int) -> PromoCodeResponse:
    try:
        async with SessionLocal() as session:
            summary = await PromoAdminService.get_promo_code(session, promo_code_id)
    except PromoError as exc:
        _raise_admin_error(exc)
    return _summary_as_response(summary)


@router.post("", response_model=PromoCodeResponse, status_code=status.HTTP_201_CREATED)
async def create_promo_code(payload: PromoCodeCreateRequest) -> PromoCodeResponse:
    try:
        async with SessionLocal.begin() as session:
            summary = await PromoAdminService.create_promo_code(session, **payload.model_dump())
    except PromoError as exc:
        _raise_admin_error(exc)
    return _summary_as_response(summary)


@router.put("/{promo_code_id}", response_model=PromoCodeResponse)
async def update_promo_code(
    promo_code_id: int,
    payload: PromoCodeUpdateRequest,
) -> PromoCodeResponse:
    try:
        async with SessionLocal.begin() as session:
            summary = await PromoAdminService.update_promo_code(
                session,
                promo_code_id=promo_code_id,
                **payload.model_dump(exclude_unset=True),
            )
    except PromoError as exc:
        _raise_admin_error(exc)
    return _summary_as_response(summary)


@router.delete("/{promo_code_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_promo_code(promo_code_id: int) -> None:
    try:
        async with SessionLocal.begin() as session:
            await PromoAdminService.deactivate_promo_code(session, promo_code_id=promo_code_id)
    except PromoError as exc:
        _raise_admin_error(exc)


@router.get("/{promo_code_id}/usage", response_model=PromoCodeUsageResponse)
async def get_promo_code_usage(promo_code_id: int) -> PromoCodeUsageResponse:
    try:
        async with SessionLocal() as session:
            report = await PromoAdminService.get_promo_code_usage(session, promo_code_id)
    except PromoError as exc:
        _raise_admin_error(exc)
    return _usage_as_response(report)
