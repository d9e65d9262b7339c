from __future__ import annotations

from dataclasses import asdict

from app.economy.promo.types import PromoCodeListItem, PromoCodeSummary, PromoCodeUsageReport

from .internal_promo_models import (
    PromoCodeListItemResponse,
    PromoCodeResponse,
    PromoCodeUsageResponse,
)


def _summary_as_response(summary: PromoCodeSummary) -> PromoCodeResponse:
    payload = asdict(summary)
    payload["id"] = payload.pop("promo_code_id")
    return PromoCodeResponse(**payload)


def _list_item_as_response(item: PromoCodeListItem) -> PromoCodeListItemResponse:
    payload = asdict(item)
    payload["id"] = payload.pop("promo_code_id")
    return PromoCodeListItemResponse(**payload)


def _usage_as_response(report: PromoCodeUsageReport) -> PromoCodeUsageResponse:
    return PromoCodeUsageResponse.model_validate(asdict(report))
