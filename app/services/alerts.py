from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)

ALERT_TIMEOUT_SECONDS = 5.0
EVENT_SEVERITIES = {"promo_usage_drift_detected": "error"}
SLACK_COLORS = {"error": "#F04438", "warning": "#F79009", "info": "#1570EF"}


@dataclass(frozen=True, slots=True)
class OpsAlert:
    event: str
    details: dict[str, object]
    environment: str
    raised_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def severity(self) -> str:
        return EVENT_SEVERITIES.get(self.event, "warning")


def _webhook_body(alert: OpsAlert) -> dict[str, Any]:
    return {
        "event": alert.event,
        "severity": alert.severity,
        "environment": alert.environment,
        "raised_at": alert.raised_at.isoformat(),
        "details": alert.details,
    }


def _slack_body(alert: OpsAlert) -> dict[str, Any]:
    details = json.dumps(alert.details, sort_keys=True, default=str)
    return {
        "text": f"[{alert.severity.upper()}] {alert.event} ({alert.environment})",
        "attachments": [
            {
                "color": SLACK_COLORS.get(alert.severity, SLACK_COLORS["warning"]),
                "text": f"```{details}```",
                "ts": int(alert.raised_at.timestamp()),
            }
        ],
    }


FORMATTERS: dict[str, Callable[[OpsAlert], dict[str, Any]]] = {
    "slack": _slack_body,
    "webhook": _webhook_body,
}


def _configured_channels(settings: Any) -> dict[str, str]:
    urls = {
        "slack": settings.ops_alert_slack_webhook_url.strip(),
        "webhook": settings.ops_alert_webhook_url.strip(),
    }
    return {channel: url for channel, url in urls.items() if url}


async def _deliver(client: httpx.AsyncClient, *, channel: str, url: str, alert: OpsAlert) -> bool:
    try:
        response = await client.post(url, json=FORMATTERS[channel](alert))
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning(
            "ops_alert_delivery_failed",
            alert_event=alert.event,
            channel=channel,
            error_type=type(exc).__name__,
        )
        return False
    return True


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    """Fan ``event`` out to the configured ops channels.

    Returns ``True`` when at least one channel accepted it. Delivery problems
    are logged and never raised, so a flaky webhook cannot fail a worker run.
    """
    settings = get_settings()
    channels = _configured_channels(settings)
    if not channels:
        logger.info("ops_alert_skipped", alert_event=event, reason="no_channels")
        return False

    alert = OpsAlert(event=event, details=payload, environment=settings.app_env)
    async with httpx.AsyncClient(timeout=ALERT_TIMEOUT_SECONDS) as client:
        results = await asyncio.gather(
            *(
                _deliver(client, channel=channel, url=url, alert=alert)
                for channel, url in channels.items()
            )
        )

    delivered_to = [channel for channel, delivered in zip(channels, results) if delivered]
    if not delivered_to:
        logger.error("ops_alert_undelivered", alert_event=event, severity=alert.severity)
        return False

    logger.info(
        "ops_alert_sent",
        alert_event=event,
        severity=alert.severity,
        delivered_to=delivered_to,
    )
    return True
