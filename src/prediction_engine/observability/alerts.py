"""
Alert notifications via Slack webhook.

Only the runner sends alerts; the engine core never does I/O.
"""

from typing import Optional

import httpx
import structlog

from prediction_engine.config import settings

logger = structlog.get_logger()

LEVEL_EMOJI = {
    "info": "ℹ️",
    "warning": "⚠️",
    "error": "🚨",
    "success": "✅",
}


async def send_alert(
    message: str,
    level: str = "info",
    title: Optional[str] = None,
    webhook_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Post an alert to Slack.

    Args:
        message: Alert body
        level: info, warning, error or success
        title: Optional title
        webhook_url: Overrides the configured webhook
        client: Reuse an existing HTTP client

    Returns:
        True if Slack accepted the message
    """
    url = webhook_url or settings.slack_webhook_url
    if not url:
        logger.debug("alert_skipped", reason="no_webhook")
        return False

    formatted_title = title or f"Prediction Engine ({level.upper()})"
    payload = {
        "text": f"{LEVEL_EMOJI.get(level, '📢')} *{formatted_title}*\n{message}",
        "username": "Prediction Engine",
        "icon_emoji": ":chart_with_upwards_trend:",
    }

    try:
        if client is None:
            async with httpx.AsyncClient() as owned:
                response = await owned.post(url, json=payload, timeout=10.0)
        else:
            response = await client.post(url, json=payload, timeout=10.0)
    except httpx.HTTPError as e:
        logger.error("alert_error", error=str(e))
        return False

    if response.status_code != 200:
        logger.error("alert_failed", status_code=response.status_code, response=response.text)
        return False

    logger.info("alert_sent", level=level, title=formatted_title)
    return True


async def send_strategy_error_alert(
    strategy_name: str,
    errors: int,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """Report a strategy that was disabled after repeated failures."""
    return await send_alert(
        message=(
            f"Strategy *{strategy_name}* entered ERROR after {errors} consecutive "
            "evaluation failures. Update its config to re-enable it."
        ),
        level="error",
        title="Strategy Disabled",
        client=client,
    )
