"""Advisor client: forwards a query to the external advisory service.

The ledger never depends on the advisor. When it is disabled, unreachable or
answers with an error, callers get CollaboratorUnavailable (503).
"""

import logging

import httpx

from ajl.config import Settings
from ajl.core.errors import CollaboratorUnavailable, ValidationError

logger = logging.getLogger("ajl.advisor")


async def query(
    settings: Settings,
    *,
    task: str,
    payload: dict | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """POST ``{task, payload}`` to the advisor and return its JSON answer."""
    task = (task or "").strip()
    if not task:
        raise ValidationError("task required", {"field": "task"})
    if not settings.advisor_enabled:
        raise CollaboratorUnavailable("Advisor is disabled", {"enabled": False})

    try:
        async with httpx.AsyncClient(
            timeout=settings.advisor_timeout_seconds, transport=transport
        ) as client:
            response = await client.post(
                settings.advisor_url, json={"task": task, "payload": payload or {}}
            )
            response.raise_for_status()
            body = response.json()
    except httpx.HTTPError as exc:
        logger.warning("advisor unreachable url=%s: %s", settings.advisor_url, exc)
        raise CollaboratorUnavailable("Advisor unavailable", {"reason": str(exc)}) from exc
    except ValueError as exc:
        raise CollaboratorUnavailable("Advisor returned invalid JSON") from exc

    if not isinstance(body, dict) or body.get("ok") is False:
        raise CollaboratorUnavailable("Advisor declined the request", {"response": body})
    return body
