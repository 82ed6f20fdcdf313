from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, cast

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from linksentry.application.validation import parse_link_check_request
from linksentry.domain.entities import FieldError
from linksentry.domain.exceptions import RequestValidationError
from linksentry.infrastructure.auth import extract_session_id
from linksentry.infrastructure.streaming import EventChannel, encode_event
from linksentry.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["link-check"])

LINK_CHECK_PATH = "/link-check"


def _error(status_code: int, content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


def _invalid_payload(errors: list[FieldError]) -> JSONResponse:
    return _error(
        400,
        {
            "error": "Invalid request payload",
            "details": [e.to_payload() for e in errors],
        },
    )


async def _authorize(request: Request, state: AppState) -> JSONResponse | None:
    """Return an error response when the admin session check fails."""
    config = state.config
    if not config.auth.required:
        return None

    verifier = state.session_verifier
    if verifier is None:
        log.error(
            "link_check_misconfigured",
            reason="auth.admin_api_url is not configured",
        )
        return _error(
            500,
            {
                "error": "Internal server error",
                "message": "Missing required configuration: admin_api_url",
            },
        )

    session_id = extract_session_id(request.headers)
    if not session_id:
        log.warning("auth_failed", reason="missing_session")
        return _error(401, {"error": "Unauthorized: Missing Wagtail session"})

    if not await verifier.verify(session_id):
        log.warning("auth_failed", reason="invalid_session")
        return _error(401, {"error": "Unauthorized: Invalid Wagtail session"})
    return None


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise RequestValidationError(
            [FieldError(field="body", message="Request body must be valid JSON")]
        ) from None


async def _event_stream(channel: EventChannel) -> AsyncIterator[dict[str, str]]:
    try:
        async for event in channel:
            yield {"data": encode_event(event)}
    finally:
        # Client gone or stream done: the run stops dispatching new probes.
        channel.close()


@router.post(LINK_CHECK_PATH)
async def link_check(request: Request) -> Response:
    state = cast(AppState, request.app.state)

    denied = await _authorize(request, state)
    if denied is not None:
        return denied

    try:
        payload = await _read_json(request)
        link_request = parse_link_check_request(
            payload, max_urls=state.config.link_check.max_urls
        )
    except RequestValidationError as e:
        log.warning(
            "link_check_validation_failed",
            errors=[err.to_payload() for err in e.errors],
        )
        return _invalid_payload(e.errors)

    if state.run_tracker.is_shutting_down:
        return _error(503, {"error": "Service is shutting down"})

    channel = EventChannel()
    state.run_tracker.start(state.link_check_uc.execute(link_request, channel))

    return EventSourceResponse(
        _event_stream(channel),
        sep="\n",
        headers={"X-Accel-Buffering": "no"},
    )


@router.api_route(
    LINK_CHECK_PATH,
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def link_check_method_not_allowed() -> JSONResponse:
    return _error(405, {"error": "Method not allowed"})
