# converter_service/core/auth.py
from __future__ import annotations

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from converter_service.core.crypto import Admit, AuthGate, Reject, RejectionKind, ServiceClaims

logger = structlog.get_logger(__name__)


class AuthRejected(Exception):
    def __init__(self, reject: Reject) -> None:
        super().__init__(reject.kind.value)
        self.reject = reject


def _remote_addr(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def require_service_token(request: Request) -> ServiceClaims:
    """Route dependency: admit the request or raise ``AuthRejected``.

    Runs before the handler touches the request body. The decoded claims are
    returned and also left on ``request.state.service_claims``.
    """
    gate: AuthGate = request.app.state.auth_gate
    outcome = gate.authenticate(request.headers.get("authorization"))

    if isinstance(outcome, Admit):
        request.state.service_claims = outcome.claims
        return outcome.claims

    # never log the header itself
    log = logger.error if outcome.kind is RejectionKind.VERIFICATION_FAULT else logger.warning
    log(
        "auth_rejected",
        kind=outcome.kind.value,
        status=outcome.status_code,
        remote_addr=_remote_addr(request),
        method=request.method,
        path=request.url.path,
    )
    raise AuthRejected(outcome)


async def auth_rejected_handler(request: Request, exc: AuthRejected) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.reject.status_code == 401 else None
    return JSONResponse(
        status_code=exc.reject.status_code,
        content=exc.reject.to_body(),
        headers=headers,
    )
