# converter_service/api/tokens.py
# Development only: main.build_router() leaves this router out unless
# ENVIRONMENT=development.
from fastapi import APIRouter, Request
from pydantic import BaseModel
import structlog

from converter_service.core.crypto import TOKEN_TTL_SECONDS, AuthGate

logger = structlog.get_logger(__name__)

router = APIRouter()


class TokenOut(BaseModel):
    token: str
    token_type: str = "Bearer"
    expires_in: int = TOKEN_TTL_SECONDS
    service: str


@router.post("/token", response_model=TokenOut)
async def mint_token(request: Request):
    gate: AuthGate = request.app.state.auth_gate
    logger.warning("dev_token_minted", service=gate.expected_service)
    return TokenOut(token=gate.issue(), service=gate.expected_service)
