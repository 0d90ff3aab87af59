# converter_service/core/cors.py
from __future__ import annotations

from typing import Any

import structlog

from converter_service.core.config import Settings

logger = structlog.get_logger(__name__)


def cors_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for ``CORSMiddleware`` built from ALLOWED_ORIGINS."""
    origins = settings.origins
    if not origins:
        logger.warning(
            "cors_allow_all_origins",
            detail="ALLOWED_ORIGINS not set - allowing all origins (not recommended for production)",
        )
        origins = ["*"]
    return {
        "allow_origins": origins,
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
