"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, error translation) lives here; every
sub-router imports what it needs from this package.
"""

import logging
import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from padel_league.services.league_store import LeagueError, NotFoundError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"

# Limits are only enforced outside the test environment
limiter = Limiter(key_func=get_remote_address, enabled=not IS_TEST_ENV)

WRITE_RATE_LIMIT = os.getenv("WRITE_RATE_LIMIT", "60/minute")


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
def to_http_exception(exc: Exception, action: str) -> HTTPException:
    """
    Map a service-layer failure to an HTTP error.

    NotFoundError -> 404, any other LeagueError (rejected input) -> 400.
    Anything else is a server fault: 500 with a generic message, and the
    underlying error is only logged.
    """
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, LeagueError):
        return HTTPException(status_code=400, detail=str(exc))
    logger.error(f"Error {action}: {exc}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Error {action}")


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from padel_league.api.routes.players import router as players_router  # noqa: E402
from padel_league.api.routes.matches import router as matches_router  # noqa: E402
from padel_league.api.routes.stats import router as stats_router  # noqa: E402

router = APIRouter()
router.include_router(players_router)
router.include_router(matches_router)
router.include_router(stats_router)
