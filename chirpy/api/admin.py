from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, PlainTextResponse

from chirpy.logging import get_logger
from chirpy.service.errors import ForbiddenError
from chirpy.service.runtime import get_runtime

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

_METRICS_TEMPLATE = """<html>
  <body>
    <h1>Welcome, Chirpy Admin</h1>
    <p>Chirpy has been visited {hits} times!</p>
  </body>
</html>"""


@router.get("/metrics", response_class=HTMLResponse)
async def metrics() -> str:
    runtime = get_runtime()
    return _METRICS_TEMPLATE.format(hits=runtime.hits.value)


@router.post("/reset", response_class=PlainTextResponse)
def reset() -> str:
    """Zero the hit counter and delete every user. Only allowed on PLATFORM=dev."""
    runtime = get_runtime()
    if not runtime.settings.is_dev:
        raise ForbiddenError(
            "reset is only allowed in dev", detail={"platform": runtime.settings.platform}
        )
    runtime.hits.reset()
    deleted = runtime.store.delete_all_users()
    logger.warning("admin_reset", users_deleted=deleted)
    return "Hits reset to 0"
