"""HTTP trigger endpoints.

Expone "correr ahora" y el chequeo puntual de una búsqueda. Ambos responden
enseguida; el trabajo sigue en segundo plano y los resultados quedan en la base.
"""

from fastapi import APIRouter, FastAPI, HTTPException

from fareradar.engine import SearchNotFoundError
from fareradar.trigger import RunTrigger


def create_app(trigger: RunTrigger) -> FastAPI:
    """Build the FastAPI app around an existing trigger."""
    app = FastAPI(title="fareradar")
    app.state.trigger = trigger
    app.include_router(_build_router(trigger))
    return app


def _build_router(trigger: RunTrigger) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health():
        return {"status": "ok", "running": trigger.is_running}

    @router.post("/api/run-scraper")
    async def run_scraper():
        try:
            message = trigger.run_now()
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to start search: {e}") from e
        return {"success": True, "message": message}

    @router.post("/api/searches/{search_id}/check")
    async def check_search(search_id: str):
        try:
            message = await trigger.check_now(search_id)
        except SearchNotFoundError:
            raise HTTPException(status_code=404, detail="Search not found") from None
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to start search: {e}") from e
        return {"success": True, "message": message}

    return router
