"""FastAPI application exposing the gateway over HTTP.

Routes:
    GET  /api/materials                  search from a query string
    POST /api/materials                  search from a JSON body
    GET  /api/materials/{material_id}    aggregated dataset detail
    GET  /api/datasets                   dataset registry
    GET  /health                         liveness

Every failure is answered with ``{"error": message}``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .datasets import DATASETS
from .errors import GATEWAY_FAILURE_STATUS, MaterialsAPIError
from .models import SearchParams
from .normalizer import normalize_detail_request, normalize_search_params
from .service import MaterialsGateway
from .settings import GatewaySettings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["materials"])


def error_response(exc: Exception, context: str) -> JSONResponse:
    """Map an exception onto the outbound error shape."""
    if isinstance(exc, MaterialsAPIError):
        logger.warning("%s: %s", context, exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)
    logger.exception("%s", context)
    message = str(exc) or "Unable to retrieve materials data."
    return JSONResponse({"error": message}, status_code=GATEWAY_FAILURE_STATUS)


def _gateway(request: Request) -> MaterialsGateway:
    return request.app.state.gateway


async def _search(request: Request, params: SearchParams) -> JSONResponse:
    try:
        page = await _gateway(request).search_materials(params)
    except Exception as e:
        return error_response(e, "Materials search failed")
    return JSONResponse(page.to_dict())


@router.get("/materials")
async def search_materials(request: Request) -> JSONResponse:
    """Search with filters from the query string."""
    return await _search(request, normalize_search_params(request.query_params))


@router.post("/materials")
async def search_materials_body(request: Request) -> JSONResponse:
    """Search with filters from a JSON body. An unreadable body means no filters."""
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    return await _search(request, normalize_search_params(payload))


@router.get("/materials/{material_id}")
async def material_detail(material_id: str, request: Request) -> JSONResponse:
    """Aggregate the requested datasets of one material.

    Query parameters:
        datasets: comma separated dataset keys (default: all but tasks)
        taskIds: comma separated task ids (adds the tasks dataset)
    """
    detail = normalize_detail_request(material_id, request.query_params)
    try:
        result = await _gateway(request).get_material_detail(detail)
    except Exception as e:
        return error_response(e, f"Failed to load detail for {material_id}")
    return JSONResponse(result.to_dict())


@router.get("/datasets")
async def list_datasets() -> list[dict[str, object]]:
    """Describe every registered dataset."""
    return [descriptor.to_dict() for descriptor in DATASETS.values()]


def create_app(
    settings: GatewaySettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: GatewaySettings (singleton from the environment if None)
        transport: Optional httpx transport for the upstream client

    Returns:
        Configured FastAPI app; one MaterialsGateway lives for its lifespan
    """
    settings = settings or GatewaySettings.get_instance()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        for warning in settings.validate():
            logger.warning(warning)
        async with MaterialsGateway(settings=settings, transport=transport) as gateway:
            app.state.gateway = gateway
            yield

    app = FastAPI(title="Materials Gateway", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
