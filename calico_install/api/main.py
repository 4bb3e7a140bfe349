"""
FastAPI main application.
"""

import logging
import uuid
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from calico_install import __version__
from calico_install.api.models import (
    ErrorResponse,
    Installation,
    InstallationDefaultsResponse,
    InstallationValidateResponse,
    SuccessResponse,
)
from calico_install.api.services import installation_service
from calico_install.cli.lib.errors import DefaultingError

app = FastAPI(
    title="calico-install API",
    description="REST API for validating and defaulting Calico Installation resources",
    version=__version__,
)
logger = logging.getLogger(__name__)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    request_id = str(uuid.uuid4())
    logger.exception("Unhandled error (request_id=%s, path=%s)", request_id, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "request_id": request_id,
            "status": "error",
            "error": {"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
        },
    )


@app.get("/v1/health", response_model=SuccessResponse)
def health() -> Dict[str, Any]:
    request_id = str(uuid.uuid4())
    return {"request_id": request_id, "status": "ok", "data": {"version": __version__}}


@app.post(
    "/v1/installations/validate",
    response_model=InstallationValidateResponse,
    responses={422: {"model": ErrorResponse}},
)
def validate_installation(
    installation: Installation,
    fill_defaults: bool = Query(False, description="Fill in defaults before validating"),
) -> Any:
    """
    Validate an Installation.

    Returns 422 with every violation if the Installation is invalid.
    """
    request_id = str(uuid.uuid4())
    try:
        result = installation_service.validate_installation(installation, apply_defaults=fill_defaults)
    except DefaultingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not result["valid"]:
        first = result["violations"][0]
        return JSONResponse(
            status_code=422,
            content={
                "request_id": request_id,
                "status": "error",
                "error": {
                    "code": "INVALID_INSTALLATION",
                    "message": f"{first['field']}: {first['detail']}",
                    "details": result,
                },
            },
        )

    return {"request_id": request_id, "status": "ok", "data": result}


@app.post("/v1/installations/defaults", response_model=InstallationDefaultsResponse)
def default_installation(installation: Installation) -> Dict[str, Any]:
    """
    Fill in defaults for an Installation.
    """
    request_id = str(uuid.uuid4())
    try:
        result = installation_service.default_installation(installation)
        return {"request_id": request_id, "status": "ok", "data": {"installation": result}}
    except DefaultingError as e:
        raise HTTPException(status_code=400, detail=str(e))
