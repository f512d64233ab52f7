from __future__ import annotations

from fastapi import APIRouter, Body, Request

from ..services.build_service import BuildService
from ..services.schemas import (
    CompileRequest,
    CompileResponse,
    ErrorResponse,
    UploadRequest,
    UploadResponse,
)
from ..utils.validation import require_fields, validate_port

router = APIRouter(tags=["Build"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or invalid request fields"},
    500: {"model": ErrorResponse, "description": "Toolchain failure"},
}


def _service(request: Request) -> BuildService:
    return request.app.state.build_service


@router.post(
    "/compile",
    response_model=CompileResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="Compile a sketch",
)
async def compile_sketch(
    request: Request, payload: CompileRequest = Body(...)
) -> CompileResponse:
    require_fields(payload, ["code", "board"])
    return await _service(request).compile_sketch(payload.code, payload.board)


@router.post(
    "/upload",
    response_model=UploadResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="Compile a sketch and flash it to a serial port",
)
async def upload_sketch(
    request: Request, payload: UploadRequest = Body(...)
) -> UploadResponse:
    require_fields(payload, ["code", "board", "port"])
    validate_port(payload.port)
    return await _service(request).upload_sketch(payload.code, payload.board, payload.port)
