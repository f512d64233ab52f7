from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["System"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/toolchain")
def toolchain(request: Request):
    """Report how the compiler is invoked and the limits applied to it."""
    settings = request.app.state.settings
    return {
        "command": settings.cli_command,
        "max_concurrent_builds": settings.max_concurrent_builds,
        "compile_timeout": settings.compile_timeout,
        "upload_timeout": settings.upload_timeout,
        "fail_on_stderr": settings.fail_on_stderr,
        "return_binary": settings.return_binary,
    }
