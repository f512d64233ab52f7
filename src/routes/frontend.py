from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Frontend"])

INDEX_FILE = "index.html"


def resolve_static(static_dir: Path, path: str) -> Optional[Path]:
    """Return the file under static_dir that path names, or None.

    Paths escaping static_dir are treated as unknown.
    """
    if not path:
        return None
    try:
        root = static_dir.resolve()
        candidate = (root / path).resolve()
        if root not in candidate.parents:
            return None
        return candidate if candidate.is_file() else None
    except (OSError, ValueError):
        # NUL bytes or over-long components cannot name a file
        return None


def _frontend_response(static_dir: Path, path: str = ""):
    asset = resolve_static(static_dir, path)
    if asset is not None:
        return FileResponse(asset)

    index = static_dir / INDEX_FILE
    if index.is_file():
        return FileResponse(index)

    logger.debug(f"No frontend found in {static_dir}")
    return JSONResponse({"message": "Frontend not found"})


@router.get("/", include_in_schema=False)
async def home(request: Request):
    return _frontend_response(request.app.state.settings.static_dir)


@router.get("/{full_path:path}", include_in_schema=False)
async def frontend(full_path: str, request: Request):
    return _frontend_response(request.app.state.settings.static_dir, full_path)
