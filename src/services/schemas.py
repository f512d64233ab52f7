from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BuildStatus(str, Enum):
    PENDING = "pending"
    COMPILING = "compiling"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


class CompileRequest(BaseModel):
    code: Optional[str] = Field(None, description="Sketch source code.")
    board: Optional[str] = Field(None, description="Fully qualified board name, e.g. arduino:avr:uno.")


class UploadRequest(CompileRequest):
    port: Optional[str] = Field(None, description="Serial port, e.g. COM7 or /dev/ttyUSB0.")


class CompileResponse(BaseModel):
    message: str
    output: str
    warnings: Optional[str] = None
    binary: Optional[str] = Field(None, description="Base64 encoded firmware image.")


class UploadResponse(BaseModel):
    message: str
    output: str
    warnings: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
