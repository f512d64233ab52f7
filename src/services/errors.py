"""
Error types raised by the build pipeline.

Each error knows the HTTP status it maps to and renders the JSON body the
API returns, so route handlers never build error responses by hand.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class BuildError(Exception):
    status_code: int = 500

    def __init__(self, error: str, details: Optional[str] = None):
        super().__init__(error if details is None else f"{error}: {details}")
        self.error = error
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class RequestValidationFailed(BuildError):
    status_code = 400


class CompileFailed(BuildError):
    def __init__(self, details: Optional[str] = None):
        super().__init__("Compilation failed", details)


class ArtifactMissing(CompileFailed):
    """The compiler exited cleanly but produced no readable binary."""


class UploadFailed(BuildError):
    def __init__(self, details: Optional[str] = None):
        super().__init__("Upload failed", details)
