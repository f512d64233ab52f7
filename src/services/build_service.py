"""
Compile and upload pipelines.

Each call is an independent pipeline: write the sketch into a fresh
workspace, run the toolchain, classify the result, and remove the
workspace before returning.
"""
from __future__ import annotations

import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple

from ..config import Settings
from .errors import ArtifactMissing, CompileFailed, UploadFailed
from .schemas import BuildStatus, CompileResponse, UploadResponse
from .toolchain import ArduinoCli, ProcessResult
from .workspace import SketchWorkspace

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIXES = (".ino.bin", ".ino.hex")


def failure_details(result: ProcessResult) -> str:
    if result.stderr:
        return result.stderr
    if result.stdout:
        return result.stdout
    return f"Process exited with code {result.returncode}"


class BuildService:
    def __init__(self, settings: Settings, toolchain: Optional[ArduinoCli] = None):
        self.settings = settings
        self.toolchain = toolchain or ArduinoCli(
            settings.cli_command,
            max_concurrent=settings.max_concurrent_builds,
            compile_timeout=settings.compile_timeout,
            upload_timeout=settings.upload_timeout,
        )

    @property
    def temp_dir(self) -> Path:
        return self.settings.temp_dir

    def classify(self, result: ProcessResult) -> Tuple[bool, Optional[str]]:
        """Return (ok, warnings) for a finished toolchain process.

        A non-zero exit is always a failure. Output on stderr after a clean
        exit is a failure only when ``fail_on_stderr`` is set; otherwise it
        is passed back to the caller as warnings.
        """
        if not result.succeeded:
            return False, None
        if result.stderr:
            if self.settings.fail_on_stderr:
                return False, None
            return True, result.stderr
        return True, None

    def _log_status(self, workspace: SketchWorkspace, status: BuildStatus) -> None:
        logger.info(f"Build {workspace.name}: {status.value}")

    async def _compile(
        self, workspace: SketchWorkspace, board: str, output_dir: Optional[Path] = None
    ) -> Tuple[ProcessResult, Optional[str]]:
        self._log_status(workspace, BuildStatus.COMPILING)
        result = await self.toolchain.compile(board, workspace.path, output_dir)
        ok, warnings = self.classify(result)
        if not ok:
            self._log_status(workspace, BuildStatus.ERROR)
            details = failure_details(result)
            logger.warning(f"Build {workspace.name}: compilation failed: {details}")
            raise CompileFailed(details)
        return result, warnings

    def _read_artifact(self, workspace: SketchWorkspace) -> bytes:
        for suffix in ARTIFACT_SUFFIXES:
            candidate = workspace.build_dir / f"{workspace.name}{suffix}"
            if candidate.is_file():
                return candidate.read_bytes()
        raise FileNotFoundError(f"No build artifact found in {workspace.build_dir}")

    async def read_artifact(self, workspace: SketchWorkspace) -> str:
        try:
            data = await asyncio.to_thread(self._read_artifact, workspace)
        except OSError as e:
            logger.error(f"Build {workspace.name}: {e}")
            raise ArtifactMissing(str(e)) from e
        return base64.b64encode(data).decode("ascii")

    @asynccontextmanager
    async def _workspace(self, code: str) -> AsyncIterator[SketchWorkspace]:
        workspace = SketchWorkspace(self.temp_dir)
        try:
            try:
                await workspace.write(code)
            except OSError as e:
                logger.error(f"Build {workspace.name}: could not write sketch: {e}")
                raise CompileFailed(str(e)) from e
            yield workspace
        finally:
            await workspace.cleanup()

    async def compile_sketch(self, code: str, board: str) -> CompileResponse:
        async with self._workspace(code) as workspace:
            self._log_status(workspace, BuildStatus.PENDING)
            output_dir = workspace.build_dir if self.settings.return_binary else None
            result, warnings = await self._compile(workspace, board, output_dir)

            binary = None
            if self.settings.return_binary:
                binary = await self.read_artifact(workspace)

            self._log_status(workspace, BuildStatus.DONE)
            return CompileResponse(
                message="Compilation successful",
                output=result.stdout,
                warnings=warnings,
                binary=binary,
            )

    async def upload_sketch(self, code: str, board: str, port: str) -> UploadResponse:
        async with self._workspace(code) as workspace:
            self._log_status(workspace, BuildStatus.PENDING)
            await self._compile(workspace, board)

            self._log_status(workspace, BuildStatus.UPLOADING)
            result = await self.toolchain.upload(port, board, workspace.path)
            ok, warnings = self.classify(result)
            if not ok:
                self._log_status(workspace, BuildStatus.ERROR)
                details = failure_details(result)
                logger.error(f"Upload error: {details}")
                raise UploadFailed(details)

            self._log_status(workspace, BuildStatus.DONE)
            return UploadResponse(
                message="Upload successful",
                output=result.stdout,
                warnings=warnings,
            )
