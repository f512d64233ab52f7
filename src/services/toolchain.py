from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

TIMEOUT_RETURNCODE = -1
LAUNCH_FAILURE_RETURNCODE = -2


@dataclass
class ProcessResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class ArduinoCli:
    """
    Thin async wrapper around the arduino-cli executable.

    Commands are executed without a shell. A semaphore caps how many
    toolchain processes run at once and every invocation has a timeout;
    a process that overruns it is killed.
    """

    def __init__(
        self,
        command: Sequence[str] = ("arduino-cli",),
        *,
        max_concurrent: int = 4,
        compile_timeout: float = 300,
        upload_timeout: float = 120,
    ):
        self.command = list(command)
        self.max_concurrent = max(1, max_concurrent)
        self.compile_timeout = compile_timeout
        self.upload_timeout = upload_timeout
        self._semaphore: Optional[asyncio.Semaphore] = None

    @property
    def semaphore(self) -> asyncio.Semaphore:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        return self._semaphore

    def compile_command(
        self, fqbn: str, sketch_dir: Path, output_dir: Optional[Path] = None
    ) -> List[str]:
        argv = [*self.command, "compile", "--fqbn", fqbn]
        if output_dir is not None:
            argv += ["--output-dir", str(output_dir)]
        argv.append(str(sketch_dir))
        return argv

    def upload_command(self, port: str, fqbn: str, sketch_dir: Path) -> List[str]:
        return [*self.command, "upload", "-p", port, "--fqbn", fqbn, str(sketch_dir)]

    async def compile(
        self, fqbn: str, sketch_dir: Path, output_dir: Optional[Path] = None
    ) -> ProcessResult:
        argv = self.compile_command(fqbn, sketch_dir, output_dir)
        return await self.run(argv, self.compile_timeout)

    async def upload(self, port: str, fqbn: str, sketch_dir: Path) -> ProcessResult:
        argv = self.upload_command(port, fqbn, sketch_dir)
        return await self.run(argv, self.upload_timeout)

    async def run(self, argv: Sequence[str], timeout: float) -> ProcessResult:
        async with self.semaphore:
            logger.info(f"Running: {' '.join(argv)}")
            try:
                proc = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                logger.error(f"Could not start {argv[0]}: {e}")
                return ProcessResult(LAUNCH_FAILURE_RETURNCODE, stderr=str(e))

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            except asyncio.TimeoutError:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
                message = f"{argv[0]} timed out after {timeout} seconds"
                logger.error(message)
                return ProcessResult(TIMEOUT_RETURNCODE, stderr=message)
            except BaseException:
                # Cancelled while waiting; the workspace is about to be removed
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                logger.warning(f"{argv[0]} killed after cancellation")
                raise

        result = ProcessResult(
            returncode=proc.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        logger.debug(f"{argv[0]} exited with {result.returncode}")
        return result
