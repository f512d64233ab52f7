"""
Per-request sketch working directories.

Every build gets its own directory under the configured temp root holding a
single ``<name>/<name>.ino`` file (the layout arduino-cli expects) plus
whatever the compiler writes next to it. The directory is removed when the
request finishes, whatever the outcome.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
import time
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

SKETCH_SUFFIX = ".ino"


def new_sketch_name() -> str:
    """Timestamp-prefixed name with a random suffix so concurrent requests never collide."""
    return f"sketch_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def ensure_root(root: Path) -> None:
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Error creating temp directory {root}: {e}")


class SketchWorkspace:
    def __init__(self, root: Path, name: str | None = None):
        self.root = Path(root)
        self.name = name or new_sketch_name()
        self.path = self.root / self.name

    @property
    def sketch_file(self) -> Path:
        return self.path / f"{self.name}{SKETCH_SUFFIX}"

    @property
    def build_dir(self) -> Path:
        return self.path / "build"

    def _write(self, code: str) -> None:
        self.path.mkdir(parents=True, exist_ok=False)
        self.sketch_file.write_text(code, encoding="utf-8")

    async def write(self, code: str) -> Path:
        await asyncio.to_thread(self._write, code)
        logger.debug(f"Wrote sketch {self.sketch_file}")
        return self.sketch_file

    async def cleanup(self) -> bool:
        """Remove the directory tree. Failures are logged and reported as False."""
        try:
            await asyncio.to_thread(shutil.rmtree, self.path)
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error(f"Error cleaning up {self.path}: {e}")
            return False
        logger.debug(f"Removed workspace {self.path}")
        return True
