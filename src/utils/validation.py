from __future__ import annotations

import re
from typing import Iterable, Optional

from ..services.errors import RequestValidationFailed

# COM7 on Windows, /dev/ttyUSB0 or /dev/ttyACM0 on Linux
PORT_PATTERN = re.compile(r"^COM\d+$|^/dev/tty(USB|ACM)\d+$", re.ASCII)


def _human_join(names: list[str]) -> str:
    labels = [name.capitalize() if i == 0 else name for i, name in enumerate(names)]
    if len(labels) <= 2:
        return " and ".join(labels)
    return ", ".join(labels[:-1]) + f", and {labels[-1]}"


def require_fields(payload: object, names: Iterable[str]) -> None:
    """Raise a 400 error unless every named attribute is present and non-empty."""
    names = list(names)
    missing = [name for name in names if not getattr(payload, name, None)]
    if missing:
        verb = "is" if len(names) == 1 else "are"
        raise RequestValidationFailed(f"{_human_join(names)} {verb} required")


def is_valid_port(port: Optional[str]) -> bool:
    return bool(port) and PORT_PATTERN.fullmatch(port) is not None


def validate_port(port: str) -> str:
    if not is_valid_port(port):
        raise RequestValidationFailed(
            "Invalid port format",
            f"Port {port} is not valid. Use format COM7 or /dev/ttyUSB0.",
        )
    return port
