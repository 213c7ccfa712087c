"""Error taxonomy shared by the provisioning pipeline and the monitor."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

Resource = Union[str, Path, None]


class OlError(Exception):
    """Base class for every fatal olnode failure.

    `resource` names the file, URL or field that caused the failure. `stage` is
    filled in by the wizard when the error crosses a pipeline stage boundary.
    """

    kind = "error"

    def __init__(self, message: str, *, resource: Resource = None) -> None:
        super().__init__(message)
        self.message = message
        self.resource = str(resource) if resource is not None else None
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        parts = []
        if self.stage:
            parts.append(f"stage={self.stage}")
        parts.append(f"{self.kind}: {self.message}")
        if self.resource:
            parts.append(f"({self.resource})")
        return " ".join(parts)


class ConfigError(OlError):
    kind = "config"


class NetworkError(OlError):
    kind = "network"


class ValidationError(OlError):
    kind = "validation"


class FileSystemError(OlError):
    kind = "filesystem"


class SigningError(OlError):
    kind = "signing"
