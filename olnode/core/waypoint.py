from __future__ import annotations

import re
from dataclasses import dataclass

from olnode.errors import ValidationError

_HASH_RE = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class Waypoint:
    """Trusted checkpoint: ledger version plus the hash of the ledger info at it.

    String form is `<version>:<64 hex chars>`, e.g. `0:6b2a...`.
    """

    version: int
    value: str

    @classmethod
    def parse(cls, raw: str) -> "Waypoint":
        if not isinstance(raw, str):
            raise ValidationError(f"waypoint must be a string, got {type(raw).__name__}")
        version_s, sep, value = raw.strip().partition(":")
        if not sep:
            raise ValidationError(f"waypoint {raw!r} is missing the ':' separator")
        try:
            version = int(version_s)
        except ValueError:
            raise ValidationError(f"waypoint {raw!r} has a non-numeric version") from None
        if version < 0:
            raise ValidationError(f"waypoint {raw!r} has a negative version")
        if not _HASH_RE.match(value):
            raise ValidationError(f"waypoint {raw!r} hash must be 32 bytes of hex")
        return cls(version=version, value=value.lower())

    def __str__(self) -> str:
        return f"{self.version}:{self.value}"
