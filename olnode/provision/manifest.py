from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from olnode.core.models import BootstrapManifest
from olnode.errors import FileSystemError

MANIFEST_FILE = "account.json"


def manifest_path(path: Optional[Union[str, Path]], home: Path) -> Path:
    """Resolve where account.json goes: a directory gets account.json appended."""
    if path is None:
        return home / MANIFEST_FILE
    p = Path(path).expanduser()
    if p.is_dir() or not p.suffix:
        return p / MANIFEST_FILE
    return p


def write_manifest(target: Path, manifest: BootstrapManifest) -> Path:
    tmp = target.with_name(f".{target.name}.tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(manifest.to_json(), encoding="utf-8")
        os.replace(tmp, target)
    except OSError as e:
        raise FileSystemError(f"could not write account manifest: {e}", resource=target) from e
    return target
