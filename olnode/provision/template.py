"""Template account.json: the seed document a new validator configures from."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Tuple, Union

import bittensor as bt
import requests

from olnode.core.models import TemplateDocument
from olnode.core.waypoint import Waypoint
from olnode.errors import FileSystemError, NetworkError, ValidationError
from olnode.utils.env import http_timeout_s

TEMPLATE_FILE = "template.json"


def save_template(url: str, home: Union[str, Path]) -> Path:
    """Download the template once (no retry) and store it as home/template.json."""
    target = Path(home) / TEMPLATE_FILE
    try:
        r = requests.get(url, timeout=http_timeout_s())
        r.raise_for_status()
    except requests.RequestException as e:
        raise NetworkError(f"could not fetch template: {e}", resource=url) from e

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(r.content)
    except OSError as e:
        raise FileSystemError(f"could not save template: {e}", resource=target) from e
    return target


def get_epoch_info(path: Union[str, Path]) -> Tuple[int, Waypoint]:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FileSystemError("template file not found", resource=path) from None
    except (OSError, UnicodeDecodeError) as e:
        raise FileSystemError(f"could not read template: {e}", resource=path) from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"template is not valid JSON: {e}", resource=path) from e

    if not isinstance(data, dict):
        raise ValidationError("template must be a JSON object", resource=path)

    epoch = data.get("epoch")
    if epoch is None:
        raise ValidationError("template is missing field 'epoch'", resource=path)
    # bool is an int subclass; reject it explicitly.
    if isinstance(epoch, bool) or not isinstance(epoch, int) or epoch < 0:
        raise ValidationError(f"field 'epoch' must be an unsigned integer, got {epoch!r}", resource=path)

    raw_wp = data.get("waypoint")
    if raw_wp is None:
        raise ValidationError("template is missing field 'waypoint'", resource=path)
    if not isinstance(raw_wp, str):
        raise ValidationError(f"field 'waypoint' must be a string, got {raw_wp!r}", resource=path)
    try:
        waypoint = Waypoint.parse(raw_wp)
    except ValidationError as e:
        raise ValidationError(f"field 'waypoint': {e.message}", resource=path) from e

    return epoch, waypoint


def resolve(url: str, destination_dir: Union[str, Path]) -> TemplateDocument:
    path = save_template(url, destination_dir)
    bt.logging.debug(f"template saved to {path}")
    epoch, waypoint = get_epoch_info(path)
    return TemplateDocument(epoch=epoch, waypoint=waypoint)
