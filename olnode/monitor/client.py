from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import requests

from olnode.errors import NetworkError


class NodeClient:
    """Thin JSON-RPC reader for a node's public API."""

    def __init__(self, node_url: str, *, timeout_s: float = 5.0) -> None:
        self.node_url = node_url.rstrip("/")
        self.timeout_s = timeout_s
        self._ids = itertools.count(1)

    def rpc(self, method: str, params: Optional[List[Any]] = None) -> Any:
        body = {"jsonrpc": "2.0", "method": method, "params": params or [], "id": next(self._ids)}
        try:
            r = requests.post(self.node_url, json=body, timeout=self.timeout_s)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise NetworkError(f"rpc {method} failed: {e}", resource=self.node_url) from e
        if not isinstance(data, dict):
            raise NetworkError(f"rpc {method} returned a non-object", resource=self.node_url)
        if data.get("error"):
            raise NetworkError(f"rpc {method} error: {data['error']}", resource=self.node_url)
        return data.get("result")

    def get_metadata(self) -> Dict[str, Any]:
        result = self.rpc("get_metadata")
        return result if isinstance(result, dict) else {}

    def get_account(self, address: str) -> Optional[Dict[str, Any]]:
        result = self.rpc("get_account", [address])
        return result if isinstance(result, dict) else None

    def get_validators(self) -> List[Dict[str, Any]]:
        result = self.rpc("get_validators")
        if not isinstance(result, list):
            return []
        return [v for v in result if isinstance(v, dict)]
