"""Lookup collaborators answering ``get(key) -> LookupResponse``."""

from typing import Any, Dict

from allowance.lookup.errors import LookupFailed
from allowance.lookup.http import HttpLookupClient
from allowance.lookup.table import StaticLookup


def build_lookup(cfg: Dict[str, Any]):
    """Create the collaborator described by the ``lookup`` config section."""
    t = cfg.get("type", "http")
    if t == "http":
        return HttpLookupClient(
            cfg["base_url"],
            timeout=float(cfg.get("timeout", 10.0)),
            path=cfg.get("path", "/max-weight"),
        )
    elif t == "static":
        return StaticLookup.from_config(cfg.get("table") or [])
    else:
        raise ValueError(f"Unknown lookup type: {t}")


__all__ = ["LookupFailed", "HttpLookupClient", "StaticLookup", "build_lookup"]
