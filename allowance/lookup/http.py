from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Optional

import requests
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from allowance.lookup.errors import LookupFailed
from allowance.models import LookupKey, LookupResponse
from allowance.utils import get_logger, normalize_http_url

logger = get_logger(__name__)


class MaxWeightPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    max_allowed: Decimal = Field(
        validation_alias=AliasChoices("maxAllowed", "max_allowed", "maxWeight", "max_weight"),
    )


class HttpLookupClient:
    """Allowance service client: ``GET {base_url}{path}?group=..&category=..``.

    The blocking ``requests`` call runs in a worker thread so that several
    lookups can be in flight at once. No retries; a failed request fails the
    lookup.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        path: str = "/max-weight",
        session: Optional[requests.Session] = None,
    ):
        url = normalize_http_url(base_url)
        if not url:
            raise ValueError(f"Invalid lookup base_url: {base_url!r}")
        self.base_url = url
        self.path = path if path.startswith("/") else "/" + path
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return self.base_url + self.path

    def _fetch(self, key: LookupKey) -> LookupResponse:
        params = {"group": key.group, "category": key.category}
        try:
            r = self.session.get(self.endpoint, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise LookupFailed(key, str(e)) from e
        if r.status_code // 100 != 2:
            raise LookupFailed(key, f"HTTP {r.status_code}")
        try:
            payload = MaxWeightPayload.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise LookupFailed(key, f"malformed response: {e}") from e
        logger.debug("lookup %s/%s -> %s", key.group, key.category, payload.max_allowed)
        return LookupResponse(max_allowed=payload.max_allowed)

    async def get(self, key: LookupKey) -> LookupResponse:
        return await asyncio.to_thread(self._fetch, key)

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()
