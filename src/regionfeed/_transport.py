"""HTTP transport for the feature server."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from regionfeed._redact import redact_for_log
from regionfeed.config import LoaderConfig
from regionfeed.exceptions import FormatError, NetworkError

_logger = logging.getLogger(__name__)

QueryParams = Mapping[str, str | int]


class Transport(Protocol):
    """Structural transport interface used by sources, resolvers and writeback.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str, params: QueryParams) -> Any:
        ...

    async def post_json(self, endpoint: str, payload: Any, params: QueryParams) -> Any:
        ...


def _is_json_content_type(content_type: str) -> bool:
    ctype = content_type.split(";", 1)[0].strip().lower()
    return ctype == "application/json" or ctype.endswith("+json")


class HttpTransport:
    """aiohttp-backed transport mapping failures onto the regionfeed taxonomy.

    * connection errors, timeouts and non-2xx statuses → :class:`NetworkError`
    * non-JSON content types and undecodable bodies → :class:`FormatError`
    """

    def __init__(self, config: LoaderConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self, *, with_body: bool = False) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": self._config.user_agent,
        }
        if with_body:
            headers["content-type"] = "application/json; charset=UTF-8"
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    def _url(self, endpoint: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: QueryParams,
        body: str | None = None,
    ) -> tuple[str, bytes]:
        url = self._url(endpoint)
        _logger.debug("%s %s params=%s", method, url, redact_for_log(dict(params)))

        try:
            async with self._http.request(
                method,
                url,
                params={k: str(v) for k, v in params.items()},
                data=body,
                headers=self._headers(with_body=body is not None),
                timeout=self._timeout,
            ) as resp:
                raw = await resp.read()
                if not 200 <= resp.status < 300:
                    raise NetworkError(
                        f"HTTP {resp.status} from {endpoint}: {raw[:200].decode('utf-8', 'replace')}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
                return resp.headers.get("Content-Type", ""), raw
        except NetworkError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NetworkError(
                f"Request to {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc

    @staticmethod
    def _decode(endpoint: str, content_type: str, raw: bytes) -> Any:
        if content_type and not _is_json_content_type(content_type):
            raise FormatError(
                f"Unexpected content type {content_type!r} from {endpoint}",
                endpoint=endpoint,
            )
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FormatError(f"Response from {endpoint} is not valid UTF-8", endpoint=endpoint) from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise FormatError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

    async def get_json(self, endpoint: str, params: QueryParams) -> Any:
        content_type, raw = await self._request("GET", endpoint, params)
        return self._decode(endpoint, content_type, raw)

    async def post_json(self, endpoint: str, payload: Any, params: QueryParams) -> Any:
        body = json.dumps(payload, separators=(",", ":"))
        content_type, raw = await self._request("POST", endpoint, params, body=body)
        if not raw.strip():
            return None
        return self._decode(endpoint, content_type, raw)
