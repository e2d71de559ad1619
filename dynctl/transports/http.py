"""HTTP transport implementation using httpx.

Certificate validation is disabled on purpose. Configured endpoints are
assumed to be devices on a trusted local network, usually serving self-signed
certificates, and strict validation would make them unreachable. This is a
security trade-off: anyone able to intercept traffic to a configured host can
impersonate it.
"""

from __future__ import annotations

import logging

import httpx

from dynctl.core.errors import NetworkError
from dynctl.core.model import Credentials
from dynctl.transports.base import HttpResponse

LOGGER = logging.getLogger(__name__)


class HTTPTransport:
    def __init__(self, *, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(verify=False, follow_redirects=True)

    def get(
        self,
        url: str,
        *,
        auth: Credentials | None = None,
    ) -> HttpResponse:
        basic = httpx.BasicAuth(auth.login, auth.password) if auth is not None else None
        try:
            response = self._client.get(url, auth=basic)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"GET {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"GET {url} failed: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise NetworkError(f"GET {url} rejected: {exc}") from exc
        except ValueError as exc:
            # Host names that fail IDNA encoding surface as UnicodeError.
            raise NetworkError(f"GET {url} rejected: {exc}") from exc
        LOGGER.debug("GET %s -> %s", url, response.status_code)
        return HttpResponse(status_code=response.status_code, content=response.content)

    def close(self) -> None:
        self._client.close()
