"""Single-request execution against a resolved device URL."""

from __future__ import annotations

import logging

from dynctl.core.errors import NetworkError
from dynctl.core.model import Credentials, Failure, FailureReason, Outcome, Success
from dynctl.transports.base import Transport
from dynctl.transports.http import HTTPTransport

LOGGER = logging.getLogger(__name__)


def request_credentials(secure: bool, credentials: Credentials | None) -> Credentials | None:
    """Credentials to send with a request, or None for an unauthenticated GET."""
    if not secure:
        return None
    if credentials is None or not credentials.login or not credentials.password:
        LOGGER.warning("Secure device has no usable credentials; sending request without Authorization")
        return None
    return credentials


class RequestExecutor:
    """Issue one GET per call and fold transport failures into an Outcome.

    Stateless apart from the transport it wraps, so it is safe to share between
    the poller and the dispatcher worker threads. No retries happen here.
    """

    def __init__(self, transport: Transport | None = None) -> None:
        self.transport = transport or HTTPTransport()

    def execute(
        self,
        url: str,
        *,
        secure: bool = False,
        credentials: Credentials | None = None,
    ) -> Outcome:
        auth = request_credentials(secure, credentials)
        try:
            response = self.transport.get(url, auth=auth)
        except NetworkError as exc:
            return Failure(reason=FailureReason.CONNECTION, detail=str(exc))
        return Success(status_code=response.status_code, body=response.content)

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()
