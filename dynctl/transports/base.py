"""Transport interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from dynctl.core.model import Credentials


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    content: bytes


class Transport(Protocol):
    def get(
        self,
        url: str,
        *,
        auth: Credentials | None = None,
    ) -> HttpResponse:
        """Issue a GET request, with HTTP Basic auth when ``auth`` is given.

        Raise NetworkError when no response arrives.
        """
