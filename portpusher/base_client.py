"""
Shared HTTP plumbing and the abstract interface for torrent client backends.

Every backend (Transmission, qBittorrent, Deluge) implements BasePortClient,
so the pusher can drive them interchangeably through push(). Each client owns
the requests.Session it is constructed with; nothing about a session is shared
implicitly between backends.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import requests

from .config import HTTP_TIMEOUT, BackendConfig
from .errors import DecodeError, PortPusherError, TransportError
from .logger import get_logger


USER_AGENT = "portpusher"

MIN_PORT = 1
MAX_PORT = 65535


def is_valid_port(port: Any) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and MIN_PORT <= port <= MAX_PORT


class PushOutcome(enum.Enum):
    UNCHANGED = "unchanged"
    PUSHED = "pushed"
    FAILED = "failed"


@dataclass
class PushResult:
    """What a single push did to a single backend."""
    backend: str
    outcome: PushOutcome
    port: int
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.outcome is PushOutcome.FAILED


class HttpClient:
    """Thin wrapper around a requests.Session bound to one host and port."""

    def __init__(
        self,
        config: BackendConfig,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.config = config
        self.name = config.name
        self.base_url = config.base_url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.log = get_logger(config.name)

    def __str__(self) -> str:
        return str(self.config)

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request, translating requests' exceptions into TransportError.

        Status codes are not checked here; callers decide which ones they accept.
        """
        url = self.base_url + path
        headers = {"User-Agent": USER_AGENT}
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", self.timeout)
        try:
            return self.session.request(method, url, headers=headers, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}")

    @staticmethod
    def _expect_ok(response: requests.Response, what: str) -> None:
        if response.status_code != 200:
            raise TransportError(
                f"{what} failed, got HTTP {response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def _json(response: requests.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"{what} returned invalid JSON: {e}")


class BasePortClient(HttpClient, ABC):
    """Abstract base class for backends that accept a listening port."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._step = "init"

    def push(self, port: int) -> PushResult:
        """
        Make the backend listen on port, writing only if it does not already.

        Never raises for network or protocol failures: those are logged and
        reported as a FAILED result so the caller can move on to the next
        backend.

        Args:
            port: The forwarded port the backend should listen on

        Returns:
            PushResult with outcome UNCHANGED, PUSHED or FAILED
        """
        self._step = "validate"
        try:
            if not is_valid_port(port):
                raise PortPusherError(f"refusing to push invalid port {port!r}")
            changed = self._push(port)
        except PortPusherError as e:
            self.log.error(f"Push failed at {self._step}: {e}")
            return PushResult(self.name, PushOutcome.FAILED, port, error=e)

        outcome = PushOutcome.PUSHED if changed else PushOutcome.UNCHANGED
        return PushResult(self.name, outcome, port)

    @abstractmethod
    def _push(self, port: int) -> bool:
        """
        Authenticate, read the current port, and write it if it differs.

        Implementations set self._step as they go so failures can be reported
        against the step that raised.

        Returns:
            True if a mutating call was issued, False if already correct
        """
        pass
