import json
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from portpusher.config import BackendConfig


def make_response(status_code: int = 200, body: Any = None, headers: Optional[Dict[str, str]] = None,
                  text: Optional[str] = None) -> requests.Response:
    """Build a real requests.Response with the given status, JSON body and headers."""
    response = requests.Response()
    response.status_code = status_code
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict(headers or {})
    return response


class RecordedRequest:
    def __init__(self, method: str, url: str, kwargs: Dict[str, Any]):
        self.method = method
        self.url = url
        self.path = urlparse(url).path
        self.headers = CaseInsensitiveDict(kwargs.get("headers") or {})
        self.json = kwargs.get("json")
        self.data = kwargs.get("data")
        self.auth = kwargs.get("auth")
        self.timeout = kwargs.get("timeout")

    @property
    def rpc_method(self) -> Optional[str]:
        return self.json.get("method") if isinstance(self.json, dict) else None

    def __repr__(self):
        return f"<{self.method} {self.path} {self.rpc_method or ''}>"


class FakeSession:
    """
    Stand-in for requests.Session that records every request.

    The handler receives each RecordedRequest and returns a requests.Response
    (or raises, to simulate a transport failure).
    """

    def __init__(self, handler: Optional[Callable[[RecordedRequest], requests.Response]] = None):
        self.handler = handler
        self.requests: List[RecordedRequest] = []

    def request(self, method, url, **kwargs):
        recorded = RecordedRequest(method, url, kwargs)
        self.requests.append(recorded)
        if self.handler is None:
            raise AssertionError(f"unexpected request {recorded}")
        return self.handler(recorded)

    def paths(self) -> List[str]:
        return [r.path for r in self.requests]

    def rpc_methods(self) -> List[str]:
        return [r.rpc_method for r in self.requests]


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def qbittorrent_config():
    return BackendConfig(name="qbittorrent", host="qbt", port=8080, user="admin", password="adminadmin")


@pytest.fixture
def transmission_config():
    return BackendConfig(name="transmission", host="tr", port=9091, user="admin", password="password")


@pytest.fixture
def deluge_config():
    return BackendConfig(name="deluge", host="deluge", port=8112, user="admin", password="deluge")


@pytest.fixture
def gluetun_config():
    return BackendConfig(name="gluetun", host="gluetun", port=8000)
