"""
Deluge Web JSON-RPC client.

Deluge Web is only a proxy in front of a separately running deluged daemon, so
before any core.* call can succeed the web UI must be connected to a daemon.
The push sequence is therefore: log in, make sure the web UI is connected
(connecting it to the first online host if it is not), then read and write the
daemon config.

Many web.* methods answer with bare positional arrays; those are decoded into
fixed-shape records here and rejected with DecodeError when malformed.
"""

import math
from typing import Any, Dict, List, NamedTuple, Optional

import requests

from .base_client import BasePortClient
from .config import HTTP_TIMEOUT, BackendConfig
from .errors import AuthenticationError, DecodeError, HandshakeError, ProtocolError, RpcError


RPC_PATH = "/json"

HOST_ONLINE = "Online"


class DelugeHost(NamedTuple):
    """
    One entry of web.get_hosts.

    sample value: ["a92774accdd846f48179a892494625cc", "127.0.0.1", 58846, "localclient"]
    """
    id: str
    address: str
    port: int
    hostname: str

    @classmethod
    def from_row(cls, row: Any) -> "DelugeHost":
        if not isinstance(row, list) or len(row) < 4:
            raise DecodeError(f"expected a host entry of 4 elements, got {row!r}")
        host_id, address, port, hostname = row[:4]
        if not isinstance(host_id, str) or not isinstance(address, str) or not isinstance(hostname, str):
            raise DecodeError(f"malformed host entry {row!r}")
        if not isinstance(port, (int, float)) or isinstance(port, bool):
            raise DecodeError(f"malformed host entry {row!r}")
        # The JSON decoder lets NaN and Infinity through as floats
        if isinstance(port, float) and not math.isfinite(port):
            raise DecodeError(f"malformed host entry {row!r}")
        return cls(host_id, address, int(port), hostname)


class DelugeHostStatus(NamedTuple):
    """
    Result of web.get_host_status.

    sample value: ["a92774accdd846f48179a892494625cc", "Online", "2.1.1"]
    """
    id: str
    status: str
    version: str

    @classmethod
    def from_row(cls, row: Any) -> "DelugeHostStatus":
        if not isinstance(row, list) or len(row) < 3:
            raise DecodeError(f"expected a host status of 3 elements, got {row!r}")
        host_id, status, version = row[:3]
        if not isinstance(host_id, str) or not isinstance(status, str):
            raise DecodeError(f"malformed host status {row!r}")
        # Offline hosts report no version
        return cls(host_id, status, version if isinstance(version, str) else "")


class DelugeConfig(NamedTuple):
    listen_ports: List[int]
    random_port: bool

    @classmethod
    def from_result(cls, result: Any) -> "DelugeConfig":
        if not isinstance(result, dict):
            raise DecodeError(f"core.get_config returned {type(result).__name__}, expected an object")
        listen_ports = result.get("listen_ports")
        if (
            not isinstance(listen_ports, list)
            or not listen_ports
            or not all(isinstance(p, int) and not isinstance(p, bool) for p in listen_ports)
        ):
            raise DecodeError(f"core.get_config returned malformed listen_ports: {listen_ports!r}")
        random_port = result.get("random_port", False)
        if not isinstance(random_port, bool):
            raise DecodeError(f"core.get_config returned malformed random_port: {random_port!r}")
        return cls(listen_ports=listen_ports, random_port=random_port)


class DelugeClient(BasePortClient):
    def __init__(
        self,
        config: BackendConfig,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        super().__init__(config, session=session, timeout=timeout)
        self._message_id = 0

    def _next_id(self) -> int:
        self._message_id += 1
        return self._message_id

    def _call(self, method: str, *params: Any) -> Any:
        """
        Send one JSON-RPC call and return its result.

        sample request:
            {"method": "auth.login", "params": ["deluge"], "id": 46}

        sample response:
            {"result": true, "error": null, "id": 46}
        """
        message_id = self._next_id()
        body = {"method": method, "params": list(params), "id": message_id}
        if method == "auth.login":
            self.log.debug(f"{method} request id={message_id}")
        else:
            self.log.debug(f"{method} request={body}")

        response = self._request(
            "POST",
            RPC_PATH,
            json=body,
            headers={
                "Accept": "application/json",
                "Origin": self.base_url,
                "Referer": self.base_url,
            },
        )
        self._expect_ok(response, method)

        data = self._json(response, method)
        self.log.debug(f"{method} response={data}")
        if not isinstance(data, dict):
            raise DecodeError(f"{method} returned {type(data).__name__}, expected an object")

        error = data.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RpcError(
                    f"{method} error {error.get('code')}: {error.get('message')}",
                    code=error.get("code"),
                )
            raise RpcError(f"{method} error: {error}")

        if data.get("id") != message_id:
            raise ProtocolError(
                f"{method} response id {data.get('id')!r} does not match request id {message_id}"
            )
        return data.get("result")

    @staticmethod
    def _expect(result: Any, kind: type, method: str) -> Any:
        if not isinstance(result, kind):
            raise DecodeError(f"{method} expected {kind.__name__} but found {type(result).__name__} {result!r}")
        return result

    # -------------------------------------------------------------------------
    # RPC methods
    # -------------------------------------------------------------------------

    def login(self) -> None:
        if not self._expect(self._call("auth.login", self.config.password), bool, "auth.login"):
            raise AuthenticationError("login rejected, check password")
        self.log.debug("Login OK")

    def web_connected(self) -> bool:
        """Check whether Deluge Web is connected to a daemon."""
        return self._expect(self._call("web.connected"), bool, "web.connected")

    def get_hosts(self) -> List[DelugeHost]:
        rows = self._expect(self._call("web.get_hosts"), list, "web.get_hosts")
        return [DelugeHost.from_row(row) for row in rows]

    def get_host_status(self, host_id: str) -> DelugeHostStatus:
        return DelugeHostStatus.from_row(self._call("web.get_host_status", host_id))

    def web_connect(self, host_id: str) -> List[str]:
        """Connect Deluge Web to a daemon; returns the daemon's method list."""
        return self._expect(self._call("web.connect", host_id), list, "web.connect")

    def get_config(self) -> DelugeConfig:
        return DelugeConfig.from_result(self._call("core.get_config"))

    def set_config(self, values: Dict[str, Any]) -> None:
        self._call("core.set_config", values)

    # -------------------------------------------------------------------------
    # Push sequence
    # -------------------------------------------------------------------------

    def ensure_connected(self) -> None:
        """Connect the web UI to the first online daemon if it is not connected."""
        self._step = "web.connected"
        if self.web_connected():
            self.log.debug("Deluge is connected")
            return

        self.log.debug("Deluge disconnected")
        self._step = "web.get_hosts"
        hosts = self.get_hosts()
        self.log.debug(f"Hosts: {hosts}")
        if not hosts:
            raise HandshakeError("no hosts to connect to")

        for host in hosts:
            self._step = "web.get_host_status"
            status = self.get_host_status(host.id)
            if status.status != HOST_ONLINE:
                self.log.debug(f"Host {host.id} ({host.address}:{host.port}) is {status.status}")
                continue
            self._step = "web.connect"
            self.web_connect(host.id)
            self.log.info(f"Connected to host {host.id} ({host.address}:{host.port})")
            return

        raise HandshakeError("no online hosts found")

    def _push(self, port: int) -> bool:
        self._step = "auth.login"
        self.login()

        self.ensure_connected()

        self._step = "core.get_config"
        config = self.get_config()
        self.log.debug(f"getConfig OK {config}")

        current_port = config.listen_ports[0]
        if current_port == port and not config.random_port:
            self.log.info("Port is correct")
            return False

        self._step = "core.set_config"
        self.log.info(f"Pushing port {port}, current port is {current_port}")
        self.set_config({"listen_ports": [port, port], "random_port": False})
        self.log.info("Port pushed")
        return True
