"""
Gluetun control server client.

Gluetun exposes the state of its VPN connection and the port forwarded by the
VPN provider over HTTP. A port can only be trusted while the tunnel reports
"running", and Gluetun answers 0 while no port is assigned.
"""

from typing import Optional

import requests

from .base_client import HttpClient, is_valid_port
from .config import HTTP_TIMEOUT, BackendConfig
from .errors import DecodeError, PortPusherError, PortUnavailableError


STATUS_PATH = "/v1/openvpn/status"
PORT_FORWARDED_PATH = "/v1/openvpn/portforwarded"


class GluetunClient(HttpClient):
    def __init__(
        self,
        config: BackendConfig,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT,
        api_key: Optional[str] = None,
    ):
        super().__init__(config, session=session, timeout=timeout)
        self.api_key = api_key

    def _get(self, path: str, what: str) -> dict:
        headers = {"X-API-Key": self.api_key} if self.api_key else None
        response = self._request("GET", path, headers=headers)
        self._expect_ok(response, what)
        data = self._json(response, what)
        self.log.debug(f"{what} response: {data}")
        if not isinstance(data, dict):
            raise DecodeError(f"{what} returned {type(data).__name__}, expected an object")
        return data

    def get_status(self) -> str:
        data = self._get(STATUS_PATH, "fetch status")
        status = data.get("status")
        if not isinstance(status, str):
            raise DecodeError(f"status response has no status string: {data}")
        return status

    def get_forwarded_port(self) -> int:
        """Return the raw forwarded port, which may be 0."""
        data = self._get(PORT_FORWARDED_PATH, "fetch forwarded port")
        port = data.get("port")
        if not isinstance(port, int) or isinstance(port, bool):
            raise DecodeError(f"portforwarded response has no integer port: {data}")
        return port

    def pull_port(self) -> int:
        """
        Fetch the port Gluetun currently forwards.

        Makes two calls: one to verify that the tunnel is running and a second
        to fetch the forwarded port.

        Returns:
            The forwarded port, always in [1, 65535]

        Raises:
            PortUnavailableError: if the tunnel is not running or no port is assigned
            TransportError: if Gluetun cannot be reached or answers non-200
            DecodeError: if a response is malformed
        """
        try:
            status = self.get_status()
            if status != "running":
                raise PortUnavailableError(f"status is {status}, cannot fetch forwarded port")

            port = self.get_forwarded_port()
            # 0 means port forwarding is unavailable or the tunnel dropped
            if port == 0:
                raise PortUnavailableError("gluetun responded with port 0")
            if not is_valid_port(port):
                raise DecodeError(f"gluetun responded with out of range port {port}")
        except PortPusherError as e:
            self.log.error(f"Pull port error: {e}")
            raise

        self.log.info(f"Forwarded port is {port}")
        return port
