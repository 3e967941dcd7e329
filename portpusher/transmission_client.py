"""
Transmission RPC client.

Transmission protects its RPC endpoint against CSRF with a session id: a call
without the current id is answered with HTTP 409 and the id to use in the
X-Transmission-Session-Id header. The id is cached for the lifetime of the
client and refreshed whenever Transmission rotates it.

See https://github.com/transmission/transmission/blob/main/docs/rpc-spec.md
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from .base_client import BasePortClient
from .config import HTTP_TIMEOUT, BackendConfig
from .errors import (
    AuthenticationError,
    DecodeError,
    HandshakeError,
    ProtocolError,
    RpcError,
    TransportError,
)


RPC_PATH = "/transmission/rpc"
SESSION_ID_HEADER = "X-Transmission-Session-Id"

PORT_FIELDS = ["peer-port-random-on-start", "peer-port"]


@dataclass
class PortInfo:
    peer_port: int
    peer_port_random: bool

    @classmethod
    def from_arguments(cls, arguments: Dict[str, Any]) -> "PortInfo":
        peer_port = arguments.get("peer-port")
        peer_port_random = arguments.get("peer-port-random-on-start")
        if not isinstance(peer_port, int) or isinstance(peer_port, bool):
            raise DecodeError(f"session-get returned no integer peer-port: {peer_port!r}")
        if not isinstance(peer_port_random, bool):
            raise DecodeError(
                f"session-get returned no boolean peer-port-random-on-start: {peer_port_random!r}"
            )
        return cls(peer_port=peer_port, peer_port_random=peer_port_random)


class TransmissionClient(BasePortClient):
    def __init__(
        self,
        config: BackendConfig,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        super().__init__(config, session=session, timeout=timeout)
        self.auth = HTTPBasicAuth(config.user, config.password)
        self.session_id = ""
        self._tag = 0

    def _next_tag(self) -> int:
        self._tag += 1
        return self._tag

    def _post(self, body: Dict[str, Any]) -> requests.Response:
        headers = {SESSION_ID_HEADER: self.session_id} if self.session_id else None
        return self._request("POST", RPC_PATH, json=body, auth=self.auth, headers=headers)

    def _rpc(self, method: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Call an RPC method, performing the session id handshake if needed.

        A 409 is answered by re-issuing the call once with the id Transmission
        handed back. A 401 drops the cached id so the next call starts over.

        Returns:
            The "arguments" object of the response
        """
        tag = self._next_tag()
        body = {"arguments": arguments, "method": method, "tag": tag}
        self.log.debug(f"{method} request={body}")

        response = self._post(body)
        if response.status_code == 409:
            session_id = response.headers.get(SESSION_ID_HEADER)
            if not session_id:
                raise HandshakeError("expected session id not received")
            self.session_id = session_id
            self.log.debug(f"Handshake OK sessionId={self.session_id}")
            response = self._post(body)
            if response.status_code == 409:
                raise HandshakeError(f"{method} rejected a freshly issued session id")

        if response.status_code == 401:
            # The cached id is no good once credentials are refused
            self.session_id = ""
            raise AuthenticationError(f"{method} unauthorized, check username and password")
        if response.status_code != 200:
            raise TransportError(
                f"{method} failed, got HTTP {response.status_code}",
                status_code=response.status_code,
            )

        data = self._json(response, method)
        self.log.debug(f"{method} response={data}")
        if not isinstance(data, dict):
            raise DecodeError(f"{method} returned {type(data).__name__}, expected an object")
        if data.get("result") != "success":
            raise RpcError(f"{method} failed: {data.get('result')}")
        if "tag" in data and data["tag"] != tag:
            raise ProtocolError(f"{method} response tag {data['tag']} does not match request tag {tag}")

        result_arguments = data.get("arguments", {})
        if not isinstance(result_arguments, dict):
            raise DecodeError(f"{method} returned non-object arguments: {result_arguments!r}")
        return result_arguments

    def get_port_info(self) -> PortInfo:
        arguments = self._rpc("session-get", {"fields": PORT_FIELDS})
        return PortInfo.from_arguments(arguments)

    def set_port(self, port: int) -> None:
        self._rpc("session-set", {"peer-port": port, "peer-port-random-on-start": False})

    def _push(self, port: int) -> bool:
        self._step = "session-get"
        info = self.get_port_info()
        self.log.debug(f"getPortInfo OK portInfo={info}")

        if info.peer_port == port and not info.peer_port_random:
            self.log.info("Port is correct")
            return False

        self._step = "session-set"
        self.log.info(f"Pushing port {port}, current port is {info.peer_port}")
        self.set_port(port)
        self.log.info("Port pushed")
        return True
