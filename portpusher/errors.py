"""
Exceptions raised while pulling the forwarded port or pushing it to a client.

- PortPusherError: Base exception for all runtime failures
- TransportError: Connection failures, timeouts and unexpected HTTP statuses
- ProtocolError: Responses that do not follow the expected protocol
- DecodeError: Malformed bodies, missing fields or short positional rows
- RpcError: Application-level error reported inside an RPC response
- HandshakeError: Session handshakes or daemon selection that cannot complete
- AuthenticationError: Credentials rejected by the remote service
- PortUnavailableError: The sidecar has no usable forwarded port right now
"""


class PortPusherError(Exception):
    """Base exception for pull and push failures."""
    pass


class TransportError(PortPusherError):
    """Raised when a request fails or returns an unexpected HTTP status."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(PortPusherError):
    """Raised when a response does not match the expected protocol."""
    pass


class DecodeError(ProtocolError):
    """Raised when a response body cannot be decoded into the expected shape."""
    pass


class RpcError(ProtocolError):
    """Raised when an RPC response carries an application-level error."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class HandshakeError(PortPusherError):
    """Raised when a session handshake or daemon connection cannot complete."""
    pass


class AuthenticationError(PortPusherError):
    """Raised when the remote service rejects our credentials."""
    pass


class PortUnavailableError(PortPusherError):
    """Raised when the sidecar reports no usable forwarded port."""
    pass
