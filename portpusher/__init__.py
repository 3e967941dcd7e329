"""
portpusher - Keep BitTorrent clients listening on the port Gluetun forwards.

Polls the Gluetun control server for the forwarded port and pushes it to
Transmission, qBittorrent and Deluge, writing only when a client's listening
port differs.
"""

from .base_client import BasePortClient, PushOutcome, PushResult
from .config import BackendConfig, Config, ConfigError
from .deluge_client import DelugeClient
from .gluetun_client import GluetunClient
from .pusher import CycleResult, PortPusher
from .qbittorrent_client import QbittorrentClient
from .transmission_client import TransmissionClient

__version__ = "0.1.0"
__all__ = [
    "BackendConfig",
    "BasePortClient",
    "Config",
    "ConfigError",
    "CycleResult",
    "DelugeClient",
    "GluetunClient",
    "PortPusher",
    "PushOutcome",
    "PushResult",
    "QbittorrentClient",
    "TransmissionClient",
]
