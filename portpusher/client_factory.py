"""
Factory for creating the Gluetun client and torrent client instances.

Every client gets its own requests.Session, so cookies and connection pools
never leak from one backend into another.
"""

from typing import List

import requests

from .base_client import BasePortClient
from .config import BackendConfig, Config
from .deluge_client import DelugeClient
from .gluetun_client import GluetunClient
from .logger import logger
from .qbittorrent_client import QbittorrentClient
from .transmission_client import TransmissionClient


CLIENT_MAPPING = {
    "transmission": TransmissionClient,
    "qbittorrent": QbittorrentClient,
    "deluge": DelugeClient,
}


def get_client(backend: BackendConfig, timeout: float) -> BasePortClient:
    """
    Create a torrent client instance for the given backend configuration.

    Raises:
        ValueError: If the backend name is not supported
    """
    try:
        client_cls = CLIENT_MAPPING[backend.name]
    except KeyError:
        raise ValueError(f"Unknown backend: {backend.name}")
    return client_cls(backend, session=requests.Session(), timeout=timeout)


def create_port_clients(config: Config) -> List[BasePortClient]:
    """Build the enabled backends, in configured order."""
    clients = []
    for backend in config.backends:
        client = get_client(backend, config.http_timeout)
        logger.info(f"Client ready {client}")
        clients.append(client)
    return clients


def create_port_source(config: Config) -> GluetunClient:
    client = GluetunClient(
        config.gluetun,
        session=requests.Session(),
        timeout=config.http_timeout,
        api_key=config.gluetun_api_key,
    )
    logger.info(f"Client ready {client}")
    return client
