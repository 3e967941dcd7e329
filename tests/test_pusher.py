"""
Tests for the poll/push loop and its delay selection.
"""

from unittest.mock import MagicMock

import pytest

from conftest import FakeSession, make_response
from portpusher.base_client import BasePortClient, PushOutcome, PushResult
from portpusher.errors import PortUnavailableError
from portpusher.gluetun_client import GluetunClient
from portpusher.pusher import CycleResult, PortPusher
from portpusher.qbittorrent_client import QbittorrentClient


DELAY_SUCCESS = 600
DELAY_ERROR = 300


def fake_client(name, outcome=PushOutcome.UNCHANGED, calls=None):
    client = MagicMock(spec=BasePortClient)
    client.name = name

    def push(port):
        if calls is not None:
            calls.append(name)
        error = RuntimeError("boom") if outcome is PushOutcome.FAILED else None
        return PushResult(name, outcome, port, error=error)

    client.push.side_effect = push
    return client


def fake_source(port=12345, error=None):
    source = MagicMock(spec=GluetunClient)
    if error is not None:
        source.pull_port.side_effect = error
    else:
        source.pull_port.return_value = port
    return source


@pytest.fixture
def sleeps():
    return []


def make_pusher(source, clients, sleeps):
    return PortPusher(source, clients, DELAY_SUCCESS, DELAY_ERROR, sleep=sleeps.append)


class TestRunOnce:
    def test_pushes_to_every_client_in_order(self, sleeps):
        order = []
        clients = [fake_client(n, calls=order) for n in ("transmission", "qbittorrent", "deluge")]
        pusher = make_pusher(fake_source(), clients, sleeps)

        cycle = pusher.run_once()

        assert order == ["transmission", "qbittorrent", "deluge"]
        assert cycle.port == 12345
        assert not cycle.failed
        for client in clients:
            client.push.assert_called_once_with(12345)

    def test_failure_does_not_stop_later_clients(self, sleeps):
        order = []
        clients = [
            fake_client("transmission", PushOutcome.FAILED, calls=order),
            fake_client("qbittorrent", PushOutcome.PUSHED, calls=order),
            fake_client("deluge", calls=order),
        ]
        pusher = make_pusher(fake_source(), clients, sleeps)

        cycle = pusher.run_once()

        assert order == ["transmission", "qbittorrent", "deluge"]
        assert cycle.failed
        assert [r.outcome for r in cycle.results] == [
            PushOutcome.FAILED, PushOutcome.PUSHED, PushOutcome.UNCHANGED,
        ]

    def test_pull_failure_skips_all_clients(self, sleeps):
        clients = [fake_client("transmission"), fake_client("deluge")]
        pusher = make_pusher(fake_source(error=PortUnavailableError("port 0")), clients, sleeps)

        cycle = pusher.run_once()

        assert cycle.failed
        assert isinstance(cycle.pull_error, PortUnavailableError)
        assert cycle.results == []
        for client in clients:
            client.push.assert_not_called()


class TestDelays:
    def test_all_success_sleeps_success_delay(self, sleeps):
        clients = [fake_client("transmission"), fake_client("qbittorrent", PushOutcome.PUSHED),
                   fake_client("deluge")]
        pusher = make_pusher(fake_source(), clients, sleeps)

        pusher.run(max_cycles=1)

        assert sleeps == [DELAY_SUCCESS]

    def test_single_failure_sleeps_error_delay(self, sleeps):
        clients = [fake_client("transmission"), fake_client("qbittorrent"),
                   fake_client("deluge", PushOutcome.FAILED)]
        pusher = make_pusher(fake_source(), clients, sleeps)

        pusher.run(max_cycles=1)

        assert sleeps == [DELAY_ERROR]

    def test_pull_failure_sleeps_error_delay(self, sleeps):
        pusher = make_pusher(fake_source(error=PortUnavailableError("not running")),
                             [fake_client("deluge")], sleeps)

        pusher.run(max_cycles=1)

        assert sleeps == [DELAY_ERROR]

    def test_unexpected_exception_keeps_looping(self, sleeps):
        source = fake_source()
        source.pull_port.side_effect = [KeyError("surprise"), 12345]
        client = fake_client("qbittorrent")
        pusher = make_pusher(source, [client], sleeps)

        pusher.run(max_cycles=2)

        assert sleeps == [DELAY_ERROR, DELAY_SUCCESS]
        client.push.assert_called_once_with(12345)

    def test_next_delay(self):
        pusher = PortPusher(fake_source(), [], DELAY_SUCCESS, DELAY_ERROR, sleep=lambda s: None)

        assert pusher.next_delay(CycleResult(port=1)) == DELAY_SUCCESS
        assert pusher.next_delay(CycleResult(pull_error=RuntimeError())) == DELAY_ERROR
        failed = CycleResult(port=1, results=[PushResult("deluge", PushOutcome.FAILED, 1)])
        assert pusher.next_delay(failed) == DELAY_ERROR


class TestEndToEnd:
    def test_gluetun_port_reaches_qbittorrent(self, gluetun_config, qbittorrent_config, sleeps):
        """Gluetun forwards 12345 and qBittorrent listens on 9999: one setPreferences."""
        def gluetun(request):
            if request.path == "/v1/openvpn/status":
                return make_response(200, {"status": "running"})
            return make_response(200, {"port": 12345})

        prefs = {"listen_port": 9999, "random_port": False}

        def qbittorrent(request):
            if request.path == "/api/v2/auth/login":
                return make_response(200, text="Ok.")
            if request.path == "/api/v2/app/preferences":
                return make_response(200, prefs)
            return make_response(200, text="")

        qbt_session = FakeSession(qbittorrent)
        pusher = make_pusher(
            GluetunClient(gluetun_config, session=FakeSession(gluetun)),
            [QbittorrentClient(qbittorrent_config, session=qbt_session)],
            sleeps,
        )

        pusher.run(max_cycles=1)

        set_calls = [r for r in qbt_session.requests if r.path == "/api/v2/app/setPreferences"]
        assert len(set_calls) == 1
        assert set_calls[0].data["json"] == '{"listen_port": 12345, "random_port": false}'
        assert sleeps == [DELAY_SUCCESS]
