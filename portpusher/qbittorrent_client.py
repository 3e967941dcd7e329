"""
qBittorrent WebUI client.

Logs in with a form POST; qBittorrent answers with an SID cookie that the
client's own requests.Session keeps for the preference calls that follow.
"""

import json
from dataclasses import dataclass

from .base_client import BasePortClient
from .errors import AuthenticationError, DecodeError


LOGIN_PATH = "/api/v2/auth/login"
PREFERENCES_PATH = "/api/v2/app/preferences"
SET_PREFERENCES_PATH = "/api/v2/app/setPreferences"


@dataclass
class Preferences:
    listen_port: int
    random_port: bool

    @classmethod
    def from_json(cls, data) -> "Preferences":
        if not isinstance(data, dict):
            raise DecodeError(f"preferences are {type(data).__name__}, expected an object")
        listen_port = data.get("listen_port")
        random_port = data.get("random_port")
        if not isinstance(listen_port, int) or isinstance(listen_port, bool):
            raise DecodeError(f"preferences have no integer listen_port: {listen_port!r}")
        if not isinstance(random_port, bool):
            raise DecodeError(f"preferences have no boolean random_port: {random_port!r}")
        return cls(listen_port=listen_port, random_port=random_port)

    def to_json(self) -> str:
        return json.dumps({"listen_port": self.listen_port, "random_port": self.random_port})


class QbittorrentClient(BasePortClient):
    def login(self) -> None:
        # https://github.com/qbittorrent/qBittorrent/wiki/WebUI-API-(qBittorrent-4.1)#login
        response = self._request(
            "POST",
            LOGIN_PATH,
            data={"username": self.config.user, "password": self.config.password},
            headers={"Referer": self.base_url},
        )
        self._expect_ok(response, "login")
        # Wrong credentials still get HTTP 200, with "Fails." as the body
        if response.text.strip() == "Fails.":
            raise AuthenticationError("login rejected, check username and password")
        self.log.debug("Login OK")

    def get_preferences(self) -> Preferences:
        response = self._request("GET", PREFERENCES_PATH)
        self._expect_ok(response, "getPreferences")
        prefs = Preferences.from_json(self._json(response, "getPreferences"))
        self.log.debug(f"getPreferences OK {prefs}")
        return prefs

    def set_preferences(self, prefs: Preferences) -> None:
        response = self._request("POST", SET_PREFERENCES_PATH, data={"json": prefs.to_json()})
        self._expect_ok(response, "setPreferences")

    def _push(self, port: int) -> bool:
        self._step = "login"
        self.login()

        self._step = "getPreferences"
        prefs = self.get_preferences()

        if prefs.listen_port == port and not prefs.random_port:
            self.log.info("Port is correct")
            return False

        self._step = "setPreferences"
        self.log.info(f"Pushing port {port}, current port is {prefs.listen_port}")
        self.set_preferences(Preferences(listen_port=port, random_port=False))
        self.log.info("Port pushed")
        return True
