"""Challenge/response login that brings a fresh connection to an authenticated state."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

from psdevbot.config import Settings
from psdevbot.errors import AuthenticationError, TransportError
from psdevbot.models import Challenge, OutboundMessage
from psdevbot.transports.base import Connection
from psdevbot.transports.showdown import parse_frame
from psdevbot.utils.logging import get_logger

log = get_logger(__name__)


class Authenticator:
    """Drives the login handshake on a newly opened connection.

    Messages preceding the ``challstr`` are ignored. Once the challenge
    arrives the credentials are exchanged for an assertion at the login
    server, and ``/trn`` is sent back over the connection. After that the
    caller owns the connection again.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client

    async def authenticate(self, connection: Connection) -> None:
        timeout = self._settings.relay.auth_timeout
        try:
            await asyncio.wait_for(self._handshake(connection), timeout=timeout)
        except asyncio.TimeoutError:
            raise AuthenticationError(f"Not authenticated within {timeout:g}s") from None
        log.info("showdown_authenticated", user=self._settings.user)

    async def _handshake(self, connection: Connection) -> None:
        while True:
            try:
                frame = await connection.receive()
            except TransportError as e:
                raise AuthenticationError("Connection closed before challenge") from e
            for message in parse_frame(frame):
                if isinstance(message, Challenge):
                    assertion = await self._login(message.challstr)
                    command = f"trn {self._settings.user},0,{assertion}"
                    try:
                        await connection.send(OutboundMessage.global_command(command).to_frame())
                    except TransportError as e:
                        raise AuthenticationError("Connection closed during login") from e
                    return
                log.debug("handshake_message_ignored", message=message)

    async def _login(self, challstr: str) -> str:
        try:
            resp = await self._http.post(
                self._settings.login_server,
                data={
                    "act": "login",
                    "name": self._settings.user,
                    "pass": self._settings.password,
                    "challstr": challstr,
                },
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Login request failed: {e}") from e
        return parse_login_response(resp.text)


def parse_login_response(body: str) -> str:
    """Extract the assertion from an ``action.php`` login response.

    The body is a ``]`` followed by a JSON object.
    """
    try:
        data: Any = json.loads(body.removeprefix("]"))
    except json.JSONDecodeError as e:
        raise AuthenticationError("Malformed login response") from e
    if not isinstance(data, dict) or not data.get("actionsuccess"):
        raise AuthenticationError("Login rejected")
    assertion = data.get("assertion")
    if not isinstance(assertion, str) or not assertion:
        raise AuthenticationError("Login response has no assertion")
    if assertion.startswith(";;"):
        raise AuthenticationError(f"Login rejected: {assertion[2:]}")
    return assertion
