"""HTTP client for the device service and the readings it returns."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

log = logging.getLogger(__name__)

BLANK_DEVICE_COUNT = 5
JSON_CONTENT_TYPE = "application/json"

Payload = Union[bytes, str, Mapping[str, Any]]


class ApiError(Exception):
    """Raised when a request fails or a reply cannot be understood."""


def _as_text(value: Any) -> str:
    # Non-string JSON values read as empty text.
    return value if isinstance(value, str) else ""


@dataclass
class DeviceReadings:
    """Column-wise readings of the devices reported by the service."""

    name: list[str] = field(default_factory=list)
    temp: list[str] = field(default_factory=list)
    rh: list[str] = field(default_factory=list)
    state: list[str] = field(default_factory=list)
    date_time: list[str] = field(default_factory=list)

    _FIELDS = ("name", "temp", "rh", "state", "date_time")

    @classmethod
    def blank(cls, count: int = BLANK_DEVICE_COUNT) -> "DeviceReadings":
        """Readings for ``count`` devices with every value empty."""
        return cls(*([""] * count for _ in cls._FIELDS))

    @classmethod
    def from_device_payload(cls, device: Any) -> "DeviceReadings":
        """Build readings from the ``device`` value of a reply.

        An object gives one device, an array gives one device per object
        in it; any other value gives no devices. Missing keys are skipped.
        """
        readings = cls()
        if isinstance(device, Mapping):
            entries = [device]
        elif isinstance(device, list):
            entries = [entry for entry in device if isinstance(entry, Mapping)]
        else:
            entries = []
        for entry in entries:
            for key in cls._FIELDS:
                if key in entry:
                    getattr(readings, key).append(_as_text(entry[key]))
            log.debug("device reading: %s", {k: entry.get(k) for k in cls._FIELDS})
        return readings

    def __len__(self) -> int:
        return len(self.name)

    def row(self, index: int) -> tuple[str, str, str, str, str]:
        """The name, temp, rh, state and date_time of one device."""
        return tuple(getattr(self, key)[index] for key in self._FIELDS)  # type: ignore[return-value]


def parse_reply(body: bytes | str) -> DeviceReadings:
    """Parse a reply body holding a JSON object with a ``device`` member."""
    if not body:
        raise ApiError("empty reply")
    try:
        document = json.loads(body)
    except ValueError as exc:
        raise ApiError(f"invalid JSON reply: {exc}") from exc
    if not isinstance(document, dict):
        raise ApiError("reply is not a JSON object")
    if "device" not in document:
        raise ApiError("reply has no 'device' member")
    return DeviceReadings.from_device_payload(document["device"])


def _encode(payload: Payload) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return json.dumps(dict(payload), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class ApiClient:
    """Blocking JSON client; ``data`` holds the last readings fetched."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self.data = DeviceReadings.blank()

    def _send(self, method: str, url: str, body: bytes | None = None) -> bytes:
        request = urllib.request.Request(
            str(url),
            data=body,
            method=method,
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as reply:
                return reply.read()
        except (OSError, ValueError) as exc:
            raise ApiError(str(exc)) from exc

    def _send_logged(self, method: str, url: str, body: bytes | None = None) -> bytes:
        try:
            reply = self._send(method, url, body)
        except ApiError as exc:
            log.debug("Error: %s", exc)
            return b""
        log.debug("message: %r", reply)
        return reply

    def get(self, url: str) -> bytes:
        """GET ``url``; the reply body, or empty bytes if the request failed."""
        return self._send_logged("GET", url)

    def post(self, url: str, payload: Payload) -> bool:
        """POST ``payload`` and load device readings from the reply.

        Returns True when ``data`` was replaced by the reply's readings.
        A failed request resets ``data`` to blank readings; an unusable
        reply leaves it as it was.
        """
        try:
            reply = self._send("POST", url, _encode(payload))
        except ApiError as exc:
            log.debug("Error: %s", exc)
            self.data = DeviceReadings.blank()
            return False
        try:
            self.data = parse_reply(reply)
        except ApiError as exc:
            log.debug("reply not used: %s", exc)
            return False
        return True

    def put(self, url: str, payload: Payload) -> bytes:
        """PUT ``payload``; the reply body, or empty bytes if the request failed."""
        return self._send_logged("PUT", url, _encode(payload))

    def delete(self, url: str) -> bytes:
        """DELETE ``url``; the reply body, or empty bytes if the request failed."""
        return self._send_logged("DELETE", url)