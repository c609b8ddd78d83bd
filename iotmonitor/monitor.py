"""Device monitor: polls the service, stores readings and raises alerts."""

from __future__ import annotations

import argparse
import random
import time
from datetime import datetime
from enum import Enum
from typing import Any

from .apiclient import ApiClient, DeviceReadings
from .database import DEFAULT_PATH, DeviceDatabase
from .warning import WarningWindow

DEFAULT_BASE_URL = "http://127.0.0.1:5000/"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
POLL_INTERVAL = 5.0
LED_SIZE = 20
OFFLINE_DEVICE_COUNT = 5
OFFLINE_STATE = "未連線"


class DeviceStatus(Enum):
    """Health of one device, with the label and colour its LED shows."""

    DISCONNECTED = (0, "未連線", "rgb(190, 190, 190)")
    ABNORMAL = (1, "異常", "rgb(255, 0, 0)")
    NORMAL = (2, "正常", "rgb(0, 255, 0)")
    WARNING = (3, "警示", "rgb(255, 255, 0)")

    def __init__(self, code: int, label: str, color: str) -> None:
        self.code = code
        self.label = label
        self.color = color


def _to_int(text: str) -> int:
    # Text that is not a whole number counts as zero.
    try:
        return int(text.strip())
    except ValueError:
        return 0


def classify(temp: str, rh: str) -> DeviceStatus:
    """Status of a device from its temperature and humidity text."""
    if temp == "" or rh == "":
        return DeviceStatus.DISCONNECTED
    t, h = _to_int(temp), _to_int(rh)
    if t <= 5 or t >= 50 or h <= 25 or h >= 90:
        return DeviceStatus.ABNORMAL
    return DeviceStatus.NORMAL


def led_style(status: DeviceStatus, size: int = LED_SIZE) -> str:
    """Style sheet of a round LED of the given height showing ``status``."""
    return (
        f"min-width: {size * 2}px;"
        f"min-height: {size}px;"
        f"max-width: {size * 2}px;"
        f"max-height: {size}px;"
        f"border-radius: {size // 2}px;"
        "border:1px solid black;"
        f"background-color:{status.color}"
    )


def alert_message(readings: DeviceReadings) -> str:
    """One line per disconnected or abnormal device; empty when all is well."""
    lines = []
    for index in range(len(readings)):
        name, temp, rh, _state, _date_time = readings.row(index)
        status = classify(temp, rh)
        if status is DeviceStatus.DISCONNECTED:
            lines.append(f"{name}設備未連線\n")
        elif status is DeviceStatus.ABNORMAL:
            lines.append(f"{name}裝置異常\n")
    return "".join(lines)


def format_time(moment: datetime) -> str:
    """``moment`` as ``YYYY-MM-DD HH:MM:SS``."""
    return moment.strftime(TIME_FORMAT)


def random_reading(rng: random.Random, now: datetime) -> dict[str, Any]:
    """A made-up reading for one of the test devices."""
    return {
        "name": f"device{rng.randrange(4)}",
        "temp": str(rng.randrange(0, 70)),
        "rh": str(rng.randrange(0, 100)),
        "state": "test",
        "date_time": format_time(now),
    }


class Monitor:
    """Ties the API client, the readings store and the alert window together."""

    def __init__(
        self,
        client: ApiClient | None = None,
        database: DeviceDatabase | None = None,
        base_url: str = DEFAULT_BASE_URL,
        warning: WarningWindow | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.client = client if client is not None else ApiClient()
        self.database = database if database is not None else DeviceDatabase()
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.warning = warning if warning is not None else WarningWindow()
        self.rng = rng if rng is not None else random.Random()

    def poll(self) -> bool:
        """Ask the service for every device; True if new readings arrived."""
        return self.client.post(self.base_url + "test/post", {"name": "all"})

    def record(self, now: datetime | None = None) -> int:
        """Store the current readings; returns the number of rows written.

        A device without temperature and humidity stands for a lost
        connection, and each such device logs every known device as offline.
        """
        moment = format_time(now if now is not None else datetime.now())
        written = 0
        for index in range(len(self.client.data)):
            name, temp, rh, state, date_time = self.client.data.row(index)
            if temp != "" or rh != "":
                self.database.add(name, temp, rh, state, date_time)
                written += 1
                continue
            for number in range(1, OFFLINE_DEVICE_COUNT + 1):
                self.database.add(f"device{number}", "", "", OFFLINE_STATE, moment)
                written += 1
        return written

    def simulate(self, now: datetime | None = None) -> bytes:
        """Send a random reading for a test device to the service."""
        reading = random_reading(self.rng, now if now is not None else datetime.now())
        return self.client.put(self.base_url + "test/put", reading)

    def device_rows(self) -> list[tuple[str, str, str, str, DeviceStatus]]:
        """Name, state, temperature, humidity and status of every device."""
        rows = []
        for index in range(len(self.client.data)):
            name, temp, rh, state, _date_time = self.client.data.row(index)
            rows.append((name, state, temp, rh, classify(temp, rh)))
        return rows

    def check_alerts(self) -> str:
        """Open or close the alert window to match the readings; the message."""
        message = alert_message(self.client.data)
        if message:
            if not self.warning.is_open():
                self.warning.open()
        elif self.warning.is_open():
            self.warning.close()
        self.warning.set_text(message)
        return message

    def tick(self, now: datetime | None = None) -> str:
        """One polling period: fetch, store, simulate, then check alerts."""
        moment = now if now is not None else datetime.now()
        self.poll()
        self.record(moment)
        self.simulate(moment)
        return self.check_alerts()


def _report(monitor: Monitor, now: datetime) -> None:
    print(format_time(now))
    for name, state, temp, rh, status in monitor.device_rows():
        print(f"{name}\t{state}\t{temp}\t{rh}\t{status.label}")
    message = monitor.check_alerts()
    if message:
        print(message, end="")


def main(argv: list[str] | None = None) -> int:
    """Run the monitor from the command line."""
    parser = argparse.ArgumentParser(prog="iotmonitor", description="Monitor IoT devices.")
    parser.add_argument("--url", default=DEFAULT_BASE_URL, help="base URL of the device service")
    parser.add_argument("--db", default=DEFAULT_PATH, help="SQLite file for readings")
    parser.add_argument("--interval", type=float, default=POLL_INTERVAL, help="seconds between polls")
    parser.add_argument("--count", type=int, default=None, help="number of polls before stopping")
    args = parser.parse_args(argv)
    if args.interval < 0:
        parser.error("--interval must not be negative")

    with DeviceDatabase(args.db) as database:
        monitor = Monitor(database=database, base_url=args.url)
        monitor.poll()
        _report(monitor, datetime.now())
        done = 0
        try:
            while args.count is None or done < args.count:
                time.sleep(args.interval)
                now = datetime.now()
                monitor.poll()
                monitor.record(now)
                monitor.simulate(now)
                _report(monitor, now)
                done += 1
        except KeyboardInterrupt:
            pass
    return 0