import json
import random
import threading
from datetime import datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from iotmonitor.apiclient import ApiClient, DeviceReadings
from iotmonitor.database import DeviceDatabase
from iotmonitor.monitor import (
    DeviceStatus,
    Monitor,
    alert_message,
    classify,
    format_time,
    led_style,
    main,
    random_reading,
)
from iotmonitor.warning import WarningWindow

NOW = datetime(2024, 3, 1, 12, 30, 45)

DEVICES = [
    {"name": "device1", "temp": "20", "rh": "50", "state": "ok", "date_time": "2024-03-01 12:00:00"},
    {"name": "device2", "temp": "30", "rh": "60", "state": "ok", "date_time": "2024-03-01 12:00:01"},
]


class _Handler(BaseHTTPRequestHandler):
    def _handle(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        self.server.requests.append((self.command, self.path, body))
        payload = self.server.reply
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    do_POST = _handle
    do_PUT = _handle

    def log_message(self, *args):
        pass


@pytest.fixture
def server():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    httpd.requests = []
    httpd.reply = json.dumps({"device": DEVICES}).encode("utf-8")
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()


def _url(httpd):
    return f"http://127.0.0.1:{httpd.server_address[1]}/"


@pytest.fixture
def database(tmp_path):
    with DeviceDatabase(tmp_path / "readings.db") as db:
        yield db


def test_format_time():
    assert format_time(NOW) == "2024-03-01 12:30:45"


@pytest.mark.parametrize(
    "temp, rh, expected",
    [
        ("", "50", DeviceStatus.DISCONNECTED),
        ("20", "", DeviceStatus.DISCONNECTED),
        ("20", "50", DeviceStatus.NORMAL),
        ("6", "26", DeviceStatus.NORMAL),
        ("49", "89", DeviceStatus.NORMAL),
        ("5", "50", DeviceStatus.ABNORMAL),
        ("50", "50", DeviceStatus.ABNORMAL),
        ("20", "25", DeviceStatus.ABNORMAL),
        ("20", "90", DeviceStatus.ABNORMAL),
        ("abc", "50", DeviceStatus.ABNORMAL),
    ],
)
def test_classify(temp, rh, expected):
    assert classify(temp, rh) is expected


def test_status_labels_follow_classification():
    assert classify("", "").label == "未連線"
    assert classify("60", "50").label == "異常"
    assert classify("20", "50").label == "正常"


def test_led_style_normal():
    assert led_style(DeviceStatus.NORMAL, 20) == (
        "min-width: 40px;min-height: 20px;max-width: 40px;max-height: 20px;"
        "border-radius: 10px;border:1px solid black;background-color:rgb(0, 255, 0)"
    )


@pytest.mark.parametrize("status", list(DeviceStatus))
def test_led_style_ends_with_status_colour(status):
    style = led_style(status, 20)
    assert style.endswith("background-color:" + status.color)
    assert "border:1px solid black;" in style


def test_alert_message_lists_problem_devices():
    readings = DeviceReadings(
        name=["device1", "device2", "device3"],
        temp=["", "60", "20"],
        rh=["", "50", "50"],
        state=["", "x", "y"],
        date_time=["", "", ""],
    )
    assert alert_message(readings) == "device1設備未連線\ndevice2裝置異常\n"


def test_alert_message_empty_when_all_normal():
    readings = DeviceReadings.from_device_payload(DEVICES)
    assert alert_message(readings) == ""


def test_random_reading_ranges():
    rng = random.Random(7)
    for _ in range(200):
        reading = random_reading(rng, NOW)
        assert reading["name"] in {"device0", "device1", "device2", "device3"}
        assert 0 <= int(reading["temp"]) < 70
        assert 0 <= int(reading["rh"]) < 100
        assert reading["state"] == "test"
        assert reading["date_time"] == format_time(NOW)


def test_random_reading_is_repeatable_with_seed():
    first = random_reading(random.Random(3), NOW)
    second = random_reading(random.Random(3), NOW)
    assert set(first) == {"name", "temp", "rh", "state", "date_time"}
    assert first["date_time"] == "2024-03-01 12:30:45"
    assert first["state"] == "test"
    assert first == second


def test_record_blank_readings_logs_all_devices_offline(database):
    monitor = Monitor(ApiClient(), database, rng=random.Random(1))
    written = monitor.record(NOW)
    names = database.select("NAME")
    assert written == len(names)
    assert names == [f"device{n}" for n in range(1, 6)] * 5
    assert set(database.select("STATE")) == {"未連線"}
    assert set(database.select("DATE_TIME")) == {format_time(NOW)}


def test_record_mixed_readings(database):
    client = ApiClient()
    client.data = DeviceReadings(
        name=["alpha", "beta"],
        temp=["10", ""],
        rh=["40", ""],
        state=["ok", ""],
        date_time=["2024-03-01 10:00:00", ""],
    )
    monitor = Monitor(client, database)
    monitor.record(NOW)
    assert database.select("NAME") == ["alpha"] + [f"device{n}" for n in range(1, 6)]
    assert database.select("TEMP")[0] == "10"
    assert database.select("DATE_TIME")[0] == "2024-03-01 10:00:00"


def test_device_rows(database):
    client = ApiClient()
    client.data = DeviceReadings.from_device_payload(DEVICES)
    monitor = Monitor(client, database)
    rows = monitor.device_rows()
    assert [row[0] for row in rows] == ["device1", "device2"]
    assert rows[0][1:] == ("ok", "20", "50", DeviceStatus.NORMAL)


def test_check_alerts_opens_and_closes_window(database):
    client = ApiClient()
    warning = WarningWindow()
    monitor = Monitor(client, database, warning=warning)

    message = monitor.check_alerts()
    assert warning.is_open()
    assert warning.text() == message
    assert message.count("設備未連線\n") == 5

    client.data = DeviceReadings.from_device_payload(DEVICES)
    assert monitor.check_alerts() == ""
    assert not warning.is_open()
    assert warning.text() == message


def test_base_url_gets_trailing_slash(server, database):
    client = ApiClient(timeout=5)
    monitor = Monitor(client, database, base_url=_url(server).rstrip("/"))
    assert monitor.poll() is True
    assert server.requests[0][1] == "/test/post"


def test_poll_loads_readings(server, database):
    client = ApiClient(timeout=5)
    monitor = Monitor(client, database, base_url=_url(server))
    assert monitor.poll() is True
    method, path, body = server.requests[0]
    assert (method, path) == ("POST", "/test/post")
    assert json.loads(body) == {"name": "all"}
    assert client.data.name == ["device1", "device2"]
    assert client.data.rh == ["50", "60"]


def test_poll_failure_resets_readings(database):
    client = ApiClient(timeout=2)
    client.data = DeviceReadings.from_device_payload(DEVICES)
    monitor = Monitor(client, database, base_url="http://127.0.0.1:1/")
    assert monitor.poll() is False
    assert client.data == DeviceReadings.blank()


def test_simulate_sends_random_reading(server, database):
    monitor = Monitor(ApiClient(timeout=5), database, base_url=_url(server), rng=random.Random(11))
    monitor.simulate(NOW)
    method, path, body = server.requests[0]
    assert (method, path) == ("PUT", "/test/put")
    assert json.loads(body) == random_reading(random.Random(11), NOW)


def test_tick_runs_one_period(server, database):
    client = ApiClient(timeout=5)
    warning = WarningWindow()
    monitor = Monitor(client, database, base_url=_url(server), warning=warning)
    assert monitor.tick(NOW) == ""
    assert [(m, p) for m, p, _ in server.requests] == [("POST", "/test/post"), ("PUT", "/test/put")]
    assert database.select("NAME") == ["device1", "device2"]
    assert not warning.is_open()


def test_tick_raises_alert_for_abnormal_device(server, database):
    server.reply = json.dumps(
        {"device": {"name": "device3", "temp": "70", "rh": "50", "state": "hot", "date_time": "x"}}
    ).encode("utf-8")
    warning = WarningWindow()
    monitor = Monitor(ApiClient(timeout=5), database, base_url=_url(server), warning=warning)
    assert monitor.tick(NOW) == "device3裝置異常\n"
    assert warning.is_open()
    assert warning.text() == "device3裝置異常\n"


def test_main_runs_given_number_of_polls(server, tmp_path, capsys):
    db_path = tmp_path / "main.db"
    code = main(["--url", _url(server), "--db", str(db_path), "--interval", "0", "--count", "1"])
    assert code == 0
    output = capsys.readouterr().out
    assert "device1\tok\t20\t50\t正常" in output
    methods = [m for m, _, _ in server.requests]
    assert methods == ["POST", "POST", "PUT"]
    with DeviceDatabase(db_path) as db:
        assert db.select("NAME") == ["device1", "device2"]


def test_main_rejects_negative_interval(tmp_path):
    with pytest.raises(SystemExit):
        main(["--db", str(tmp_path / "x.db"), "--interval", "-1", "--count", "0"])