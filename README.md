# iotmonitor

A small console monitor for a set of temperature and humidity sensors that
are reached through a JSON REST service. It asks the service for the latest
readings, stores them in an SQLite file, classifies each device as normal,
abnormal or disconnected, and prints an alert message when something is
wrong. It can also send random readings to the service to simulate device
activity.

It uses only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The command

```
iotmonitor [--url URL] [--db FILE] [--interval SECONDS] [--count N]
```

- `--url` is the base URL of the device service (default
  `http://127.0.0.1:5000/`).
- `--db` is the SQLite file that readings are written to (default `test.db`
  in the current directory). The table is created when missing.
- `--interval` is the number of seconds between polls (default 5). A
  negative value is refused.
- `--count` stops after that many polls; without it the command runs until
  interrupted with Ctrl-C.

At start the command polls the service once and prints a report. Then, for
each period, it polls again, records the readings, sends one random reading
and prints a report. A report is the current time, one tab-separated line
per device (name, state, temperature, humidity, status label) and, when
any device is disconnected or abnormal, the alert lines.

### What the service is expected to answer

- `POST <url>test/post` with the body `{"name":"all"}` is answered with a
  JSON object whose `device` member is either one object or an array of
  objects with the string members `name`, `temp`, `rh`, `state` and
  `date_time`.
- `PUT <url>test/put` receives a random reading for one of `device0` to
  `device3`, with `state` set to `test`. Its reply is not used.

If a poll fails, the readings are reset to five devices with empty values;
a reply that cannot be used leaves the previous readings in place.

## Status rules

A device is **disconnected** when its temperature or humidity is empty. It
is **abnormal** when the temperature is at most 5 or at least 50, or the
humidity is at most 25 or at least 90. Otherwise it is **normal**. Values
that are not whole numbers count as 0.

When readings are stored, a device whose temperature and humidity are both
empty stands for a lost connection: for each such device, rows for
`device1` to `device5` are written with the state `未連線` and the current
time.

## Library use

- `iotmonitor.apiclient`
  - `ApiClient(timeout=30.0)` with `get`, `post`, `put` and `delete`.
    `post` loads the reply into `client.data` and returns whether it did;
    the others return the reply body, or empty bytes when the request
    failed. Payloads may be bytes, text or a mapping (sent as compact JSON).
  - `DeviceReadings` holds the `name`, `temp`, `rh`, `state` and
    `date_time` columns, with `blank(count)`, `from_device_payload(device)`,
    `len()` and `row(index)`.
  - `parse_reply(body)` turns a reply body into `DeviceReadings` and raises
    `ApiError` for an empty body, invalid JSON, a non-object document or a
    missing `device` member.
- `iotmonitor.database.DeviceDatabase(path)` is a context manager around the
  readings table. `add` returns the new row's ID, `select(field)` returns
  one column as text in row order (case-insensitive column name, unknown
  names raise `ValueError`), and `update` and `delete` return whether the
  row existed. SQLite errors are raised as `sqlite3.Error`.
- `iotmonitor.warning.WarningWindow` keeps the alert text; `set_text` only
  takes effect while it is open (`open`, `close`, `is_open`, `text`).
- `iotmonitor.monitor` provides `DeviceStatus`, `classify(temp, rh)`,
  `led_style(status, size)` (a style-sheet string for a status LED),
  `alert_message(readings)`, `random_reading(rng, now)`, `format_time(moment)`
  and `Monitor`, which ties the parts together through `poll`, `record`,
  `simulate`, `device_rows`, `check_alerts` and `tick`.

## What it does not do

- There is no graphical window: device status and alerts are printed to the
  console, the alert window is only state held in `WarningWindow`, and
  `led_style` only builds a style string.
- It does not provide the device service itself; one must be running at the
  given URL for readings to arrive.