[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iotmonitor"
version = "0.1.0"
description = "Poll a device REST service, log readings to SQLite and report out-of-range devices."
requires-python = ">=3.10"
dependencies = []
keywords = ["iot", "monitoring", "sensors", "sqlite", "rest", "simulation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
iotmonitor = "iotmonitor.monitor:main"

[tool.hatch.build.targets.wheel]
packages = ["iotmonitor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
