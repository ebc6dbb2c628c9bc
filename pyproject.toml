[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vpanel"
version = "0.1.0"
description = "Virtual front panel: decode CPU panel packets received over UDP and stream them to browsers over WebSocket"
requires-python = ">=3.10"
dependencies = [
    "aiohttp",
]
keywords = [
    "front-panel",
    "pdp-11",
    "vax",
    "amd64",
    "udp",
    "websocket",
    "monitoring",
    "retrocomputing",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
vpanel = "vpanel.app:main"
vpanel-paneldump = "vpanel.paneldump:main"
vpanel-counters = "vpanel.counters:main"

[tool.hatch.build.targets.wheel]
packages = ["vpanel"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
