[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "occams_rpc"
version = "0.1.1"
description = "Core building blocks for a modular, pluggable RPC: codecs, error model, buffered async I/O, asyncio runtime helpers and graceful restart."
requires-python = ">=3.10"
keywords = ["networking", "rpc", "asyncio", "msgpack", "graceful-restart"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Networking",
]
dependencies = [
    "msgpack",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["occams_rpc"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
