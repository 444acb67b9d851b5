[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "edgenet"
version = "0.1.0"
description = "Peer-to-peer networking building blocks and a JSON-RPC front end for edge nodes"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "p2p",
    "networking",
    "peer discovery",
    "kademlia",
    "json-rpc",
    "websocket",
    "dial queue",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["edgenet"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
