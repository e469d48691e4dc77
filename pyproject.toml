[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wink"
version = "0.0.1"
description = "Hierarchical state machines that talk to each other over UDP, with a server that starts and supervises them"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "state machine",
    "hierarchical state machine",
    "actor",
    "udp",
    "supervision",
    "distributed",
]
classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
wink = "wink.cli:main"
wink-server = "wink.server_cli:main"

[tool.hatch.build.targets.wheel]
packages = ["wink"]

[tool.pytest.ini_options]
addopts = "-ra"
