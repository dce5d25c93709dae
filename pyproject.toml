[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "cabbage"
version = "0.1.0"
description = "A small threaded movie catalogue server with a journaled store and an interactive command-line client"
requires-python = ">=3.10"
dependencies = []
keywords = ["movies", "catalog", "server", "client", "tcp", "journal"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cabbage-server = "cabbage.server:main"
cabbage-client = "cabbage.client:main"

[tool.setuptools.packages.find]
include = ["cabbage*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
