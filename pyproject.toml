[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "auctionhouse"
version = "0.1.0"
description = "Storage, logging and socket helpers for a live auction house"
requires-python = ">=3.10"
dependencies = []
keywords = ["auction", "bidding", "sqlite", "logging", "sockets"]
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
    "Topic :: Internet",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["auctionhouse"]

[tool.pytest.ini_options]
addopts = "-ra"
