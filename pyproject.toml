[build-system]
requires = ["setuptools>=68", "wheel"]
build-backend = "setuptools.build_meta"

[project]
name = "gamelibrary"
version = "0.1.0"
description = "Game library service core: configuration, models, SQLite storage, migrations and JSON responses"
requires-python = ">=3.10"
dependencies = []
keywords = ["games", "library", "catalog", "ratings", "sqlite", "json", "api"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["gamelibrary*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
