[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zlog"
version = "0.1.0"
description = "Structured JSON log events, a human-friendly console writer and a non-blocking diode writer"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "structured-logging", "json", "console", "diode"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
prettylog = "zlog.prettylog:main"

[tool.hatch.build.targets.wheel]
packages = ["zlog"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
