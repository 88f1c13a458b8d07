[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iotasks"
version = "0.1.0"
description = "A small HTTP service that accepts long-running tasks, runs them on a pool of workers and reports their status."
requires-python = ">=3.10"
dependencies = [
    "python-dotenv",
]
keywords = ["tasks", "http", "json", "worker-pool", "rest"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
iotasks = "iotasks.app:main"

[tool.hatch.build.targets.wheel]
packages = ["iotasks"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
