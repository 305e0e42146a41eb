[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shareserve"
version = "1.0.0"
description = "Building blocks for a small file sharing server: SFTP access, webhooks, request logging and live clipboard sync"
requires-python = ">=3.10"
keywords = ["file-sharing", "sftp", "webhook", "discord", "slack", "mattermost", "websocket", "clipboard"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
]
dependencies = [
    "requests>=2.28",
    "bcrypt>=4.0",
    "psutil>=5.9",
    "paramiko>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["shareserve"]

[tool.hatch.build.targets.sdist]
include = ["shareserve", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
