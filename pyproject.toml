[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hudstats"
version = "0.1.0"
description = "Read CPU, amdgpu, battery and gamepad statistics from Linux procfs and sysfs, and pack the HUD's message-queue messages"
requires-python = ">=3.10"
dependencies = []
keywords = ["hud", "overlay", "monitoring", "sysfs", "procfs", "amdgpu", "battery", "cpu", "gamepad"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hudstats"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
