[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "caddyadmin"
version = "0.1.0"
description = "A small web dashboard that keeps apps, ports and domains in SQLite and syncs matching reverse-proxy routes into Caddy."
requires-python = ">=3.10"
keywords = ["caddy", "reverse-proxy", "admin", "dashboard", "sqlite", "flask"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "requests>=2.28",
    "flask>=2.2",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "responses>=0.23",
]

[project.scripts]
caddyadmin = "caddyadmin.server:main"

[tool.hatch.build.targets.wheel]
packages = ["caddyadmin"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
