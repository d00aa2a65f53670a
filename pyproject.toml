[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tlsfheap"
version = "0.1.0"
description = "A Two-Level Segregated Fit allocator over a simulated heap, with allocation tracking and easing functions"
requires-python = ">=3.10"
dependencies = []
keywords = ["tlsf", "allocator", "memory", "heap", "tween", "easing"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["tlsfheap"]

[tool.pytest.ini_options]
addopts = "-ra"
