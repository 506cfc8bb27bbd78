[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iolab"
version = "0.1.0"
description = "Timers, thread pools, a ring buffer and small TCP servers for studying event-driven network I/O"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "timer",
    "timing-wheel",
    "min-heap",
    "red-black-tree",
    "skiplist",
    "thread-pool",
    "ring-buffer",
    "reactor",
    "echo-server",
    "selectors",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
iolab-heap-timer = "iolab.heap_timer:main"
iolab-rbtree-timer = "iolab.rbtree_timer:main"
iolab-skiplist-timer = "iolab.skiplist_timer:main"
iolab-set-timer = "iolab.set_timer:main"
iolab-clock-wheel = "iolab.clock_wheel:main"
iolab-time-wheel = "iolab.hierarchical_wheel:main"
iolab-heartbeat = "iolab.heartbeat_wheel:main"
iolab-task-pool = "iolab.task_queue_pool:main"
iolab-future-pool = "iolab.future_pool:main"
iolab-echo = "iolab.echo_servers:main"
iolab-uring-echo = "iolab.uring_echo:main"
iolab-reactor = "iolab.reactor:main"
iolab-metrics = "iolab.metrics:main"

[tool.hatch.build.targets.wheel]
packages = ["iolab"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
