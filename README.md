# iolab

Small, readable building blocks for event-driven network programs: timer
queues on several data structures, thread pools, a bounded ring buffer,
TCP echo servers, a reactor, and a metrics exporter. Only the standard
library is used.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## What is in the package

### Data structures

- `iolab.minheap`: `MinHeap` of `HeapEntry` objects ordered by `time`.
  Each entry keeps its `heap_index`, so `erase` and `adjust` need no search.
  `erase` raises `ValueError` for an entry that is not in the heap.
- `iolab.rbtree`: `RBTree` of `RBNode` objects with a pluggable insertion
  policy: `insert_value` (plain key order) or `insert_timer_value` (32-bit
  keys compared by signed difference, so keys keep their order across
  wrap-around). Supports `insert`, `delete`, `minimum`, `next` and iteration.
- `iolab.skiplist`: `SkipList` of `SkipListNode` objects ordered by `score`,
  with `insert`, `minimum`, `delete_head`, `delete` and iteration. The random
  source can be passed in for repeatable levels.

### Timers

All timers take an optional `clock` callable, which makes them easy to
drive by hand in tests.

| Module                     | Class             | Structure                                   | Unit |
|----------------------------|-------------------|---------------------------------------------|------|
| `iolab.heap_timer`         | `HeapTimer`       | binary min-heap                             | ms   |
| `iolab.rbtree_timer`       | `RBTreeTimer`     | red-black tree                              | ms   |
| `iolab.skiplist_timer`     | `SkipListTimer`   | skip list                                   | ms   |
| `iolab.set_timer`          | `Timer`           | ordered by (expiry, id), lazy cancellation  | ms   |
| `iolab.clock_wheel`        | `ClockWheel`      | 60 second / 60 minute / 12 hour slots        | s    |
| `iolab.hierarchical_wheel` | `TimeWheel`       | 256-slot near wheel plus four 64-slot levels | ms   |

The heap, tree and skip-list timers offer `add_timer`, `del_timer`,
`expire_timer` (returns how many timers ran) and, except the skip list,
`find_nearest_expire_timer` (milliseconds to the next deadline, `0` if
overdue, `-1` if none). `Timer` offers `add_timer`, `del_timer`,
`handle_timer(now)`, `time_to_sleep` and `next_deadline`.

The two wheels count ticks: `add_timer` with a non-positive delay runs the
callback at once and returns `None`; `del_timer` marks a timer cancelled,
and it is dropped when its slot comes round; `update` turns the wheel one
tick; `ClockWheel.advance` and `TimeWheel.expire_timer` catch up with the
clock; `ClockWheel.check_timer(stop)` keeps doing so until a
`threading.Event` is set.

`iolab.heartbeat_wheel.HeartbeatWheel` is a single-level wheel that holds a
reference to a `Connection` for each heartbeat; `check_conn` advances one
tick and returns the connections whose references have all run out.

```python
from iolab.heap_timer import HeapTimer

now = 0
timer = HeapTimer(clock=lambda: now)
timer.add_timer(100, lambda entry: print("fired at", entry.time))
now = 100
timer.expire_timer()   # prints "fired at 100", returns 1
```

### Thread pools

`iolab.future_pool.FuturePool` returns a `concurrent.futures.Future` for
each submission; `shutdown` (also run on leaving a `with` block) finishes
queued tasks and joins the workers, and submitting afterwards raises
`RuntimeError`.

```python
from iolab.future_pool import FuturePool

with FuturePool(4) as pool:
    futures = [pool.submit(pow, 2, n) for n in range(10)]
    pool.wait_done()

print([f.result() for f in futures])
```

`iolab.task_queue_pool.ThreadPool` runs `func(arg)` for each posted task
from a FIFO `TaskQueue`. `terminate` stops the workers (tasks not yet
started are dropped) and `post` then raises `PoolStopped`; `wait_done`
joins the workers.

```python
from iolab.task_queue_pool import ThreadPool

pool = ThreadPool(8)
pool.post(print, "hello")
pool.terminate()
pool.wait_done()
```

### Ring buffer

`iolab.ringbuf.RingBuffer(size)` is a lock-protected FIFO of `NetLog`
records holding at most `size - 1` of them. `push` raises `BufferFull`,
`pop` raises `BufferEmpty`.

```python
from iolab.ringbuf import RingBuffer, BufferEmpty

ring = RingBuffer(1024)
try:
    record = ring.pop()
except BufferEmpty:
    record = None
```

### Servers

- `iolab.echo_servers`: `create_server` plus four ways to serve echo
  clients, each reading at most 1024 bytes at a time: `serve_single` (one
  client, one echo), `serve_loop` (clients one after another, one echo
  each), `serve_threaded` (a thread per client) and `serve_multiplexed`
  (one thread, readiness selectors). The looping ones stop when an
  optional `threading.Event` is set.
- `iolab.uring_echo`: `EchoServer` accepts connections and deals them out
  in turn to `EchoWorker` threads, each running its own selector loop.
  `shutdown` makes `serve_forever` return.
- `iolab.reactor`: `Reactor` dispatches readiness events to `accept_cb`,
  `recv_cb` and `send_cb`. A handler turns a `Connection`'s `rbuffer` into
  its `wbuffer`; the default, `echo`, replies with the request unchanged.
  `listen` can be called for several ports; `run_once`, `run(stop)` and
  `close` drive and tear it down.

### Metrics export

`iolab.metrics` turns packet sizes into `NetLog` records (`make_log`),
renders them as `net_bytes{src_ip=...,dst_ip=...,proto=...,type=...} <bytes> <ms>`
lines (`format_line`), wraps each in an HTTP POST to `/api/v1/import`
(`build_request`) and sends it on a fresh connection (`send_log`).
`writer_loop` drains a `RingBuffer` to the endpoint until stopped,
dropping records it cannot deliver.

## Commands

| Command                | What it runs                                      | Options |
|------------------------|---------------------------------------------------|---------|
| `iolab-heap-timer`     | one min-heap timer, then exits                    | `msec` (default 3000) |
| `iolab-rbtree-timer`   | one red-black tree timer, then exits              | `msec` (default 3000) |
| `iolab-skiplist-timer` | several skip-list timers, one cancelled           | `delays...`, `--cancelled` |
| `iolab-set-timer`      | several ordered-set timers, one cancelled         | `delays...`, `--cancelled` |
| `iolab-clock-wheel`    | one clock-wheel timer, then exits                 | `seconds` (default 3) |
| `iolab-time-wheel`     | hierarchical wheel with repeating worker timers   | `--threads`, `--duration`, `--period` |
| `iolab-heartbeat`      | heartbeat wheel until every connection is dropped | `--tick-seconds` |
| `iolab-task-pool`      | task-queue pool that terminates after N tasks     | `--threads`, `--tasks` |
| `iolab-future-pool`    | future pool running sleeping tasks                | `--threads`, `--tasks`, `--delay` |
| `iolab-echo`           | echo server on port 2000                          | `--mode {single,loop,thread,multiplex}`, `--port`, `--host` |
| `iolab-uring-echo`     | multi-worker echo server on port 8888             | `--port`, `--host`, `--workers` |
| `iolab-reactor`        | reactor echoing on 20 consecutive ports from 2000 | `--port`, `--count`, `--host` |
| `iolab-metrics`        | posts packet sizes as metrics lines               | `lengths...` (else stdin), `--host`, `--port` |

Run any of them with `--help` for details, for example:

```
iolab-echo --help
```

## What the package does not do

- It does not capture packets. `iolab-metrics` takes packet sizes from its
  arguments or standard input, and every record carries the same fixed
  source and destination addresses.
- The reactor comes with an echo handler only; there is no HTTP or
  WebSocket handling. Supply your own handler for any other protocol.
- The servers are built on the standard `selectors` and `select` modules,
  not on any kernel completion-queue interface.