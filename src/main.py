"""Demo entrypoint shipping a few log lines to CloudWatch Logs.

This module intentionally contains a small, end-to-end "smoke test" that:

- Loads configuration from environment.
- Attaches a `CloudWatchHandler` to the root logger (provisioning the stream).
- Logs a handful of messages from a couple of threads.
- Closes the handler, which flushes the queue before returning.

It is **not** intended as production wiring; it is a convenient manual
integration harness.
"""

from __future__ import annotations

import logging
import os
import threading

from shipping.config import load_config
from shipping import CloudWatchHandler


def _log_burst(name: str, count: int) -> None:
    """Emit `count` numbered messages from a named logger."""
    log = logging.getLogger(f"demo.{name}")
    for i in range(count):
        log.info("message %d from %s", i, name)


def run_demo() -> None:
    """Ship a burst of records from two threads, then flush on close."""
    cfg = load_config()
    count = int(os.getenv("DEMO_MESSAGE_COUNT", "50"))

    handler = CloudWatchHandler.from_config(cfg, level=logging.INFO)
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)
    try:
        print(f"[demo] shipping to {handler.sink.identity}")
        workers = [threading.Thread(target=_log_burst, args=(name, count)) for name in ("alpha", "beta")]
        for t in workers:
            t.start()
        for t in workers:
            t.join()
    finally:
        root.removeHandler(handler)
        handler.close()
        print(f"[demo] status: {handler.sink.degraded_status()}")


def main() -> None:
    """CLI entrypoint for running the demo with `python src/main.py`."""
    run_demo()


if __name__ == "__main__":
    main()
