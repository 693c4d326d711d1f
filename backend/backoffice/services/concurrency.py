# Overview: Retry and fan-out helpers for read-only database work.

from __future__ import annotations

import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Mapping

from flask import Flask
from sqlalchemy.exc import OperationalError

from ..extensions import db


class FanOutError(Exception):
    """Raised when one task of a concurrent fan-out fails."""

    def __init__(self, task_name: str, original: BaseException):
        super().__init__(f"{task_name} failed: {original}")
        self.task_name = task_name
        self.original = original


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on transient failures.

    Retries on OperationalError (locked database, dropped connection).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _failed(future) -> bool:
    return not future.cancelled() and future.exception() is not None


def run_concurrently(
    app: Flask,
    tasks: Mapping[str, Callable[[], Any]],
    *,
    max_workers: int,
    attempts: int = 3,
) -> dict[str, Any]:
    """
    Run named zero-argument callables in parallel and collect their results.

    Each task runs in its own application context, so it gets its own
    SQLAlchemy session and never shares one with another task.

    Waits for every task or for the first failure. On failure, tasks that
    have not started are cancelled, tasks already running are allowed to
    settle, and FanOutError names the first failed task in submission
    order. No partial result is returned.
    """
    def _run(func):
        with app.app_context():
            return run_with_retry(func, attempts=attempts)

    workers = max(1, min(max_workers, len(tasks) or 1))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snapshot") as pool:
        futures = {pool.submit(_run, func): name for name, func in tasks.items()}
        _, pending = wait(futures, return_when=FIRST_EXCEPTION)
        if pending:
            # Stopped early, so something failed
            for other in pending:
                other.cancel()
            wait(futures)
        for future, name in futures.items():
            if _failed(future):
                exc = future.exception()
                raise FanOutError(name, exc) from exc
        return {name: future.result() for future, name in futures.items()}
