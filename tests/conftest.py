from __future__ import annotations

import copy
import threading

from typing import Any, Callable, Sequence

import pytest

from heatdistance.parallel.comm import Communicator


class _Exchange:
    """Shared mailbox of a group of in-process ranks."""

    def __init__(self, size: int) -> None:
        self.size = size
        self.barrier = threading.Barrier(size, timeout=60)
        self.slots: list[Any] = [None] * size


class ThreadCommunicator(Communicator):
    """
    Communicator whose ranks are threads of the test process.

    Every collective deposits the contribution of the calling rank, waits for all ranks,
    reads all contributions (deep-copied, as if sent over the wire) and waits again so the
    mailbox can be reused.
    """

    def __init__(self, exchange: _Exchange, rank: int) -> None:
        self._exchange_state = exchange
        self._rank = rank

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def size(self) -> int:
        return self._exchange_state.size

    def _exchange(self, obj: Any) -> list[Any]:
        state = self._exchange_state
        state.slots[self._rank] = obj
        state.barrier.wait()
        received = [copy.deepcopy(slot) for slot in state.slots]
        state.barrier.wait()
        return received

    def allgather(self, obj: Any) -> list[Any]:
        return self._exchange(obj)

    def alltoall(self, objs: Sequence[Any]) -> list[Any]:
        if len(objs) != self.size:
            raise ValueError(f"alltoall expects {self.size} entries, got {len(objs)}.")
        table = self._exchange(list(objs))
        return [table[src][self._rank] for src in range(self.size)]


def _run_parallel(n_ranks: int, fn: Callable[[Communicator], Any]) -> list[Any]:
    exchange = _Exchange(n_ranks)
    results: list[Any] = [None] * n_ranks
    errors: list[BaseException] = []

    def target(rank: int) -> None:
        try:
            results[rank] = fn(ThreadCommunicator(exchange, rank))
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)
            exchange.barrier.abort()

    threads = [threading.Thread(target=target, args=(rank,)) for rank in range(n_ranks)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    if errors:
        # Ranks released by the aborted barrier report BrokenBarrierError; show the cause
        primary = [e for e in errors if not isinstance(e, threading.BrokenBarrierError)]
        raise (primary or errors)[0]
    return results


@pytest.fixture
def run_parallel() -> Callable[[int, Callable[[Communicator], Any]], list[Any]]:
    """Run ``fn(comm)`` on ``n_ranks`` thread-backed ranks and return the per-rank results."""
    return _run_parallel
