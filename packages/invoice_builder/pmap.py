"""Order-preserving bounded-concurrency map over a thread pool.

Runs independent collaborator calls (one PDF extraction per file) side by
side; results come back in input order whatever order they finish in.

- ``concurrency`` caps the number of mapper calls in flight.
- ``stop_on_error=True`` (default) re-raises the first failure and cancels
  calls that have not started; ``False`` lets everything finish and raises an
  ``ExceptionGroup`` of all failures.
- A mapper may return ``p_map_skip`` to drop its element from the output.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from itertools import islice
from operator import itemgetter
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


class _Skip:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "p_map_skip"


p_map_skip: object = _Skip()


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT | object],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    queue = enumerate(iterable)
    in_flight: dict[Future, int] = {}
    finished: list[tuple[int, OutT]] = []
    failures: list[Exception] = []

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="p_map") as pool:

        def top_up() -> None:
            for idx, item in islice(queue, concurrency - len(in_flight)):
                in_flight[pool.submit(mapper, item)] = idx

        top_up()
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = in_flight.pop(fut)
                try:
                    value = fut.result()
                except Exception as e:
                    if stop_on_error:
                        for pending in in_flight:
                            pending.cancel()
                        raise
                    failures.append(e)
                    continue
                if value is not p_map_skip:
                    finished.append((idx, value))  # type: ignore[arg-type]
            top_up()

    if failures:
        raise ExceptionGroup("p_map: one or more mapper calls failed", failures)
    finished.sort(key=itemgetter(0))
    return [value for _, value in finished]


__all__ = ["p_map", "p_map_skip"]
