"""
Concurrent resolution of registration numbers.

``resolve_all`` looks up every registration number on a bounded thread pool
and returns the cars in input order. The first failure wins: it is raised
immediately, remaining lookups are told to stop through a shared event, and
the caller does not wait for lookups that are already running.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence

from carstore.car.models import Car
from carstore.errors import CarstoreError, InvalidArgument, UpstreamFailure
from carstore.interfaces import CarResolver

DEFAULT_MAX_WORKERS = 8


def resolve_all(
    reg_nums: Sequence[str],
    resolver: CarResolver,
    max_workers: int = DEFAULT_MAX_WORKERS,
    logger: logging.Logger = None,
) -> List[Car]:
    """
    Resolve registration numbers to cars concurrently.

    Args:
        reg_nums: Registration numbers to look up, non-empty
        resolver: Collaborator that resolves one registration number
        max_workers: Upper bound on concurrent lookups
        logger: Logger for abandoned fan-outs

    Returns:
        Cars where ``result[i]`` is the car for ``reg_nums[i]``

    Raises:
        InvalidArgument: if ``reg_nums`` is empty
        UpstreamFailure: (or the resolver's own CarstoreError) for the first
            lookup that failed
    """
    if not reg_nums:
        raise InvalidArgument("no registration numbers to resolve", operation="resolve_all")
    if max_workers < 1:
        raise InvalidArgument("max_workers must be at least 1", operation="resolve_all")

    logger = logger or logging.getLogger(__name__)

    # each task writes only its own slot, so the list needs no lock
    cars: List[Optional[Car]] = [None] * len(reg_nums)
    cancelled = threading.Event()

    def lookup(index: int, reg_num: str) -> None:
        if cancelled.is_set():
            return
        car = resolver.resolve(reg_num)
        if not car.reg_num:
            car.reg_num = reg_num
        cars[index] = car

    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(reg_nums)),
        thread_name_prefix="car-resolver",
    )
    try:
        futures = {
            executor.submit(lookup, index, reg_num): reg_num
            for index, reg_num in enumerate(reg_nums)
        }
        for future in as_completed(futures):
            error = future.exception()
            if error is None:
                continue
            cancelled.set()
            reg_num = futures[future]
            logger.debug("lookup for %s failed, abandoning remaining lookups", reg_num)
            if isinstance(error, CarstoreError):
                raise error
            raise UpstreamFailure(
                f"resolving {reg_num} failed: {error}", operation="resolve_all"
            ) from error
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return cars
