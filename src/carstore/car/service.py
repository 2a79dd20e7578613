import logging
from contextlib import contextmanager
from typing import List, Sequence

from carstore.car.models import Car, CarFilter, CarPatch
from carstore.car.repository import CarRepository
from carstore.enrichment.fanout import DEFAULT_MAX_WORKERS, resolve_all
from carstore.errors import CarstoreError, InvalidArgument, NotFound
from carstore.interfaces import CarResolver


def validate_reg_nums(reg_nums: Sequence[str]) -> None:
    """Reject an empty, blank or repeated registration number list before any lookup."""
    if not reg_nums:
        raise InvalidArgument("no registration numbers given", operation="register")
    if any(not isinstance(r, str) or not r.strip() for r in reg_nums):
        raise InvalidArgument(
            "registration numbers must be non-empty strings", operation="register"
        )
    if len(set(reg_nums)) != len(reg_nums):
        raise InvalidArgument("duplicate registration numbers", operation="register")


class CarService:
    """
    Handles car business logic and orchestration, using the repository for
    data access and the resolver for car details.

    Args:
        repository: Car data access
        resolver: External car info lookup
        logger: Logger for operation tracing and failures
        max_workers: Upper bound on concurrent lookups in ``register``
    """

    def __init__(
        self,
        repository: CarRepository,
        resolver: CarResolver,
        logger: logging.Logger,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.repository = repository
        self.resolver = resolver
        self.logger = logger
        self.max_workers = max_workers

    def fetch(self, car_filter: CarFilter) -> List[Car]:
        """List cars matching a filter."""
        with self._operation("fetch", filter=car_filter):
            return self.repository.find(car_filter)

    def add_many(self, cars: Sequence[Car]) -> List[str]:
        """
        Persist fully resolved cars in one statement.

        Returns:
            Generated ids, in input order
        """
        with self._operation("add_many", cars=list(cars)):
            for car in cars:
                if car.is_persisted:
                    raise InvalidArgument(
                        f"car {car.reg_num} already has an id", operation="add_many"
                    )
                if not car.reg_num:
                    raise InvalidArgument("registration number is required", operation="add_many")
            return self.repository.add_many(cars)

    def update_one(self, patch: CarPatch) -> None:
        """Apply a sparse patch to one car."""
        with self._operation("update_one", patch=patch):
            if not patch.id:
                raise InvalidArgument("car id is required", operation="update_one")

            fields = patch.supplied()
            if not fields:
                raise InvalidArgument("nothing to update", operation="update_one")
            for column in ("reg_num", "mark", "model"):
                if column not in fields:
                    continue
                value = fields[column]
                if not isinstance(value, str) or not value.strip():
                    raise InvalidArgument(
                        f"{column} must be a non-empty string", operation="update_one"
                    )
            year = fields.get("year")
            if year is not None and (
                not isinstance(year, int) or isinstance(year, bool) or year < 0
            ):
                raise InvalidArgument("year must be a non-negative integer", operation="update_one")

            # zero rows affected is a successful statement that matched nothing
            if self.repository.update(patch) == 0:
                raise NotFound(f"car {patch.id} not found", operation="update_one")

    def delete_one(self, car_id: str) -> None:
        """Delete one car by id."""
        with self._operation("delete_one", car_id=car_id):
            if not car_id:
                raise InvalidArgument("car id is required", operation="delete_one")
            if self.repository.delete(car_id) == 0:
                raise NotFound(f"car {car_id} not found", operation="delete_one")

    def register(self, reg_nums: Sequence[str]) -> List[Car]:
        """
        Resolve registration numbers and persist the resulting cars.

        Nothing is stored unless every registration number resolved.

        Returns:
            The stored cars, with ids, in input order
        """
        with self._operation("register", reg_nums=list(reg_nums)):
            validate_reg_nums(reg_nums)
            cars = resolve_all(
                reg_nums, self.resolver, max_workers=self.max_workers, logger=self.logger
            )
            ids = self.repository.add_many(cars)
            for car, car_id in zip(cars, ids):
                car.id = car_id
            return cars

    @contextmanager
    def _operation(self, operation: str, **context):
        """
        Trace an operation and log its failure before letting it propagate.

        Errors raised without an operation tag are tagged with this one.
        """
        self.logger.debug(operation, extra={"context": context})
        try:
            yield
        except CarstoreError as e:
            if e.operation is None:
                e.operation = operation
            self.logger.error(
                "%s failed: %s",
                operation,
                e.message,
                extra={"kind": e.kind.value, "failed_at": e.operation},
            )
            raise
        except Exception:
            self.logger.exception("%s failed", operation)
            raise
