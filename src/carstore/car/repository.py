from typing import List, Sequence

from carstore.car.models import Car, CarFilter, CarPatch
from carstore.car.queries import (
    build_delete,
    build_fetch,
    build_insert_many,
    build_partial_update,
)
from carstore.interfaces import QueryExecutor


class CarRepository:
    """
    Repository for car data access.
    Runs the queries built in ``carstore.car.queries`` against the cars table.
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def find(self, car_filter: CarFilter) -> List[Car]:
        """List cars matching a filter."""
        query, params = build_fetch(car_filter)
        return [Car.from_row(row) for row in self.executor.fetch_all(query, params)]

    def add_many(self, cars: Sequence[Car]) -> List[str]:
        """Insert cars in one statement. Returns the generated ids in input order."""
        query, params = build_insert_many(cars)
        rows = self.executor.fetch_all(query, params)
        return [str(row["car_id"]) for row in rows]

    def update(self, patch: CarPatch) -> int:
        """Apply a sparse patch. Returns the number of rows affected."""
        query, params = build_partial_update(patch)
        return self.executor.execute(query, params)

    def delete(self, car_id: str) -> int:
        """Delete a car by id. Returns the number of rows affected."""
        query, params = build_delete(car_id)
        return self.executor.execute(query, params)
