"""Capability interfaces for the collaborators the car service depends on."""

from typing import Any, Protocol

from carstore.car.models import Car


class QueryExecutor(Protocol):
    """Runs parameterized queries. Failures surface as StoreFailure."""

    def fetch_all(self, query: str, params: tuple = None) -> list[dict[str, Any]]: ...

    def execute(self, query: str, params: tuple = None) -> int: ...


class CarResolver(Protocol):
    """Looks up a car by registration number. Failures surface as UpstreamFailure."""

    def resolve(self, reg_num: str) -> Car: ...
