"""
Tests for CarService.

Run with: pytest src/carstore/car/service_test.py -v
"""
import uuid

import pytest

from carstore.car.models import Car, CarFilter, CarPatch
from carstore.car.repository import CarRepository
from carstore.car.service import CarService
from carstore.conftest import RecordingExecutor, StubResolver
from carstore.errors import InvalidArgument, NotFound, StoreFailure, UpstreamFailure


class TestFetch:
    """Tests for CarService.fetch()"""

    def test_fetch_all(self, car_service, sample_cars):
        cars = car_service.fetch(CarFilter())

        assert {car.reg_num for car in cars} == {car.reg_num for car in sample_cars}

    def test_fetch_filtered(self, car_service, sample_cars):
        cars = car_service.fetch(CarFilter(marks=["Lada"], years=[2015]))

        assert [car.reg_num for car in cars] == ["A777AA77"]

    def test_store_failure_propagates(self, resolver, logger):
        class BrokenExecutor(RecordingExecutor):
            def fetch_all(self, query, params=None):
                raise StoreFailure("connection refused")

        service = CarService(CarRepository(BrokenExecutor()), resolver, logger)

        with pytest.raises(StoreFailure) as exc_info:
            service.fetch(CarFilter())

        assert exc_info.value.operation == "fetch"


class TestAddMany:
    """Tests for CarService.add_many()"""

    def test_add_many_returns_ids(self, car_service, fake_repo):
        ids = car_service.add_many([Car(reg_num="A1", mark="Kia", model="Rio")])

        assert len(ids) == 1
        assert fake_repo.rows[ids[0]].reg_num == "A1"

    def test_add_many_rejects_persisted_cars(self, car_service, fake_repo):
        with pytest.raises(InvalidArgument, match="already has an id"):
            car_service.add_many([Car(reg_num="A1", id="existing")])

        assert fake_repo.add_calls == []

    def test_add_many_rejects_empty(self, logger, resolver):
        service = CarService(CarRepository(RecordingExecutor()), resolver, logger)

        with pytest.raises(InvalidArgument):
            service.add_many([])


class TestUpdateOne:
    """Tests for CarService.update_one()"""

    def test_update_one(self, car_service, fake_repo, sample_cars):
        car_id = sample_cars[0].id

        car_service.update_one(CarPatch(id=car_id, model="Largus"))

        assert fake_repo.rows[car_id].model == "Largus"
        assert fake_repo.rows[car_id].mark == "Lada"

    def test_update_missing_car_is_not_found(self, car_service):
        with pytest.raises(NotFound):
            car_service.update_one(CarPatch(id=str(uuid.uuid4()), mark="Kia"))

    def test_zero_rows_affected_is_not_found_not_store_failure(self, resolver, logger):
        service = CarService(CarRepository(RecordingExecutor(rowcount=0)), resolver, logger)

        with pytest.raises(NotFound) as exc_info:
            service.update_one(CarPatch(id="car-1", mark="Kia"))

        assert not isinstance(exc_info.value, StoreFailure)
        assert exc_info.value.operation == "update_one"

    def test_update_without_id_is_invalid(self, car_service):
        with pytest.raises(InvalidArgument):
            car_service.update_one(CarPatch(id=None, mark="Kia"))

    @pytest.mark.parametrize("patch_fields", [
        {"mark": ""},
        {"model": "   "},
        {"reg_num": 42},
        {"year": -1},
        {"year": "2002"},
    ])
    def test_invalid_values_are_rejected(self, car_service, sample_cars, patch_fields):
        with pytest.raises(InvalidArgument):
            car_service.update_one(CarPatch(id=sample_cars[0].id, **patch_fields))

    def test_year_can_be_reset(self, car_service, fake_repo, sample_cars):
        car_id = sample_cars[0].id

        car_service.update_one(CarPatch(id=car_id, year=None))

        assert fake_repo.rows[car_id].year is None


class TestDeleteOne:
    """Tests for CarService.delete_one()"""

    def test_delete_twice(self, car_service, sample_cars):
        car_id = sample_cars[0].id

        car_service.delete_one(car_id)

        with pytest.raises(NotFound):
            car_service.delete_one(car_id)

    def test_delete_without_id_is_invalid(self, car_service):
        with pytest.raises(InvalidArgument):
            car_service.delete_one("")


class TestRegister:
    """Tests for CarService.register()"""

    def test_register_resolves_and_stores(self, car_service, fake_repo):
        cars = car_service.register(["A1", "B2", "C3"])

        assert [car.reg_num for car in cars] == ["A1", "B2", "C3"]
        assert all(car.is_persisted for car in cars)
        assert set(fake_repo.rows) == {car.id for car in cars}
        assert fake_repo.rows[cars[1].id].mark == "Mark-B2"

    def test_register_stores_nothing_when_a_lookup_fails(self, car_service, fake_repo):
        with pytest.raises(UpstreamFailure):
            car_service.register(["A1", "BAD", "C3"])

        assert fake_repo.add_calls == []
        assert fake_repo.rows == {}

    @pytest.mark.parametrize("reg_nums", [[], ["A1", "A1"], ["A1", ""], ["A1", None]])
    def test_register_rejects_bad_input_before_lookup(self, logger, fake_repo, reg_nums):
        resolver = StubResolver()
        service = CarService(fake_repo, resolver, logger)

        with pytest.raises(InvalidArgument):
            service.register(reg_nums)

        assert resolver.calls == []
