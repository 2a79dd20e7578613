import uuid

from flask import Blueprint, current_app, jsonify, request

from carstore.car.models import UNSET, CarFilter, CarPatch
from carstore.errors import InvalidArgument

bp = Blueprint("cars", __name__)

DEFAULT_LIMIT = 20

# JSON field -> CarPatch attribute
PATCH_FIELDS = {"regNum": "reg_num", "mark": "mark", "model": "model", "year": "year"}


def _non_negative_int(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidArgument(f"invalid {name}", operation="get_cars") from None
    if value < 0:
        raise InvalidArgument(f"invalid {name}", operation="get_cars")
    return value


def _car_id(raw: str, operation: str) -> str:
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        raise InvalidArgument("invalid car id", operation=operation) from None


@bp.route("", methods=["GET"])
def get_cars():
    """List cars matching the query string filters."""
    try:
        years = [int(y) for y in request.args.getlist("year")]
    except ValueError:
        raise InvalidArgument("invalid year", operation="get_cars") from None

    car_filter = CarFilter(
        ids=[_car_id(i, "get_cars") for i in request.args.getlist("id")],
        reg_nums=request.args.getlist("regNum"),
        marks=request.args.getlist("mark"),
        models=request.args.getlist("model"),
        years=years,
        offset=_non_negative_int("offset", 0),
        limit=_non_negative_int("limit", DEFAULT_LIMIT),
    )

    cars = current_app.car_service.fetch(car_filter)
    return jsonify([car.to_dict() for car in cars])


@bp.route("", methods=["POST"])
def add_cars():
    """Look up registration numbers and store the resulting cars."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgument("invalid request body", operation="add_cars")

    reg_nums = data.get("regNums")
    if not isinstance(reg_nums, list) or not all(isinstance(r, str) for r in reg_nums):
        raise InvalidArgument("regNums must be a list of strings", operation="add_cars")
    if not reg_nums:
        raise InvalidArgument("empty reg nums", operation="add_cars")

    cars = current_app.car_service.register(reg_nums)
    return jsonify([car.to_dict() for car in cars]), 201


@bp.route("/<car_id>", methods=["PATCH"])
def update_car(car_id: str):
    """Update the supplied fields of a car."""
    car_id = _car_id(car_id, "update_car")

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgument("invalid request body", operation="update_car")

    values = {attr: data[key] for key, attr in PATCH_FIELDS.items() if key in data}
    year = values.get("year", UNSET)
    if year is not UNSET and year is not None and (
        not isinstance(year, int) or isinstance(year, bool)
    ):
        raise InvalidArgument("invalid year", operation="update_car")

    current_app.car_service.update_one(CarPatch(id=car_id, **values))
    return "", 200


@bp.route("/<car_id>", methods=["DELETE"])
def delete_car(car_id: str):
    """Delete a car."""
    car_id = _car_id(car_id, "delete_car")
    current_app.car_service.delete_one(car_id)
    return "", 200
