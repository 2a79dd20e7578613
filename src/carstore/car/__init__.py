"""
Car

This package provides the car record model, query construction and data access.
"""

from carstore.car.models import UNSET, Car, CarFilter, CarPatch
from carstore.car.repository import CarRepository

__all__ = ["UNSET", "Car", "CarFilter", "CarPatch", "CarRepository"]
