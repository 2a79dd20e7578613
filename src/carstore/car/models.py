from dataclasses import dataclass, field
from typing import Any, Optional


class _Unset:
    """Marker for a patch field that was not supplied."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class Car:
    """A vehicle record. ``id`` is None until the database assigns one."""

    reg_num: str
    mark: str = ""
    model: str = ""
    year: Optional[int] = None
    id: Optional[str] = None

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    @classmethod
    def from_row(cls, row: dict) -> "Car":
        """Build a Car from a ``cars`` table row."""
        return cls(
            id=str(row["car_id"]) if row.get("car_id") is not None else None,
            reg_num=row["reg_num"],
            mark=row["mark"],
            model=row["model"],
            year=row["year"] or None,
        )

    def to_dict(self) -> dict:
        """Serialize using the API field names, omitting empty id and year."""
        data = {}
        if self.id:
            data["id"] = self.id
        data["regNum"] = self.reg_num
        data["mark"] = self.mark
        data["model"] = self.model
        if self.year:
            data["year"] = self.year
        return data


@dataclass
class CarFilter:
    """
    Retrieval constraints for cars.

    An empty list means "no constraint on that field", never "match nothing".
    """

    ids: list[str] = field(default_factory=list)
    reg_nums: list[str] = field(default_factory=list)
    marks: list[str] = field(default_factory=list)
    models: list[str] = field(default_factory=list)
    years: list[int] = field(default_factory=list)
    offset: int = 0
    limit: int = 20


@dataclass
class CarPatch:
    """
    Sparse update for one car.

    Only fields that were explicitly supplied are written. ``UNSET`` leaves
    the stored value alone; ``year=None`` resets the year to unknown.
    """

    id: Optional[str]
    reg_num: Any = UNSET
    mark: Any = UNSET
    model: Any = UNSET
    year: Any = UNSET

    def supplied(self) -> dict[str, Any]:
        """Return the supplied fields as column -> value, in column order."""
        values = {
            "reg_num": self.reg_num,
            "mark": self.mark,
            "model": self.model,
            "year": self.year,
        }
        return {column: value for column, value in values.items() if value is not UNSET}
