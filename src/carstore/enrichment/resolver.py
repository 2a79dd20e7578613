"""
Client for the external car info API.

The API answers ``GET {base_url}/info?regNum=<reg_num>`` with a JSON body::

    {"regNum": "X123XX150", "mark": "Lada", "model": "Vesta", "year": 2002}
"""

import logging

import httpx

from carstore.car.models import Car
from carstore.errors import UpstreamFailure

DEFAULT_TIMEOUT_SECONDS = 10.0


class CarInfoClient:
    """
    Resolves registration numbers to cars through the car info API.

    One ``httpx.Client`` is shared by every lookup (it is safe to use from the
    fan-out threads) and released by ``close()`` or by leaving the ``with``
    block.

    Args:
        base_url: Root URL of the car info API
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport, used by tests to stub the API
        logger: Logger for upstream failures
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport = None,
        logger: logging.Logger = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def __enter__(self) -> "CarInfoClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def resolve(self, reg_num: str) -> Car:
        """Fetch car details for one registration number."""
        try:
            response = self._client.get("/info", params={"regNum": reg_num})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            self.logger.warning(
                "car info lookup for %s returned %s", reg_num, e.response.status_code
            )
            raise UpstreamFailure(
                f"car info API returned {e.response.status_code} for {reg_num}",
                operation="resolve",
            ) from e
        except httpx.HTTPError as e:
            self.logger.warning("car info lookup for %s failed: %s", reg_num, e)
            raise UpstreamFailure(
                f"car info API request failed for {reg_num}: {e}", operation="resolve"
            ) from e
        except ValueError as e:
            raise UpstreamFailure(
                f"car info API sent an undecodable body for {reg_num}", operation="resolve"
            ) from e

        return self._to_car(reg_num, payload)

    def _to_car(self, reg_num: str, payload) -> Car:
        if not isinstance(payload, dict):
            raise UpstreamFailure(
                f"car info API sent an unexpected body for {reg_num}", operation="resolve"
            )

        year = payload.get("year")
        if year is not None and (not isinstance(year, int) or isinstance(year, bool)):
            raise UpstreamFailure(
                f"car info API sent a non-integer year for {reg_num}", operation="resolve"
            )

        return Car(
            reg_num=payload.get("regNum") or reg_num,
            mark=payload.get("mark") or "",
            model=payload.get("model") or "",
            year=year or None,
        )
