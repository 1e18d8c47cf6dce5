"""Normalized store projection read by the insight core."""
import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Defaults when the store row carries no baselines of its own
DEFAULT_DELIVERY_MINUTES = (14, 29)
DEFAULT_CARRYOUT_MINUTES = (7, 17)
DEFAULT_MINIMUM_ORDER = 10.0
DEFAULT_CASH_LIMIT = 50.0


class Store(BaseModel):
    """
    Store input. Owned by the external schema; immutable for the duration of
    one insight request.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    store_id: str
    city: str
    state: str
    latitude: float
    longitude: float
    time_zone_code: Optional[str] = None  # "GMT-07:00"

    # Operational flags
    is_online: bool = True
    is_force_offline: bool = False
    cash_limit: Optional[float] = None
    delivery_fee: Optional[float] = None
    estimated_wait_minutes: Optional[int] = None
    minimum_order: Optional[float] = None

    # Baselines
    delivery_min_minutes: Optional[int] = None
    delivery_max_minutes: Optional[int] = None
    carryout_min_minutes: Optional[int] = None
    carryout_max_minutes: Optional[int] = None

    @field_validator("store_id", mode="before")
    @classmethod
    def _coerce_store_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("store_id", "city", "state")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("latitude", "longitude")
    @classmethod
    def _finite(cls, value: float) -> float:
        if math.isnan(value) or math.isinf(value):
            raise ValueError("coordinate must be a finite number")
        return value

    @property
    def delivery_minutes(self) -> tuple:
        return (
            self.delivery_min_minutes or DEFAULT_DELIVERY_MINUTES[0],
            self.delivery_max_minutes or DEFAULT_DELIVERY_MINUTES[1],
        )

    @property
    def carryout_minutes(self) -> tuple:
        return (
            self.carryout_min_minutes or DEFAULT_CARRYOUT_MINUTES[0],
            self.carryout_max_minutes or DEFAULT_CARRYOUT_MINUTES[1],
        )

    @property
    def effective_minimum_order(self) -> float:
        return self.minimum_order if self.minimum_order is not None else DEFAULT_MINIMUM_ORDER

    @property
    def effective_cash_limit(self) -> float:
        return self.cash_limit if self.cash_limit is not None else DEFAULT_CASH_LIMIT
