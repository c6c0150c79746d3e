"""Base model and money helpers shared by the API contracts."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")


class CamelModel(BaseModel):
    """JSON uses camelCase on the wire; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def cents_to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def decimal_to_cents(amount: Union[Decimal, str]) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_decimal(value: float, places: int = 2) -> Decimal:
    """Floats from the database become fixed-point decimals for the wire."""
    return Decimal(str(round(value, places))).quantize(Decimal(1).scaleb(-places))


def to_quantity(value: float) -> Decimal:
    """Share quantities keep up to 6 decimals and drop trailing zeros."""
    return Decimal(format(Decimal(str(round(value, 6))).normalize(), "f"))
