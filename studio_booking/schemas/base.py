"""
Base schemas with standardized field types for consistent API responses.
"""

from datetime import time
from decimal import Decimal
import re
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import core_schema

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_HHMM_REGEX = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


class StandardizedModel(BaseModel):
    """Base model with standardized JSON encoding"""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, populate_by_name=True)


class Money(Decimal):
    """Money field that always serializes as float"""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            if isinstance(value, bool):
                raise ValueError("Amount must be a number")
            if isinstance(value, (int, float, str)):
                try:
                    amount = Decimal(str(value))
                except ArithmeticError:
                    raise ValueError(f"Invalid amount: {value}")
            else:
                amount = value
            if not amount.is_finite():
                raise ValueError("Amount must be finite")
            return amount

        return core_schema.no_info_after_validator_function(
            validate_money,
            core_schema.union_schema(
                [
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                    core_schema.is_instance_schema(Decimal),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                float,
                info_arg=False,
                return_schema=core_schema.float_schema(),
            ),
        )


def ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    return value


def parse_hhmm(value: object, field_name: str) -> object:
    """Accept HH:MM (or HH:MM:SS) strings and return a ``time``."""
    if isinstance(value, str):
        candidate = value.strip()
        if not TIME_HHMM_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must use HH:MM format")
        parts = [int(part) for part in candidate.split(":")]
        try:
            return time(parts[0], parts[1])
        except ValueError:
            raise ValueError(f"{field_name} is not a valid time of day")
    return value
