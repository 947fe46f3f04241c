from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from typing import Any
from typing import TypeVar

import orjson
from tortoise.fields import BigIntField as BigIntField
from tortoise.fields import CharField as CharField
from tortoise.fields import DatetimeField as DatetimeField
from tortoise.fields import DecimalField as DecimalField
from tortoise.fields import Field as Field
from tortoise.fields import IntField as IntField
from tortoise.fields import TextField as TextField

from governor_indexer.exceptions import FrameworkException

if TYPE_CHECKING:
    from tortoise.models import Model as _TortoiseModel

# NOTE: 2**256 - 1 has 78 decimal digits
UINT256_DIGITS = 78

_EnumT = TypeVar('_EnumT', bound=Enum)


class EnumField(Field[_EnumT]):
    """String-valued enum member stored as its value; no length limit unlike `CharEnumField`"""

    indexable = True
    SQL_TYPE = 'TEXT'

    def __init__(self, enum_type: type[_EnumT], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.enum_type = enum_type

    def to_db_value(self, value: Enum | str | None, instance: type[_TortoiseModel] | _TortoiseModel) -> str | None:
        if value is None:
            return None
        # NOTE: Raises `ValueError` on values outside of the enum
        return str(self.enum_type(value).value)

    def to_python_value(self, value: Enum | str | None) -> Enum | None:
        if value is None or isinstance(value, self.enum_type):
            return value
        try:
            return self.enum_type(value)
        except ValueError as e:
            raise FrameworkException(f'`{value}` is not a member of `{self.enum_type.__name__}`') from e


class ArrayField(Field[list[str]]):
    """Ordered list of strings stored as a JSON array"""

    SQL_TYPE = 'TEXT'

    def to_db_value(self, value: list[Any] | None, instance: type[_TortoiseModel] | _TortoiseModel) -> str | None:
        if value is None:
            return None
        # NOTE: Items are stringified; uint256 values do not fit JSON numbers
        return orjson.dumps(list(map(str, value))).decode()

    def to_python_value(self, value: str | list[str] | None) -> list[str] | None:
        if isinstance(value, str):
            value = orjson.loads(value)
        return None if value is None else list(map(str, value))


class Uint256Field(DecimalField):
    """Unsigned 256-bit integer.

    Written as a plain string of digits (never in exponent notation) and read back as `int`.
    """

    # NOTE: Native `Decimal` from asyncpg must be converted too
    skip_to_python_if_native = False

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(max_digits=UINT256_DIGITS, decimal_places=0, **kwargs)

    def to_db_value(
        self,
        value: int | str | Decimal | None,
        instance: type[_TortoiseModel] | _TortoiseModel,
    ) -> str | None:
        if value is None:
            return None
        integral = Decimal(value).to_integral_exact()
        if integral != Decimal(value) or integral < 0:
            raise FrameworkException(f'Invalid uint256 value: {value}')
        return format(integral, 'f')

    def to_python_value(self, value: int | str | Decimal | None) -> int | None:
        if value is None:
            return None
        return int(Decimal(value))
