from enum import Enum
from typing import Dict, Iterator, Optional, Union
from specdecode.core.exceptions import MalformedMetadataEntryError

Scalar = Union[float, bool, str]


class DataType(str, Enum):
    NUMERIC = "N"
    BOOLEAN = "B"
    STRING = "S"


class FieldValue:
    """A typed metadata value."""

    __slots__ = ("data_type", "value")

    def __init__(self, data_type: DataType, value: Scalar):
        if data_type == DataType.NUMERIC:
            value = float(value)
        elif data_type == DataType.BOOLEAN:
            value = bool(value)
        else:
            value = str(value)
        self.data_type = data_type
        self.value = value

    def __eq__(self, other):
        if not isinstance(other, FieldValue):
            return NotImplemented
        return self.data_type == other.data_type and self.value == other.value

    def __repr__(self):
        return f"FieldValue({self.data_type.name}, {self.value!r})"


def parse_boolean(raw: str) -> bool:
    text = str(raw).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise MalformedMetadataEntryError(f"Not a boolean value: {raw!r}")


def parse_numeric(raw: str) -> float:
    try:
        return float(str(raw).strip())
    except ValueError:
        raise MalformedMetadataEntryError(f"Not a numeric value: {raw!r}")


class Metadata:
    """
    Typed key/value sidecar of a spectrum.
    Field names are unique and case preserved; setting an existing name replaces its value.
    """

    def __init__(self, fields: Optional[Dict[str, FieldValue]] = None):
        self._fields: Dict[str, FieldValue] = dict(fields or {})

    def set_numeric(self, name: str, value: float) -> None:
        self._fields[name] = FieldValue(DataType.NUMERIC, value)

    def set_boolean(self, name: str, value: bool) -> None:
        self._fields[name] = FieldValue(DataType.BOOLEAN, value)

    def set_string(self, name: str, value: str) -> None:
        self._fields[name] = FieldValue(DataType.STRING, value)

    def set_field(self, name: str, field: FieldValue) -> None:
        self._fields[name] = field

    def set_value(self, name: str, data_type: DataType, raw: str) -> None:
        """
        Parse ``raw`` for ``data_type`` and store it.

        Raises:
            MalformedMetadataEntryError: If ``raw`` cannot be parsed as the declared type
        """
        if data_type == DataType.NUMERIC:
            self.set_numeric(name, parse_numeric(raw))
        elif data_type == DataType.BOOLEAN:
            self.set_boolean(name, parse_boolean(raw))
        else:
            self.set_string(name, raw)

    def get(self, name: str, default: Optional[Scalar] = None) -> Optional[Scalar]:
        field = self._fields.get(name)
        return default if field is None else field.value

    def get_field(self, name: str) -> Optional[FieldValue]:
        return self._fields.get(name)

    def merge(self, other: Optional["Metadata"], prefix: str = "") -> None:
        if other is None:
            return
        for name, field in other.items():
            self._fields[prefix + name] = field

    def items(self):
        return self._fields.items()

    def keys(self):
        return self._fields.keys()

    def to_dict(self) -> Dict[str, Scalar]:
        return {name: field.value for name, field in self._fields.items()}

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self):
        return f"Metadata({self.to_dict()!r})"
