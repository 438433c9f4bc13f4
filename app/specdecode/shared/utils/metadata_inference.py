import math
from specdecode.core.exceptions import MalformedMetadataEntryError
from specdecode.domain.models.metadata import DataType, FieldValue, parse_boolean, parse_numeric


def is_boolean(raw: str) -> bool:
    return str(raw).strip().lower() in ("true", "false")


def is_numeric(raw: str) -> bool:
    """True for anything ``float()`` accepts except nan/inf spellings."""
    text = str(raw).strip()
    if not text:
        return False
    try:
        value = float(text)
    except ValueError:
        return False
    return not (math.isnan(value) or math.isinf(value))


def infer_type(raw: str) -> DataType:
    if is_boolean(raw):
        return DataType.BOOLEAN
    if is_numeric(raw):
        return DataType.NUMERIC
    return DataType.STRING


def build_field(raw: str) -> FieldValue:
    """Classify ``raw`` and return it as a typed value."""
    data_type = infer_type(raw)
    if data_type == DataType.BOOLEAN:
        return FieldValue(data_type, parse_boolean(raw))
    if data_type == DataType.NUMERIC:
        return FieldValue(data_type, parse_numeric(raw))
    return FieldValue(data_type, str(raw).strip())


def coerce(raw: str, data_type: DataType) -> FieldValue:
    """
    Parse ``raw`` for an already known type.

    Raises:
        MalformedMetadataEntryError: If ``raw`` does not parse as ``data_type``
    """
    if data_type == DataType.NUMERIC:
        if not is_numeric(raw):
            raise MalformedMetadataEntryError(f"Not a numeric value: {raw!r}")
        return FieldValue(data_type, parse_numeric(raw))
    if data_type == DataType.BOOLEAN:
        return FieldValue(data_type, parse_boolean(raw))
    return FieldValue(data_type, str(raw).strip())
