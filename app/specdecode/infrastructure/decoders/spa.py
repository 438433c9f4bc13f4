"""
Thermo Nicolet OMNIC SPA decoder.
"""
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import numpy as np
from specdecode.core.exceptions import MissingMandatoryBlockError
from specdecode.domain.models.decode_result import DecodeContext, Diagnostics
from specdecode.domain.models.metadata import Metadata
from specdecode.domain.models.spectrum import Spectrum
from specdecode.domain.services.spectrum_assembler import assemble
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.shared.utils.byte_cursor import Buffer, ByteCursor, read_f32_array
from specdecode.shared.utils.helpers import TIMESTAMP_FORMAT, descending_ramp

ID_OFFSET = 30
NUM_BLOCKS_OFFSET = 294
DIRECTORY_OFFSET = 304
DIRECTORY_STRIDE = 16

BLOCK_DATA_DESCRIPTION = 2
BLOCK_DATA = 3
BLOCK_COMMENTS = 27

BLOCK_NAMES = {
    BLOCK_COMMENTS: "comments",
    BLOCK_DATA: "data",
    BLOCK_DATA_DESCRIPTION: "data description",
}

COMMENT_DATE_FORMAT = "%a %b %d %H:%M:%S %Y"
TIMEZONE_SUFFIX = re.compile(r"^(.*\S)\s+\(([^)]*)\)$")
ZONE_OFFSET = re.compile(r"^(?:GMT|UTC)?([+-])(\d{1,2})(?::?(\d{2}))?$")
UTC_NAMES = ("GMT", "UTC", "Z")


def read_directory(cursor: ByteCursor, trace=None) -> Dict[int, int]:
    """
    Map the block types of interest to their offsets.

    Raises:
        MissingMandatoryBlockError: If the comments, data or data description block is absent
    """
    num_blocks = cursor.i16(NUM_BLOCKS_OFFSET)
    offsets = {}
    entry = DIRECTORY_OFFSET
    for _ in range(max(num_blocks, 0)):
        block_type = cursor.i16(entry)
        if block_type in BLOCK_NAMES:
            offsets[block_type] = cursor.u16(entry + 2)
        entry += DIRECTORY_STRIDE

    for block_type in (BLOCK_COMMENTS, BLOCK_DATA, BLOCK_DATA_DESCRIPTION):
        if block_type not in offsets:
            name = BLOCK_NAMES[block_type]
            raise MissingMandatoryBlockError(name, NUM_BLOCKS_OFFSET, f"Failed to determine offset for {name}!")
        if trace is not None:
            trace.record(f"spa_block:{block_type}", offsets[block_type])
    return offsets


def _zone_offset(zone: str) -> Optional[timedelta]:
    zone = zone.strip().upper()
    if zone in UTC_NAMES:
        return timedelta(0)
    match = ZONE_OFFSET.match(zone)
    if match is None:
        return None
    sign, hours, minutes = match.groups()
    offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
    return -offset if sign == "-" else offset


def parse_comment_date(value: str) -> Optional[datetime]:
    """
    Parse ``Mon Mar 15 10:30:00 2021``, optionally followed by a ``(timezone)`` suffix.

    A ``GMT``/``UTC`` zone, with or without a ``+hh:mm`` offset, is applied and the
    result is in UTC. Other zone names (``CET``, ``EST``) keep the wall-clock time.
    """
    try:
        return datetime.strptime(value, COMMENT_DATE_FORMAT)
    except ValueError:
        pass
    match = TIMEZONE_SUFFIX.match(value)
    if match is None:
        return None
    try:
        parsed = datetime.strptime(match.group(1), COMMENT_DATE_FORMAT)
    except ValueError:
        return None
    offset = _zone_offset(match.group(2))
    return parsed if offset is None else parsed - offset


def parse_comments(text: str, diagnostics: Optional[Diagnostics] = None) -> Metadata:
    """
    Turn the comments block into text metadata.

    Lines without a leading tab start a new section; tabbed lines are either
    ``key on <date>`` or ``key: value``.
    """
    metadata = Metadata()
    section = ""
    for line in text.split("\r\n"):
        if not line.startswith("\t"):
            section = line
            continue
        line = line.strip()
        if " on " in line:
            key, _, value = line.partition(" on ")
            key, value = key.strip(), value.strip()
            date = parse_comment_date(value)
            if date is None:
                if diagnostics is not None:
                    diagnostics.warn("MalformedMetadataEntry", f"Unparseable date for {key!r}: {value!r}")
                continue
            metadata.set_string(_field_name(section, key), date.strftime(TIMESTAMP_FORMAT))
        elif ":" in line:
            key, _, value = line.partition(":")
            metadata.set_string(_field_name(section, key.strip()), value.strip())
    return metadata


def _field_name(section: str, key: str) -> str:
    return f"{section} - {key}" if section else key


class SpaDecoder(BaseDecoder):
    format_name = "spa"
    extensions = (".spa",)

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        cursor = ByteCursor(buf)
        spectrum_id = cursor.cstring(ID_OFFSET)
        offsets = read_directory(cursor, context.trace)

        metadata = parse_comments(cursor.cstring(offsets[BLOCK_COMMENTS]), context.diagnostics)

        description = offsets[BLOCK_DATA_DESCRIPTION]
        count = cursor.i32(description + 4)
        max_wave = cursor.f32(description + 16)
        min_wave = cursor.f32(description + 20)
        context.trace.record("spa_count", count)

        amplitudes = read_f32_array(buf, offsets[BLOCK_DATA], max(count, 0))
        wave_numbers = descending_ramp(max_wave, min_wave, count)
        keep = ~np.isnan(amplitudes)
        dropped = int(np.count_nonzero(~keep))
        if dropped:
            context.trace.record("spa_nan_dropped", dropped)

        return [assemble(spectrum_id, wave_numbers[keep], amplitudes[keep], metadata, file_name=name or None)]
