"""
FOSS CAL decoder.

A CAL file is a 0x380-byte header followed by fixed-size rows. Each row holds a
0x100-byte block of identifiers, the spectrum (padded to a multiple of 128 bytes)
and a 128-byte tail carrying the reference values. Deleted rows stay in the file
and are flagged.
"""
import os
from dataclasses import dataclass
from typing import List, Optional
import numpy as np
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.domain.models.metadata import Metadata
from specdecode.domain.models.spectrum import Spectrum
from specdecode.domain.services.spectrum_assembler import assemble
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.shared.utils.byte_cursor import Buffer, ByteCursor, reinterpret_f32_array
from specdecode.shared.utils.helpers import index_ramp
from specdecode.shared.utils.validators import validate_start_and_max

COUNT_OFFSET = 0x02
DELETED_OFFSET = 0x04
DATAPOINT_OFFSET = 0x06
REFERENCE_COUNT_OFFSET = 0x08
REFERENCE_OFFSET = 0x180
REFERENCE_NAME_WIDTH = 0x10
REFERENCE_NAME_NUM = 32
NSEG_OFFSET = 128 + 32
NPPS_OFFSET = NSEG_OFFSET + 2
WAVE_TYPE_OFFSET = NPPS_OFFSET + 40
WAVE_OFFSET = WAVE_TYPE_OFFSET + 2
HEAD_END = 0x380

NUM_SEGMENT_LENGTHS = 20
NUM_SEGMENT_VALUES = 7
EQUALLY_SPACED = 1

ROW_HEAD_SIZE = 0x100
ROW_TAIL_SIZE = 8 * 16

SAMPLE_TYPE = "Sample Type"


@dataclass
class CalRow:
    index: int
    id: str
    product_code: int
    id1: str
    id2: str
    id3: str
    deleted: bool
    num_deleted: int = 0

    @property
    def row_num(self) -> int:
        """1-based position among the rows that were not deleted before this one."""
        return (self.index + 1) - self.num_deleted


class CalFile:
    """Random access to the header, rows, spectra and reference values of a CAL buffer."""

    def __init__(self, buf: Buffer):
        self.cursor = ByteCursor(buf)
        self.count = self.cursor.u16(COUNT_OFFSET)
        self.deleted = self.cursor.u16(DELETED_OFFSET)
        self.num_points = self.cursor.u16(DATAPOINT_OFFSET)
        self.ref_count = self.cursor.i8(REFERENCE_COUNT_OFFSET)
        self.ref_names = self.reference_names()
        self.spectra_size = self.spectra_block_size(self.num_points)

    @staticmethod
    def spectra_block_size(num_points: int) -> int:
        size = num_points * 4
        return -(-size // 128) * 128

    @property
    def block_size(self) -> int:
        return ROW_HEAD_SIZE + self.spectra_size + ROW_TAIL_SIZE

    @property
    def total(self) -> int:
        return self.count + self.deleted

    def reference_names(self) -> List[str]:
        names = []
        for i in range(REFERENCE_NAME_NUM):
            name = self.cursor.cstring(REFERENCE_OFFSET + i * REFERENCE_NAME_WIDTH, REFERENCE_NAME_WIDTH)
            if name:
                names.append(name)
        return names

    def row_offset(self, i: int) -> int:
        return HEAD_END + self.block_size * i

    def spectra_offset(self, i: int) -> int:
        return self.row_offset(i) + ROW_HEAD_SIZE

    def reference_offset(self, i: int) -> int:
        return self.spectra_offset(i) + self.spectra_size

    def row(self, i: int) -> CalRow:
        offset = self.row_offset(i)
        return CalRow(
            index=i,
            id=self.cursor.cstring(offset),
            product_code=self.cursor.i8(offset + 18),
            id1=self.cursor.cstring(offset + 29),
            id2=self.cursor.cstring(offset + 79),
            id3=self.cursor.cstring(offset + 129),
            deleted=self.cursor.u8(offset + 15) != 0,
        )

    def spectrum(self, i: int) -> np.ndarray:
        return reinterpret_f32_array(self.cursor.buf, self.spectra_offset(i), self.num_points)

    def references(self, i: int) -> np.ndarray:
        return reinterpret_f32_array(self.cursor.buf, self.reference_offset(i), max(self.ref_count, 0))

    def segment_type(self) -> int:
        return self.cursor.u16(WAVE_TYPE_OFFSET)

    def segment_lengths(self) -> List[int]:
        return [self.cursor.u16(NPPS_OFFSET + i * 2) for i in range(NUM_SEGMENT_LENGTHS)]

    def segment_starts(self) -> np.ndarray:
        return reinterpret_f32_array(self.cursor.buf, WAVE_OFFSET, NUM_SEGMENT_VALUES)

    def segment_increments(self) -> np.ndarray:
        return reinterpret_f32_array(self.cursor.buf, WAVE_OFFSET + 28, NUM_SEGMENT_VALUES)

    def wave_numbers(self) -> Optional[np.ndarray]:
        """Concatenated segment axes, or None unless the segments are equally spaced."""
        if self.segment_type() != EQUALLY_SPACED:
            return None
        lengths = self.segment_lengths()
        if any(lengths[NUM_SEGMENT_VALUES:]):
            return None
        starts = self.segment_starts().astype(np.float64)
        incs = self.segment_increments().astype(np.float64)
        parts = [starts[seg] + np.arange(length) * incs[seg] for seg, length in enumerate(lengths[:NUM_SEGMENT_VALUES])]
        return np.concatenate(parts) if parts else np.zeros(0)


class CalDecoder(BaseDecoder):
    format_name = "cal"
    extensions = (".cal",)

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        cal = CalFile(buf)
        start = self.option("start", "start", 1)
        max_spectra = self.option("max", "max_spectra", -1)
        id_field = self.option("id_field", "cal_id_field", "ID")
        type_field = self.option("type_field", "cal_type_field", "Code")
        validate_start_and_max(start, max_spectra)
        file_name = os.path.basename(name or "")

        context.trace.record("cal_count", cal.count)
        context.trace.record("cal_deleted", cal.deleted)
        context.trace.record("cal_points", cal.num_points)

        wave_numbers = cal.wave_numbers()
        use_references = cal.ref_count > 0
        if use_references and cal.ref_count != len(cal.ref_names):
            context.diagnostics.warn(
                "CountMismatch",
                f"Reference data is inconsistant: {cal.ref_count} values, {len(cal.ref_names)} names",
                REFERENCE_COUNT_OFFSET,
            )
            use_references = False

        spectra = []
        num_deleted = 0
        active = 0
        for i in range(cal.total):
            row = cal.row(i)
            if row.deleted:
                num_deleted += 1
                continue
            active += 1
            if active < start:
                continue
            row.num_deleted = num_deleted

            spectrum_id = self.row_id(row, id_field, file_name)
            if spectrum_id == "":
                context.diagnostics.warn("MalformedMetadataEntry", f"Row {i} has no ID, skipped", cal.row_offset(i))
                continue
            sample_type = self.sample_type(row, type_field)
            if sample_type == "":
                context.diagnostics.warn("MalformedMetadataEntry", f"Row {i} has no sample type, skipped", cal.row_offset(i))
                continue

            amplitudes = cal.spectrum(i)
            axis = wave_numbers
            if axis is None or len(axis) != len(amplitudes):
                context.diagnostics.warn(
                    "CountMismatch", "Different no. of wavenumbers and amplitudes", cal.spectra_offset(i)
                )
                axis = index_ramp(len(amplitudes))

            metadata = Metadata()
            metadata.set_string(SAMPLE_TYPE, sample_type)
            metadata.set_numeric("Deleted Before", num_deleted)
            if use_references:
                for ref_name, value in zip(cal.ref_names, cal.references(i)):
                    if value == 0:
                        continue
                    metadata.set_numeric(ref_name.lower(), float(value))

            spectra.append(assemble(spectrum_id, axis, amplitudes, metadata, file_name=name or None))
            if max_spectra != -1 and len(spectra) >= max_spectra:
                break

        return spectra

    @staticmethod
    def row_id(row: CalRow, id_field: str, file_name: str) -> str:
        """``ID``, ``Field1``-``Field3`` pick a row field; anything else is a prefix."""
        source = id_field.lower()
        if source == "id":
            return row.id
        if source == "field1":
            return row.id1
        if source == "field2":
            return row.id2
        if source == "field3":
            return row.id3
        return f"{id_field}{file_name}{row.row_num}"

    @staticmethod
    def sample_type(row: CalRow, type_field: str) -> str:
        """``Code``, ``Field1``-``Field3`` or ``ID`` pick a row field; anything else is used verbatim."""
        source = type_field.lower()
        if source == "code":
            return str(row.product_code)
        if source == "field1":
            return row.id1
        if source == "field2":
            return row.id2
        if source == "field3":
            return row.id3
        if source == "id":
            return row.id
        return type_field
