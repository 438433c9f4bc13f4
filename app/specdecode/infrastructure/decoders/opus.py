"""
Bruker OPUS decoder.

OPUS files are a run of 12-byte directory entries starting at ``BLOCKS_OFFSET``. The
absorbance (AB) entry points at the raw amplitudes; the parameters describing them
(``NPT``, ``FXV``, ``LXV``) sit in the bytes preceding that data and are found by
scanning backwards. Free text parameters live in a separate text block.
"""
from typing import List, Optional, Tuple
from specdecode.core.exceptions import BlockNotFoundError, CountMismatchError, SpecDecodeException
from specdecode.domain.models.decode_result import BlockDescriptor, DecodeContext
from specdecode.domain.models.metadata import Metadata
from specdecode.domain.models.spectrum import Spectrum
from specdecode.domain.services.spectrum_assembler import assemble
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.shared.utils.block_directory import WILDCARD, BlockDirectory, tag
from specdecode.shared.utils.byte_cursor import Buffer, read_bytes, read_f64_reversed, read_i32, reinterpret_f32_array
from specdecode.shared.utils.helpers import linear_ramp, split_quoted, unquote
from specdecode.shared.utils.metadata_inference import is_numeric

OPUS_MAGIC = b"\x0a\x0a\xfe\xfe"
BLOCKS_OFFSET = 0x24
ENTRY_STRIDE = 12
PARAMETER_FLOOR = 4

AB_BLOCK = (0x0F, 0x10, 0x00, WILDCARD)
TEXT_BLOCK = (WILDCARD, WILDCARD, 0x68, 0x40)
NPT = tag("NPT")
FXV = tag("FXV")
LXV = tag("LXV")

MISSING_SAMPLE_ID = "ERR"
PREFIX_TRACE = "Trace."


class OpusDecoder(BaseDecoder):
    format_name = "opus"
    extensions = ()

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        directory = BlockDirectory(buf, BLOCKS_OFFSET, ENTRY_STRIDE, PARAMETER_FLOOR, context.trace)

        ab_data_offset = self.find_ab_data_offset(directory)
        count, first_x, last_x = self.read_axis_parameters(directory, ab_data_offset)
        amplitudes = reinterpret_f32_array(buf, ab_data_offset, count)
        wave_numbers = linear_ramp(first_x, last_x, count)

        metadata = Metadata()
        sample_id = MISSING_SAMPLE_ID
        text_block = self.find_text_block(directory, context)
        if text_block is not None:
            text = self.read_text(buf, text_block)
            self.parse_parameters(text, metadata, context)
            key = self.option("sample_id_key", "opus_sample_id_key", "SNM")
            found = self.find_value(text, key)
            if found is None:
                context.diagnostics.warn("MissingSampleId", f"No value for {key} in text block")
            else:
                sample_id = found
        else:
            context.diagnostics.warn("MissingSampleId", "No text block, sample ID unavailable")

        if self.option("add_trace", "opus_add_trace", False):
            for trace_key, value in sorted(context.trace.items()):
                if isinstance(value, (int, float)):
                    metadata.set_numeric(PREFIX_TRACE + trace_key, value)
                else:
                    metadata.set_string(PREFIX_TRACE + trace_key, str(value))

        return [assemble(sample_id, wave_numbers, amplitudes, metadata, declared_count=count, file_name=name or None)]

    def find_ab_data_offset(self, directory: BlockDirectory) -> int:
        block = directory.find(AB_BLOCK)
        directory.trace.record("ab_offset", block.absolute_offset)
        ab_data_offset = directory.pointer(block)
        directory.trace.record("ab_data_offset", ab_data_offset)
        return ab_data_offset

    def read_axis_parameters(self, directory: BlockDirectory, ab_data_offset: int) -> Tuple[int, float, float]:
        """
        Locate NPT/FXV/LXV before the amplitude data.

        Returns:
            Point count, first and last wave number

        Raises:
            MissingMandatoryBlockError: If any of the three parameters is absent
            CountMismatchError: If the declared point count is not positive
        """
        buf = directory.buf
        npt = directory.find_before(ab_data_offset, NPT)
        count = read_i32(buf, npt.absolute_offset + 8)
        directory.trace.record("ab_count", count)
        if count <= 0:
            raise CountMismatchError(count, 0, f"Invalid number of data points: {count}")

        fxv = directory.find_before(ab_data_offset, FXV)
        lxv = directory.find_before(ab_data_offset, LXV)
        first_x = read_f64_reversed(buf, fxv.absolute_offset + 8)
        last_x = read_f64_reversed(buf, lxv.absolute_offset + 8)
        return count, first_x, last_x

    def find_text_block(self, directory: BlockDirectory, context: DecodeContext) -> Optional[BlockDescriptor]:
        """
        Resolve the text block.

        Returns:
            Descriptor of the text data with its declared byte length, or None when
            the block cannot be located
        """
        try:
            entry = directory.find(TEXT_BLOCK)
            size = read_i32(directory.buf, entry.absolute_offset) * 4
            offset = directory.pointer(entry)
        except SpecDecodeException as e:
            context.diagnostics.warn(e.kind, f"Text block unavailable: {e.message}", e.offset)
            return None
        directory.trace.record("text_block_size", size)
        directory.trace.record("text_block_offset", offset)
        if offset < 0 or size <= 0 or offset >= len(directory.buf):
            context.diagnostics.warn("MissingMandatoryBlock", "Text block is empty or outside the file", offset)
            return None
        return BlockDescriptor(tag=entry.tag, absolute_offset=offset, declared_length=size)

    def read_text(self, buf: Buffer, block: BlockDescriptor) -> str:
        # a declared length running past the end of the file is cut at the end
        length = min(block.declared_length, len(buf) - block.absolute_offset)
        return read_bytes(buf, block.absolute_offset, length).decode("latin-1")

    def parse_parameters(self, text: str, metadata: Metadata, context: DecodeContext) -> None:
        """Parse the ``{key=value,...}`` section of the text block into metadata."""
        start = text.find("{")
        end = text.find("}")
        if start == -1 or end == -1 or end < start:
            return

        for part in split_quoted(text[start + 1:end]):
            part = part.strip()
            if not part:
                continue
            pair = part.split("=")
            if len(pair) != 2:
                context.diagnostics.warn("MalformedMetadataEntry", f"Skipping parameter {part!r}")
                continue
            key, value = pair[0].strip(), pair[1].strip()
            text_value = unquote(value)
            if text_value is not None:
                metadata.set_string(key, text_value)
            elif is_numeric(value):
                metadata.set_numeric(key, float(value))
            else:
                context.diagnostics.warn("MalformedMetadataEntry", f"Skipping parameter {key} with value {value!r}")

    def find_value(self, text: str, key: str) -> Optional[str]:
        """Return the quoted value following ``key='`` in the text block, if any."""
        needle = f"{key}='"
        pos = text.find(needle)
        if pos == -1:
            return None
        value_start = pos + len(needle)
        value_end = text.find("'", value_start)
        if value_end == -1:
            return None
        return text[value_start:value_end]


def has_opus_magic(buf: Buffer) -> bool:
    return bytes(buf[:4]) == OPUS_MAGIC


def looks_like_opus(buf: Buffer) -> bool:
    """Magic number, or failing that, a resolvable AB directory entry."""
    if has_opus_magic(buf):
        return True
    try:
        BlockDirectory(buf, BLOCKS_OFFSET, ENTRY_STRIDE).find(AB_BLOCK)
    except BlockNotFoundError:
        return False
    return True
