"""
Relab ASCII decoder (Brown University RELAB spectral library).

A point count on the first line and that many ``x y`` rows, followed by a trailer
with the IDs and comments at fixed line positions.
"""
import os
from typing import List
from specdecode.core.exceptions import MalformedFileError
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.domain.models.metadata import Metadata
from specdecode.domain.models.spectrum import Spectrum
from specdecode.domain.services.spectrum_assembler import assemble
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.shared.utils.byte_cursor import Buffer

SPECTRUM_ID_LINE = 3
SAMPLE_ID_LINE = 5
COMMENTS_LINE = 6


class RelabDecoder(BaseDecoder):
    format_name = "relab"
    extensions = (".asc",)

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        lines = bytes(buf).decode("latin-1").splitlines()
        if not lines:
            raise MalformedFileError("Empty Relab file")
        try:
            num_data = int(lines[0].strip())
        except ValueError:
            raise MalformedFileError(f"Invalid number of data points: {lines[0].strip()!r}")
        if len(lines) < num_data + 1:
            raise MalformedFileError(f"Expected {num_data} data lines, file has {len(lines) - 1}")

        wave_numbers = []
        amplitudes = []
        for number in range(1, num_data + 1):
            parts = lines[number].split()
            if len(parts) != 2:
                continue
            try:
                wave_numbers.append(float(parts[0]))
                amplitudes.append(float(parts[1]))
            except ValueError:
                raise MalformedFileError(f"Data line corrupt (line {number + 1}): {lines[number].strip()!r}")

        metadata = Metadata()
        spectrum_id = ""
        trailer = num_data + 1

        # Example: " C1SF02      .ASC                        "
        line_no = trailer + SPECTRUM_ID_LINE
        if len(lines) > line_no:
            parts = lines[line_no].split()
            metadata.set_string("Spectrum ID", parts[0] if parts else "")

        line_no = trailer + SAMPLE_ID_LINE
        if len(lines) > line_no:
            sample_id = lines[line_no].strip().split(" ")[0]
            if self.option("use_filename_as_sample_id", "relab_use_filename_as_sample_id", False):
                stem = os.path.basename(name).upper().replace(".ASC", "")
                metadata.set_string("Original Sample ID", sample_id)
                spectrum_id = f"{sample_id}|{stem}"
            else:
                spectrum_id = sample_id

        line_no = trailer + COMMENTS_LINE
        if len(lines) > line_no:
            comments = [line.strip() for line in lines[line_no:] if line.strip()]
            metadata.set_string("Comments", "\n".join(comments))

        context.trace.record("relab_count", num_data)
        return [assemble(spectrum_id, wave_numbers, amplitudes, metadata, file_name=name or None)]
