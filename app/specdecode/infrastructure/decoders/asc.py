"""
BLGG ASC decoder: ``##key=value`` header lines followed by ``x y`` data rows.
"""
from typing import List
from specdecode.core.exceptions import CountMismatchError, MalformedFileError
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.domain.models.metadata import Metadata
from specdecode.domain.models.spectrum import Spectrum
from specdecode.domain.services.spectrum_assembler import assemble
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.shared.utils.byte_cursor import Buffer
from specdecode.shared.utils.metadata_inference import build_field

HEADER_PREFIX = "##"
SAMPLE_ID = "Sample ID"
NUM_POINTS = "Nr of data points"
SAMPLE_TYPE = "Sample Type"
SAMPLE_TYPE_ALIASES = ("SampleType", "Product Name")


def fix_key(key: str) -> str:
    return SAMPLE_TYPE if key in SAMPLE_TYPE_ALIASES else key


class AscDecoder(BaseDecoder):
    format_name = "asc"
    extensions = (".asc", "")

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        force_comma_to_point = self.option("force_comma_to_point", "asc_force_comma_to_point", True)
        text = bytes(buf).decode("latin-1")

        properties = {}
        wave_numbers = []
        amplitudes = []
        in_header = True
        for number, line in enumerate(text.split("\n"), start=1):
            if line.startswith(HEADER_PREFIX):
                if not in_header:
                    raise MalformedFileError(f"Found header line inside data (line {number})")
                pair = line[len(HEADER_PREFIX):].strip().split("=")
                if len(pair) != 2:
                    context.diagnostics.warn("MalformedMetadataEntry", f"Skipping header line {number}: {line.strip()!r}")
                    continue
                properties[pair[0].strip()] = pair[1].strip()
                continue

            if not line.strip():
                continue
            in_header = False
            values = line.split()
            if len(values) != 2:
                raise MalformedFileError(f"Data line corrupt (line {number}): {line.strip()!r}")
            if force_comma_to_point:
                values = [v.replace(",", ".") for v in values]
            try:
                wave_numbers.append(float(values[0]))
                amplitudes.append(float(values[1]))
            except ValueError:
                raise MalformedFileError(f"Data line corrupt (line {number}): {line.strip()!r}")

        if not amplitudes:
            raise MalformedFileError("No spectral data loaded from file.")
        try:
            declared = int(properties.get(NUM_POINTS, ""))
        except ValueError:
            raise CountMismatchError(-1, len(amplitudes), f"Missing or invalid '{NUM_POINTS}'")
        if declared != len(amplitudes):
            raise CountMismatchError(
                declared, len(amplitudes),
                f"Mismatched wavenumber length. Expected {declared}, read {len(amplitudes)}",
            )

        metadata = Metadata()
        for key, value in properties.items():
            metadata.set_field(fix_key(key), build_field(value))

        spectrum_id = properties.get(SAMPLE_ID, "")
        return [assemble(spectrum_id, wave_numbers, amplitudes, metadata, declared_count=declared, file_name=name or None)]
