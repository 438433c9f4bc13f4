"""
USGS SpecLib ASCII decoder.

Everything up to a ``-----`` separator line is preamble. Two lines follow it: the
title, whose second word is the spectrum ID, and a comment. After them come
``wave amplitude deviation`` rows.
"""
import re
from typing import List
import numpy as np
from specdecode.config.logging import get_logger
from specdecode.core.exceptions import MalformedFileError
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.domain.models.metadata import Metadata
from specdecode.domain.models.spectrum import Spectrum
from specdecode.domain.services.spectrum_assembler import assemble
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.shared.utils.byte_cursor import Buffer

logger = get_logger(__name__)

SEPARATOR = "-----"
FLOAT_MAX = float(np.finfo(np.float32).max)


class SpecLibDecoder(BaseDecoder):
    format_name = "speclib"
    extensions = (".asc",)

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        min_wave = self.option("min_wave_number", "speclib_min_wave_number", 0.0)
        max_wave = self.option("max_wave_number", "speclib_max_wave_number", FLOAT_MAX)
        min_amplitude = self.option("min_amplitude", "speclib_min_amplitude", 0.0)
        max_amplitude = self.option("max_amplitude", "speclib_max_amplitude", FLOAT_MAX)

        lines = bytes(buf).decode("latin-1").splitlines()
        try:
            start = next(i for i, line in enumerate(lines) if line.startswith(SEPARATOR)) + 1
        except StopIteration:
            raise MalformedFileError(f"No '{SEPARATOR}' line found, not a SpecLib file")

        metadata = Metadata()
        spectrum_id = ""
        wave_numbers = []
        amplitudes = []
        ignored = 0
        for number, line in enumerate(lines[start:], start=start + 1):
            if number == start + 1:
                # Example: "Alun_Na+Kaol+Hemat  MV00-11a W1R1Fc AREF"
                title = re.sub(" +", " ", line).split(" ")
                if len(title) < 2:
                    raise MalformedFileError(f"Title line without spectrum ID (line {number}): {line!r}")
                spectrum_id = title[1]
                continue
            if number == start + 2:
                # Example: "copy of splib05a r 7203"
                metadata.set_string("Comment", line.strip())
                continue

            # Example: "       0.430000       0.163323       0.000000"
            parts = line.split()
            if len(parts) != 3:
                continue
            try:
                wave, amplitude = float(parts[0]), float(parts[1])
            except ValueError:
                raise MalformedFileError(f"Data line corrupt (line {number}): {line.strip()!r}")
            if min_wave <= wave <= max_wave and min_amplitude <= amplitude <= max_amplitude:
                wave_numbers.append(wave)
                amplitudes.append(amplitude)
            else:
                ignored += 1
                logger.debug(f"Ignored amplitude: {wave}/{amplitude}")

        if ignored:
            context.trace.record("speclib_ignored", ignored)
        return [assemble(spectrum_id, wave_numbers, amplitudes, metadata, file_name=name or None)]
