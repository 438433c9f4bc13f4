"""
Galactic SPC decoder (new format, IEEE-754 float Y values).

The file is a 512-byte main header followed by one or more subfiles, each a 32-byte
sub-header plus its amplitudes, and an optional trailing log block of ``KEY = value``
lines. Decoding runs in phases (``SpcPhase``); a failing phase is attached to the
raised exception as ``phase``.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
from specdecode.core.exceptions import (
    MalformedMetadataEntryError,
    MissingMandatoryBlockError,
    SpecDecodeException,
    UnsupportedVariantError,
)
from specdecode.domain.models.decode_result import DecodeContext, Diagnostics
from specdecode.domain.models.metadata import DataType, Metadata
from specdecode.domain.models.spectrum import Spectrum
from specdecode.domain.services.spectrum_assembler import assemble
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.shared.utils.byte_cursor import Buffer, ByteCursor, is_bit_set, read_f32_array
from specdecode.shared.utils.helpers import TIMESTAMP_FORMAT, file_stem, linear_ramp, unpack_spc_date
from specdecode.shared.utils.metadata_inference import coerce

HEADER_SIZE = 512
SUBHEADER_SIZE = 32

# Ftflags
FLAG_16BIT = 0x01
FLAG_MULTI = 0x04
FLAG_ORDERED = 0x10
FLAG_AXIS_LABELS = 0x20
FLAG_UNIQUE_X = 0x40
FLAG_NON_EVEN_X = 0x80

EXPONENT_IEEE_FLOAT = 0x80

EXPERIMENT_TYPES = {
    0x00: "General",
    0x01: "Gas Chromatogram",
    0x02: "General Chromatogram",
    0x03: "HPLC Chromatogram",
    0x04: "FT-IR, FT-NIR, FT-Raman Spectrum",
    0x05: "NIR Spectrum",
    0x06: "UV-VIS Spectrum",
    0x07: "Not defined",
    0x08: "X-ray Diffraction Spectrum",
    0x09: "Mass Spectrum",
    0x0A: "NMR Spectrum",
    0x0B: "Raman Spectrum",
    0x0C: "Fluorescence Spectrum",
    0x0D: "Atomic Spectrum",
    0x0E: "Chromatography Diode Array Spectra",
}

# shared by the X, Z and W axes
XZW_AXIS_TYPES = {
    0: "Arbitrary",
    1: "Wavenumber (cm-1)",
    2: "Micrometers",
    3: "Nanonmeters",
    4: "Seconds",
    5: "Minutes",
    6: "Hz",
    7: "KHz",
    8: "MHz",
    9: "Mass (M/z)",
    10: "ppm",
    11: "Days",
    12: "Years",
    13: "Raman shift (cm-1)",
    14: "eV",
    16: "Diode number",
    17: "Channel",
    18: "°",
    19: "°F",
    20: "°C",
    21: "°K",
    22: "Data Points",
    23: "msec",
    24: "μsec",
    25: "nsec",
    26: "GHz",
    27: "cm",
    28: "m",
    29: "mm",
    30: "Hours",
}

# keyed by the signed byte value
Y_AXIS_TYPES = {
    0: "Arbitrary Intensity",
    1: "Interferogram",
    2: "Absorbance",
    3: "Kubelka-Munk",
    4: "Counts",
    5: "V",
    6: "°",
    7: "mA",
    8: "mm",
    9: "mV",
    10: "Log (1/R)",
    11: "%",
    12: "Intensity",
    13: "Relative Intensity",
    14: "Energy",
    15: "*** not used ***",
    16: "dB",
    17: "*** not used ***",
    18: "*** not used ***",
    19: "°F",
    20: "°C",
    21: "°K",
    22: "Index of Refraction [N]",
    23: "Extinction Coeff. [K]",
    24: "Real",
    25: "Imaginary",
    26: "Complex",
    -128: "Transmission",
    -127: "Reflectance",
    -126: "Arbitrary",
    -125: "Emission",
}

IR_MODES = {
    "2": "Mid-IR mode",
    "1": "Near-IR mode",
    "-2": "Raman shift",
}

LOG_PREFIX = "Log."

LOG_NUMERIC_KEYS = frozenset([
    "BEGX", "ENDX", "NPTS", "BEGZ", "ENDZ", "NSUBS", "SCANS", "SCANSBG", "GAIN",
    "VELOCITY", "LWN", "RAMANFREQ", "RAMANPWR", "JSTOP", "BSTOP", "PURGE", "ZFF",
    "PHASEPTS", "POLARIZER", "LOWPASS", "HIGHPASS", "SMOOTH", "AVGTIME", "BDELAY",
    "SDELAY", "CHANNEL", "NODE", "SENSORCNT", "SLIT1", "SLIT2", "PMT", "DETCHG",
    "DETCOR", "SRCCHG", "INDEPENDENT", "SIGNOISE", "SNLEVEL", "SNTIMEOUT", "NIR_RES",
    "NIR_AVERAGING", "NIR_SBW", "NIR_ENERGY", "NIR_SLITHT", "CORRECTION", "NUCFREQ",
    "SW_HZ", "DWELL", "DELAY", "ACQTIME", "REQSCANS", "FLTFREQ", "PULSWD", "SW_PPM",
    "DCOFF", "APODP(0)", "APODP(1)", "PH0", "PH1", "PV0", "PV1", "DELTA_PPM", "NORM",
    "THRESH", "SENS", "PICK_TYPE", "WINDOW", "PK_LABEL", "LB_FORM", "TR_OBJ",
])

LOG_BOOLEAN_KEYS = frozenset([
    "AB_APPS", "FID", "SPC_REAL", "SPC_REV", "INTBAS", "INTOFF", "BASE", "MASK_ON",
])

LOG_AXIS_KEYS = {"XTYPE": "x", "YTYPE": "y", "ZTYPE": "z"}


class SpcPhase(str, Enum):
    HEADER = "header"
    SUBFILES = "subfiles"
    LOG = "log"
    POSTPROCESS = "postprocess"


@dataclass
class SpcHeader:
    blocks_16bit: bool
    multi_file: bool
    ordered: bool
    axis_labels: bool
    version: str
    experiment_type: str
    num_points: int
    first_x: float
    last_x: float
    num_files: int
    x_axis: str
    y_axis: str
    z_axis: str
    w_axis: str
    collection_date: Optional[datetime]
    resolution: str
    source: str
    peak_point_num: int
    comment: str
    log_offset: int
    z_increment: float
    w_planes: int
    w_increment: float


def experiment_type_label(code: int) -> str:
    code &= 0xFF
    return EXPERIMENT_TYPES.get(code, f"Unknown type; 0x{code:02X}")


def axis_label(code: int, axis: str) -> str:
    """
    Unit label of an axis enum byte. ``axis`` is one of x, y, z, w; the Y axis uses its
    own table keyed by the signed byte value.
    """
    signed = code - 256 if code > 127 else code
    if axis == "y":
        label = Y_AXIS_TYPES.get(signed)
    elif axis in ("x", "z", "w"):
        label = XZW_AXIS_TYPES.get(signed)
    else:
        raise ValueError(f"Unhandled axis: {axis}")
    if label is None:
        label = f"Unknown {axis} axis type: 0x{code & 0xFF:02X}"
    return label


def decode_collection_date(raw: int, diagnostics: Optional[Diagnostics] = None) -> Optional[datetime]:
    if raw == 0:
        return None
    year, month, day, hour, minute = unpack_spc_date(raw)
    try:
        return datetime(year, month, day, hour, minute)
    except ValueError as e:
        if diagnostics is not None:
            diagnostics.warn("MalformedMetadataEntry", f"Invalid collection date {raw:#010x}: {e}", 32)
        return None


def _custom_axis_labels(cursor: ByteCursor) -> List[str]:
    """NUL terminated X, Y and Z labels packed into bytes 218-247."""
    raw = cursor.raw(218, 30)
    # the part after the last NUL is unterminated and ignored
    return [part.decode("latin-1") for part in raw.split(b"\x00")[:-1][:3]]


def parse_header(buf: Buffer, diagnostics: Optional[Diagnostics] = None) -> SpcHeader:
    """
    Parse the fixed 512-byte main header.

    Raises:
        MissingMandatoryBlockError: If the buffer is shorter than the header
        UnsupportedVariantError: For non-float Y data, per-subfile X arrays or uneven X
    """
    if len(buf) < HEADER_SIZE:
        raise MissingMandatoryBlockError("header", 0, f"File too short for SPC header ({len(buf)} bytes)")
    cursor = ByteCursor(buf)

    flags = cursor.u8(0)
    if not is_bit_set(cursor.u8(3), EXPONENT_IEEE_FLOAT):
        raise UnsupportedVariantError("Y values are not stored as IEEE 32bit floats!", 3)
    if is_bit_set(flags, FLAG_UNIQUE_X):
        raise UnsupportedVariantError("Cannot handle subfiles with individual X arrays!", 0)
    if is_bit_set(flags, FLAG_NON_EVEN_X):
        raise UnsupportedVariantError("Cannot handle non-evenly spaced X values!", 0)

    x_axis = axis_label(cursor.u8(28), "x")
    y_axis = axis_label(cursor.u8(29), "y")
    z_axis = axis_label(cursor.u8(30), "z")
    axis_labels = is_bit_set(flags, FLAG_AXIS_LABELS)
    if axis_labels:
        custom = _custom_axis_labels(cursor)
        if len(custom) > 0:
            x_axis = custom[0]
        if len(custom) > 1:
            y_axis = custom[1]
        if len(custom) > 2:
            z_axis = custom[2]

    return SpcHeader(
        blocks_16bit=is_bit_set(flags, FLAG_16BIT),
        multi_file=is_bit_set(flags, FLAG_MULTI),
        ordered=is_bit_set(flags, FLAG_ORDERED),
        axis_labels=axis_labels,
        version=f"{cursor.u8(1):02X}",
        experiment_type=experiment_type_label(cursor.u8(2)),
        num_points=cursor.i32(4),
        first_x=cursor.f64(8),
        last_x=cursor.f64(16),
        num_files=cursor.i32(24),
        x_axis=x_axis,
        y_axis=y_axis,
        z_axis=z_axis,
        w_axis=axis_label(cursor.u8(324), "w"),
        collection_date=decode_collection_date(cursor.u32(32), diagnostics),
        resolution=cursor.fixed_string(36, 9).strip(),
        source=cursor.fixed_string(45, 9).strip(),
        peak_point_num=cursor.i16(54),
        comment=cursor.fixed_string(88, 130).strip(),
        log_offset=cursor.i32(248),
        z_increment=cursor.f32(312),
        w_planes=cursor.i32(316),
        w_increment=cursor.f32(320),
    )


def parse_subfile(buf: Buffer, offset: int, header: SpcHeader, index: int, base_id: str = "") -> Tuple[Spectrum, int]:
    """
    Parse one subfile starting at ``offset``.

    Returns:
        The spectrum and the number of bytes consumed

    Raises:
        MissingMandatoryBlockError: If the sub-header does not fit in the buffer
        UnsupportedVariantError: If the subfile Y values are not IEEE floats
        OutOfBoundsError: If the amplitudes run past the end of the buffer
    """
    if offset + SUBHEADER_SIZE > len(buf):
        raise MissingMandatoryBlockError("subheader", offset, f"Sub-header {index} does not fit in the file")
    cursor = ByteCursor(buf)

    if not is_bit_set(cursor.u8(offset + 1), EXPONENT_IEEE_FLOAT):
        raise UnsupportedVariantError("Y values are not stored as IEEE 32bit floats!", offset + 1)
    sub_index = cursor.i16(offset + 2)
    z_start = cursor.f32(offset + 4)
    z_end = cursor.f32(offset + 8)
    noise = cursor.f32(offset + 12)
    declared = cursor.i32(offset + 16)
    scans = cursor.i32(offset + 20)
    w_value = cursor.f32(offset + 24)

    count = declared if declared > 0 else header.num_points
    amplitudes = read_f32_array(buf, offset + SUBHEADER_SIZE, count)
    wave_numbers = linear_ramp(header.first_x, header.last_x, count)

    metadata = Metadata()
    metadata.set_numeric("SubFile Index", sub_index)
    metadata.set_numeric("Z Start", z_start)
    metadata.set_numeric("Z End", z_end)
    metadata.set_numeric("Noise", noise)
    metadata.set_numeric("Num Scans", scans)
    metadata.set_numeric("W Value", w_value)

    spectrum_id = base_id if header.num_files <= 1 else f"{base_id}-{index}"
    spectrum = assemble(spectrum_id, wave_numbers, amplitudes, metadata, declared_count=count)
    return spectrum, SUBHEADER_SIZE + count * 4


def _log_value(key: str, value: str) -> Tuple[DataType, str]:
    """Declared type of a log entry and its (possibly relabelled) raw value."""
    if key in LOG_NUMERIC_KEYS:
        return DataType.NUMERIC, value
    if key in LOG_BOOLEAN_KEYS:
        return DataType.BOOLEAN, value
    if key in LOG_AXIS_KEYS:
        code = int(value)
        if code < -128 or code > 127:
            raise ValueError(f"Axis code out of range: {code}")
        return DataType.STRING, axis_label(code & 0xFF, LOG_AXIS_KEYS[key])
    if key == "IRMODE":
        return DataType.STRING, IR_MODES.get(value, value)
    return DataType.STRING, value


def parse_log(buf: Buffer, header: SpcHeader, diagnostics: Optional[Diagnostics] = None) -> Metadata:
    """
    Parse the trailing log block into metadata with ``Log.`` prefixed keys.
    Entries that fail their declared type are kept as text.
    """
    log = Metadata()
    if header.log_offset == 0:
        return log

    cursor = ByteCursor(buf)
    disk_size = cursor.i32(header.log_offset)
    text_offset = cursor.i32(header.log_offset + 8)
    length = disk_size - text_offset - 1
    if length <= 0:
        return log
    text = cursor.raw(header.log_offset + text_offset, length).decode("latin-1").strip()
    if not text:
        return log

    for line in text.split("\r\n"):
        parts = line.split(" = ")
        while parts and parts[-1] == "":
            parts.pop()
        if len(parts) != 2:
            continue
        key, value = parts[0].strip(), parts[1].strip()
        name = LOG_PREFIX + key
        try:
            data_type, value = _log_value(key, value)
            log.set_field(name, coerce(value, data_type))
        except (MalformedMetadataEntryError, ValueError) as e:
            if diagnostics is not None:
                diagnostics.warn("MalformedMetadataEntry", f"{name}: {e}; stored as text")
            log.set_string(name, value)
    return log


def post_process(spectra: List[Spectrum], header: SpcHeader, log: Optional[Metadata] = None) -> None:
    """Copy the file-level header fields and the log into every spectrum's metadata."""
    for spectrum in spectra:
        report = spectrum.metadata
        if header.num_files <= 1:
            report.set_numeric("First X", header.first_x)
            report.set_numeric("Last X", header.last_x)
            report.set_numeric("Num Points", header.num_points)
        report.set_boolean("Multi File", header.multi_file)
        report.set_string("Comment", header.comment)
        if header.collection_date is not None:
            report.set_string("Collection Date", header.collection_date.strftime(TIMESTAMP_FORMAT))
        report.set_numeric("Peak Point Num", header.peak_point_num)
        report.set_string("Experiment type", header.experiment_type)
        report.set_string("Resolution", header.resolution)
        report.set_string("Instrument", header.source)
        report.set_string("X Axis", header.x_axis)
        report.set_string("Y Axis", header.y_axis)
        report.set_string("Z Axis", header.z_axis)
        report.set_string("W Axis", header.w_axis)
        report.set_string("Version", header.version)
        report.merge(log)


class SpcDecoder(BaseDecoder):
    format_name = "spc"
    extensions = (".spc",)

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        phase = SpcPhase.HEADER
        try:
            header = parse_header(buf, context.diagnostics)
            context.trace.record("spc_num_files", header.num_files)
            context.trace.record("spc_log_offset", header.log_offset)

            phase = SpcPhase.SUBFILES
            spectra = self.parse_subfiles(buf, header, file_stem(name), context)

            phase = SpcPhase.LOG
            log = parse_log(buf, header, context.diagnostics)

            phase = SpcPhase.POSTPROCESS
            post_process(spectra, header, log)
        except SpecDecodeException as e:
            e.phase = phase
            context.trace.record("spc_failed_phase", phase.value)
            raise

        for spectrum in spectra:
            spectrum.file_name = name or None
        return spectra

    def parse_subfiles(self, buf: Buffer, header: SpcHeader, base_id: str, context: DecodeContext) -> List[Spectrum]:
        spectra = []
        offset = HEADER_SIZE
        # some single-file writers leave Fnsub at zero
        num_files = header.num_files if header.num_files > 0 else 1
        for i in range(num_files):
            spectrum, consumed = parse_subfile(buf, offset, header, i, base_id)
            context.trace.record(f"spc_subfile:{i}", offset)
            spectra.append(spectrum)
            offset += consumed
        return spectra
