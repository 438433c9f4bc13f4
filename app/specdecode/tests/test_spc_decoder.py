from unittest import TestCase
from specdecode.core.exceptions import MissingMandatoryBlockError, OutOfBoundsError, UnsupportedVariantError
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.domain.models.metadata import DataType
from specdecode.infrastructure.decoders.spc import SpcDecoder, SpcPhase, axis_label, experiment_type_label, parse_header
from specdecode.shared.utils.helpers import pack_spc_date
from specdecode.tests.builders import build_spc, build_spc_header


class SpcDecoderTest(TestCase):

    def decode(self, buf, name="/data/sample.spc"):
        context = DecodeContext(source=name)
        return SpcDecoder().decode(buf, context, name), context

    def test_single_file(self):
        buf = build_spc(
            [[1.0, 2.0, 3.0]], 4000.0, 3996.0,
            date=pack_spc_date(2021, 3, 15, 10, 30),
            comment=b"wheat batch 7",
        )
        spectra, context = self.decode(buf)
        self.assertEqual(len(spectra), 1)
        spectrum = spectra[0]
        self.assertEqual(spectrum.id, "sample")
        self.assertEqual(spectrum.file_name, "/data/sample.spc")
        self.assertEqual(spectrum.wave_numbers.tolist(), [4000.0, 3998.0, 3996.0])
        self.assertEqual(spectrum.amplitudes.tolist(), [1.0, 2.0, 3.0])

        metadata = spectrum.metadata
        self.assertEqual(metadata.get("First X"), 4000.0)
        self.assertEqual(metadata.get("Num Points"), 3.0)
        self.assertEqual(metadata.get("Collection Date"), "2021-03-15 10:30:00")
        self.assertEqual(metadata.get("Comment"), "wheat batch 7")
        self.assertEqual(metadata.get("Resolution"), "4")
        self.assertEqual(metadata.get("Instrument"), "NIR")
        self.assertEqual(metadata.get("X Axis"), "Wavenumber (cm-1)")
        self.assertEqual(metadata.get("Y Axis"), "Absorbance")
        self.assertEqual(metadata.get("Version"), "4B")
        self.assertEqual(metadata.get("Experiment type"), "FT-IR, FT-NIR, FT-Raman Spectrum")
        self.assertEqual(metadata.get_field("Multi File").data_type, DataType.BOOLEAN)
        self.assertEqual(metadata.get("Num Scans"), 16.0)
        self.assertEqual(context.trace.get("spc_subfile:0"), 512)

    def test_multi_file(self):
        buf = build_spc([[1.0, 2.0], [3.0, 4.0]], 100.0, 200.0)
        spectra, context = self.decode(buf)
        self.assertEqual([s.id for s in spectra], ["sample-0", "sample-1"])
        self.assertEqual(spectra[1].amplitudes.tolist(), [3.0, 4.0])
        self.assertEqual(spectra[1].metadata.get("SubFile Index"), 1.0)
        self.assertTrue(spectra[0].metadata.get("Multi File"))
        self.assertNotIn("First X", spectra[0].metadata)
        self.assertEqual(context.trace.get("spc_subfile:1"), 512 + 32 + 8)

    def test_log_block(self):
        log = "SCANS = 32\r\nOPERATOR = Jane\r\nIRMODE = 2\r\nFID = maybe\r\nXTYPE = 1\r\nnot a pair"
        spectra, context = self.decode(build_spc([[1.0, 2.0]], 1.0, 2.0, log=log))
        metadata = spectra[0].metadata
        self.assertEqual(metadata.get_field("Log.SCANS").data_type, DataType.NUMERIC)
        self.assertEqual(metadata.get("Log.SCANS"), 32.0)
        self.assertEqual(metadata.get("Log.OPERATOR"), "Jane")
        self.assertEqual(metadata.get("Log.IRMODE"), "Mid-IR mode")
        self.assertEqual(metadata.get("Log.XTYPE"), "Wavenumber (cm-1)")
        # kept as text when the declared type does not parse
        self.assertEqual(metadata.get_field("Log.FID").data_type, DataType.STRING)
        self.assertEqual(metadata.get("Log.FID"), "maybe")
        self.assertEqual([d.kind for d in context.diagnostics], ["MalformedMetadataEntry"])

    def test_invalid_date_is_dropped(self):
        buf = build_spc([[1.0]], 1.0, 1.0, date=pack_spc_date(2021, 13, 1, 0, 0))
        spectra, context = self.decode(buf)
        self.assertNotIn("Collection Date", spectra[0].metadata)
        self.assertEqual(len(context.diagnostics), 1)

    def test_zero_subfile_count_reads_one(self):
        buf = bytearray(build_spc([[1.0, 2.0]], 1.0, 2.0))
        buf[24:28] = b"\x00\x00\x00\x00"
        spectra, _ = self.decode(bytes(buf))
        self.assertEqual(len(spectra), 1)
        self.assertEqual(spectra[0].id, "sample")

    def test_non_float_y_values(self):
        buf = build_spc([[1.0]], 1.0, 1.0, exponent=0x00)
        with self.assertRaises(UnsupportedVariantError) as ctx:
            self.decode(buf)
        self.assertEqual(ctx.exception.phase, SpcPhase.HEADER)
        self.assertIn("IEEE 32bit floats", ctx.exception.message)

    def test_unique_x_and_uneven_x(self):
        for flags in (0x40, 0x80):
            with self.assertRaises(UnsupportedVariantError):
                self.decode(build_spc([[1.0]], 1.0, 1.0, flags=flags))

    def test_truncated_subfile(self):
        buf = build_spc([[1.0, 2.0, 3.0]], 1.0, 3.0)[:-4]
        with self.assertRaises(OutOfBoundsError) as ctx:
            self.decode(buf)
        self.assertEqual(ctx.exception.phase, SpcPhase.SUBFILES)

    def test_short_header(self):
        with self.assertRaises(MissingMandatoryBlockError):
            self.decode(bytes(100))


class SpcHeaderTest(TestCase):

    def test_custom_axis_labels(self):
        header = build_spc_header(1, 1.0, 1.0, flags=0x20)
        header[218:228] = b"Nm\x00Refl\x00\x00\x00"
        parsed = parse_header(bytes(header))
        self.assertEqual(parsed.x_axis, "Nm")
        self.assertEqual(parsed.y_axis, "Refl")
        self.assertEqual(parsed.z_axis, "")

    def test_labels(self):
        self.assertEqual(axis_label(0x80, "y"), "Transmission")
        self.assertEqual(axis_label(15, "x"), "Unknown x axis type: 0x0F")
        self.assertEqual(experiment_type_label(0x20), "Unknown type; 0x20")
        with self.assertRaises(ValueError):
            axis_label(1, "q")
