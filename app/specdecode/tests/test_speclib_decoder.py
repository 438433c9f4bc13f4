from unittest import TestCase
from specdecode.core.exceptions import MalformedFileError
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.infrastructure.decoders.speclib import SpecLibDecoder
from specdecode.tests.builders import build_speclib


class SpecLibDecoderTest(TestCase):

    def decode(self, buf, **options):
        context = DecodeContext(source="alunite.asc")
        return SpecLibDecoder(**options).decode(buf, context, "alunite.asc"), context

    def test_decode(self):
        spectra, context = self.decode(build_speclib())
        spectrum = spectra[0]
        self.assertEqual(spectrum.id, "MV00-11a")
        self.assertEqual(spectrum.metadata.get("Comment"), "copy of splib05a r 7203")
        # the -1.23e34 channel falls below the minimum amplitude
        self.assertEqual(len(spectrum), 2)
        self.assertAlmostEqual(spectrum.amplitudes.tolist()[1], 0.170001, places=6)
        self.assertEqual(context.trace.get("speclib_ignored"), 1)

    def test_range_options(self):
        spectra, _ = self.decode(build_speclib(), min_wave_number=0.435, min_amplitude=-1e35)
        self.assertEqual(len(spectra[0]), 2)
        self.assertAlmostEqual(spectra[0].wave_numbers.tolist()[0], 0.44, places=6)

        spectra, _ = self.decode(build_speclib(), max_wave_number=0.43)
        self.assertEqual(len(spectra[0]), 1)

    def test_leading_space_in_title(self):
        spectra, _ = self.decode(build_speclib(title=" Kaolinite CM9"))
        self.assertEqual(spectra[0].id, "Kaolinite")

    def test_missing_separator(self):
        with self.assertRaises(MalformedFileError):
            self.decode(b"Alun_Na MV00-11a\n0.43 0.16 0.0\n")

    def test_title_without_id(self):
        with self.assertRaises(MalformedFileError):
            self.decode(b"-----\nAlunite\n")
