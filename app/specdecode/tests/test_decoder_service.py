import os
import tempfile
from unittest import TestCase
from specdecode.config.settings import get_settings
from specdecode.core.exceptions import (
    ConfigurationException,
    FileNotFoundException,
    FileReadException,
    UnsupportedFormatError,
    ValidationException,
)
from specdecode.domain.services.batch_decoding_service import BatchDecodingService
from specdecode.domain.services.decoder_service import DecoderService
from specdecode.domain.services.format_detection import detect_format
from specdecode.infrastructure.decoders import DecoderFactory, RelabDecoder, SpcDecoder, SpecLibDecoder
from specdecode.infrastructure.storage.file_spectrum_repository import FileSpectrumRepository
from specdecode.tests.builders import build_asc, build_cal, build_opus, build_spa, build_spc


class FormatDetectionTest(TestCase):

    def test_magic_wins_over_extension(self):
        self.assertEqual(detect_format("sample.spc", build_opus([1.0], 1.0, 1.0)), "opus")

    def test_extensions(self):
        self.assertEqual(detect_format("a.SPC", b""), "spc")
        self.assertEqual(detect_format("a.spa", b""), "spa")
        self.assertEqual(detect_format("a.cal", b""), "cal")
        self.assertEqual(detect_format("a.asc", b""), "asc")

    def test_opus_without_magic(self):
        self.assertEqual(detect_format("sample.0", build_opus([1.0], 1.0, 1.0, magic=False)), "opus")

    def test_no_extension_is_asc(self):
        self.assertEqual(detect_format("sample", build_asc()), "asc")

    def test_unknown(self):
        with self.assertRaises(UnsupportedFormatError):
            detect_format("sample.txt", b"hello")


class DecoderFactoryTest(TestCase):

    def test_get_decoder(self):
        settings = get_settings()
        decoder = DecoderFactory(settings).get_decoder("SPC")
        self.assertIsInstance(decoder, SpcDecoder)
        self.assertIs(decoder.config, settings)

    def test_unsupported(self):
        with self.assertRaises(UnsupportedFormatError) as ctx:
            DecoderFactory().get_decoder("jcamp")
        self.assertIn("opus", ctx.exception.message)

    def test_text_variants_by_name(self):
        factory = DecoderFactory()
        self.assertIsInstance(factory.get_decoder("relab"), RelabDecoder)
        self.assertIsInstance(factory.get_decoder("SpecLib"), SpecLibDecoder)
        self.assertIn("speclib", DecoderFactory.supported_formats())

    def test_options_override_settings(self):
        decoder = DecoderFactory(get_settings(opus_sample_id_key="CNM")).get_decoder("opus", sample_id_key="XYZ")
        self.assertEqual(decoder.option("sample_id_key", "opus_sample_id_key"), "XYZ")
        decoder = DecoderFactory(get_settings(opus_sample_id_key="CNM")).get_decoder("opus")
        self.assertEqual(decoder.option("sample_id_key", "opus_sample_id_key"), "CNM")


class DecoderServiceTest(TestCase):

    def setUp(self):
        self.settings = get_settings()
        self.service = DecoderService(settings=self.settings, file_repo=FileSpectrumRepository(self.settings))

    def test_decode_detects_format(self):
        result = self.service.decode(build_spc([[1.0, 2.0]], 1.0, 2.0), name="run.spc")
        self.assertTrue(result.ok)
        self.assertEqual(result.spectra[0].id, "run")
        self.assertEqual(result.trace["spc_num_files"], 1)

    def test_decode_failure_is_a_result(self):
        result = self.service.decode(build_opus([1.0], 1.0, 1.0, with_npt=False), name="broken.0")
        self.assertFalse(result.ok)
        self.assertEqual(result.diagnostics[-1].kind, "MissingMandatoryBlock")
        self.assertEqual(result.spectra, [])
        self.assertIn("backward_scan:4E505400", result.trace)

    def test_warnings_survive_success(self):
        result = self.service.decode(build_opus([1.0], 1.0, 1.0, text=None), "opus", name="x.0")
        self.assertTrue(result.ok)
        self.assertTrue(all(d.level == "warning" for d in result.diagnostics))
        self.assertGreater(len(result.diagnostics), 0)

    def test_per_call_options(self):
        buf = build_cal([
            {"id": "S1", "amplitudes": [1.0, 2.0, 3.0]},
            {"id": "S2", "amplitudes": [1.0, 2.0, 3.0]},
        ])
        result = self.service.decode(buf, "cal", name="x.cal", start=2)
        self.assertEqual([s.id for s in result.spectra], ["S2"])

    def test_unsupported_format_raises(self):
        with self.assertRaises(UnsupportedFormatError):
            self.service.decode(b"data", name="x.txt")

    def test_decode_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "sample.spa")
            with open(path, "wb") as f:
                f.write(build_spa("From file", [1.0, 2.0], 2.0, 1.0, ""))
            result = self.service.decode_file(path)
        self.assertTrue(result.ok)
        self.assertEqual(result.source, path)
        self.assertEqual(result.spectra[0].id, "From file")

    def test_decode_file_without_repository(self):
        with self.assertRaises(ConfigurationException):
            DecoderService(settings=self.settings).decode_file("x.spc")


class BatchDecodingServiceTest(TestCase):

    def setUp(self):
        settings = get_settings(batch_max_concurrency=2)
        decoder_service = DecoderService(settings=settings, file_repo=FileSpectrumRepository(settings))
        self.service = BatchDecodingService(decoder_service)

    def test_results_keep_input_order(self):
        with tempfile.TemporaryDirectory() as tmp:
            paths = []
            for i in range(4):
                path = os.path.join(tmp, f"s{i}.asc")
                with open(path, "wb") as f:
                    f.write(build_asc())
                paths.append(path)
            paths.insert(2, os.path.join(tmp, "missing.spc"))
            results = self.service.process_batch_sync(paths)

        self.assertEqual([r.source for r in results], paths)
        self.assertEqual([r.ok for r in results], [True, True, False, True, True])
        self.assertIsInstance(results[2].error, FileNotFoundException)

    def test_empty_batch(self):
        self.assertEqual(self.service.process_batch_sync([]), [])
        with self.assertRaises(ValidationException):
            self.service.process_batch_sync(None)

    def test_concurrency_from_settings(self):
        self.assertEqual(self.service.max_concurrency, 2)


class FileSpectrumRepositoryTest(TestCase):

    def test_load_and_list(self):
        repo = FileSpectrumRepository(get_settings())
        with tempfile.TemporaryDirectory() as tmp:
            for name in ("b.spc", "a.SPA", "c.txt"):
                with open(os.path.join(tmp, name), "wb") as f:
                    f.write(b"1234")
            os.mkdir(os.path.join(tmp, "sub.spc"))
            self.assertEqual(repo.load(os.path.join(tmp, "b.spc")), b"1234")
            listed = repo.list_files(tmp, [".spc", ".spa"])
            self.assertEqual([os.path.basename(p) for p in listed], ["a.SPA", "b.spc"])
            self.assertEqual(len(repo.list_files(tmp)), 3)

    def test_errors(self):
        repo = FileSpectrumRepository(get_settings(max_file_size=2))
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "big.spc")
            with open(path, "wb") as f:
                f.write(b"1234")
            with self.assertRaises(FileReadException):
                repo.load(path)
            with self.assertRaises(FileNotFoundException):
                repo.load(os.path.join(tmp, "nope.spc"))
            with self.assertRaises(FileNotFoundException):
                repo.list_files(os.path.join(tmp, "nope"))
