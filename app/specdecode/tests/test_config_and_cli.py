import io
import json
import os
import tempfile
from contextlib import redirect_stdout
from unittest import TestCase, mock
from pydantic import ValidationError
from specdecode.cli import main
from specdecode.config.settings import Settings, get_settings
from specdecode.core.exceptions import CountMismatchError, FileNotFoundException
from specdecode.domain.models.decode_result import DecodeContext, DecodeResult
from specdecode.domain.services.decoder_service import DecoderService
from specdecode.shared.schemas.spectrum import DecodeResultSchema, SpectrumSchema
from specdecode.tests.builders import build_asc, build_spc


class SettingsTest(TestCase):

    def test_defaults(self):
        settings = Settings()
        self.assertEqual(settings.opus_sample_id_key, "SNM")
        self.assertEqual(settings.start, 1)
        self.assertEqual(settings.max_spectra, -1)

    def test_environment_overrides(self):
        with mock.patch.dict(os.environ, {"SPECDECODE_LOG_LEVEL": "debug", "SPECDECODE_CAL_ID_FIELD": "Field2"}):
            settings = get_settings()
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.cal_id_field, "Field2")

    def test_none_overrides_are_ignored(self):
        self.assertEqual(get_settings(start=None).start, 1)

    def test_only_decoding_settings(self):
        for name in ("app_name", "environment", "debug"):
            self.assertNotIn(name, Settings.model_fields)

    def test_invalid_values(self):
        for overrides in ({"start": 0}, {"max_spectra": 0}, {"log_level": "LOUD"}, {"batch_max_concurrency": 0}):
            with self.assertRaises(ValidationError):
                get_settings(**overrides)


class SchemaTest(TestCase):

    def setUp(self):
        self.service = DecoderService(settings=get_settings())

    def test_summary_result(self):
        result = self.service.decode(build_spc([[1.0, 2.0]], 10.0, 20.0), name="a.spc")
        data = DecodeResultSchema.from_domain(result).model_dump()
        self.assertTrue(data["ok"])
        self.assertIsNone(data["trace"])
        self.assertEqual(data["spectra"][0]["num_points"], 2)
        self.assertEqual(data["spectra"][0]["first_wave_number"], 10.0)
        self.assertEqual(data["spectra"][0]["metadata"]["Version"], "4B")

    def test_points_and_trace(self):
        result = self.service.decode(build_asc(), name="a.asc")
        data = DecodeResultSchema.from_domain(result, include_points=True, include_trace=True).model_dump()
        self.assertEqual(data["spectra"][0]["wave_numbers"], [1000.0, 1002.0, 1004.0])
        self.assertEqual(data["trace"], {})

    def test_failure(self):
        error = CountMismatchError(3, 2)
        result = DecodeResult.failure(DecodeContext(source="x"), error)
        data = DecodeResultSchema.from_domain(result).model_dump()
        self.assertFalse(data["ok"])
        self.assertEqual(data["error"], error.message)
        self.assertEqual(data["diagnostics"][0]["kind"], "CountMismatch")

    def test_file_errors_have_a_kind(self):
        result = DecodeResult.failure(DecodeContext(source="x"), FileNotFoundException("x"))
        self.assertEqual(result.diagnostics[0].kind, "FileNotFoundException")

    def test_nan_is_serialized_as_null(self):
        result = self.service.decode(build_asc(points=((1000, "nan"),)), name="a.asc")
        data = SpectrumSchema.from_domain(result.spectra[0]).model_dump()
        self.assertEqual(data["amplitudes"], [None])


class CliTest(TestCase):

    def run_cli(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_json_output(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "sample.asc")
            with open(path, "wb") as f:
                f.write(build_asc())
            code, output = self.run_cli(path, "--json", "--trace")
        self.assertEqual(code, 0)
        payload = json.loads(output)
        self.assertEqual(payload[0]["spectra"][0]["id"], "ASC-1")

    def test_directory_and_failure(self):
        with tempfile.TemporaryDirectory() as tmp:
            with open(os.path.join(tmp, "a.asc"), "wb") as f:
                f.write(build_asc())
            with open(os.path.join(tmp, "b.asc"), "wb") as f:
                f.write(build_asc(declared=7))
            code, output = self.run_cli(tmp)
        self.assertEqual(code, 1)
        lines = [l for l in output.splitlines() if not l.startswith("  ")]
        self.assertEqual(len(lines), 2)
        self.assertIn("OK, 1 spectra [ASC-1]", lines[0])
        self.assertIn("FAILED", lines[1])

    def test_invalid_option(self):
        code, _ = self.run_cli("x.asc", "--start", "0")
        self.assertEqual(code, 2)
