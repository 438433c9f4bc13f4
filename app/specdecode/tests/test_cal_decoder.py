from unittest import TestCase
from specdecode.core.exceptions import ValidationException
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.infrastructure.decoders.cal import CalDecoder, CalFile, CalRow
from specdecode.tests.builders import build_cal


def rows():
    return [
        {"id": "S1", "field1": "A1", "amplitudes": [0.5, 0.6, 0.7], "refs": [12.5]},
        {"id": "S2", "deleted": True},
        {"id": "S3", "field1": "A3", "amplitudes": [1.5, 1.6, 1.7], "refs": [0.0]},
        {"id": "S4", "deleted": True},
        {"id": "S5", "field1": "A5", "amplitudes": [2.5, 2.6, 2.7], "refs": [13.0]},
    ]


class CalDecoderTest(TestCase):

    def decode(self, buf, name="/data/wheat.cal", **options):
        context = DecodeContext(source=name)
        return CalDecoder(**options).decode(buf, context, name), context

    def test_header(self):
        cal = CalFile(build_cal(rows()))
        self.assertEqual(cal.count, 3)
        self.assertEqual(cal.deleted, 2)
        self.assertEqual(cal.total, 5)
        self.assertEqual(cal.ref_names, ["Protein"])
        self.assertEqual(cal.block_size, 0x100 + 128 + 128)
        self.assertEqual(cal.wave_numbers().tolist(), [1100.0, 1102.0, 1104.0])

    def test_deleted_rows_are_skipped(self):
        spectra, _ = self.decode(build_cal(rows()))
        self.assertEqual([s.id for s in spectra], ["S1", "S3", "S5"])
        self.assertEqual([s.metadata.get("Deleted Before") for s in spectra], [0.0, 1.0, 2.0])
        self.assertEqual(spectra[0].wave_numbers.tolist(), [1100.0, 1102.0, 1104.0])
        self.assertEqual(spectra[2].amplitudes.tolist()[0], 2.5)
        self.assertEqual(spectra[0].metadata.get("Sample Type"), "7")

    def test_reference_values(self):
        spectra, _ = self.decode(build_cal(rows()))
        self.assertEqual(spectra[0].metadata.get("protein"), 12.5)
        self.assertNotIn("protein", spectra[1].metadata)
        self.assertEqual(spectra[2].metadata.get("protein"), 13.0)

    def test_inconsistent_references_are_ignored(self):
        spectra, context = self.decode(build_cal(rows(), ref_count=2))
        self.assertNotIn("protein", spectra[0].metadata)
        self.assertIn("CountMismatch", [d.kind for d in context.diagnostics])

    def test_start_and_max(self):
        spectra, _ = self.decode(build_cal(rows()), start=2)
        self.assertEqual([s.id for s in spectra], ["S3", "S5"])
        spectra, _ = self.decode(build_cal(rows()), max=1)
        self.assertEqual([s.id for s in spectra], ["S1"])
        with self.assertRaises(ValidationException):
            self.decode(build_cal(rows()), start=0)

    def test_id_and_type_fields(self):
        spectra, _ = self.decode(build_cal(rows()), id_field="Field1", type_field="ID")
        self.assertEqual([s.id for s in spectra], ["A1", "A3", "A5"])
        self.assertEqual(spectra[0].metadata.get("Sample Type"), "S1")

    def test_prefix_id_uses_row_number(self):
        spectra, _ = self.decode(build_cal(rows()), id_field="X-", type_field="Wheat")
        self.assertEqual([s.id for s in spectra], ["X-wheat.cal1", "X-wheat.cal2", "X-wheat.cal3"])
        self.assertEqual(spectra[0].metadata.get("Sample Type"), "Wheat")

    def test_rows_without_id_are_skipped(self):
        data = rows()
        data[2]["id"] = ""
        spectra, context = self.decode(build_cal(data))
        self.assertEqual([s.id for s in spectra], ["S1", "S5"])
        self.assertEqual(len(context.diagnostics), 1)

    def test_unevenly_spaced_axis_falls_back_to_index(self):
        spectra, context = self.decode(build_cal(rows(), wave_type=0))
        self.assertEqual(spectra[0].wave_numbers.tolist(), [0.0, 1.0, 2.0])
        self.assertEqual(len(context.diagnostics), 3)

    def test_row_num(self):
        row = CalRow(index=4, id="S5", product_code=7, id1="", id2="", id3="", deleted=False, num_deleted=2)
        self.assertEqual(row.row_num, 3)
