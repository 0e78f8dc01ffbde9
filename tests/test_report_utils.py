"""
test_report_utils.py

Smoke tests for the PDF export: the file is written into reports/ and
is a PDF, for both complete and nearly empty analyses.
"""

import os
import tempfile
import unittest

from fakes import SAMPLE_ANALYSIS
from report_utils import export_analysis_pdf


class TestExportAnalysisPdf(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.old_cwd = os.getcwd()
        os.chdir(self.tmp.name)

    def tearDown(self):
        os.chdir(self.old_cwd)
        self.tmp.cleanup()

    def assertIsPdf(self, path):
        self.assertTrue(os.path.exists(path))
        with open(path, "rb") as f:
            self.assertEqual(f.read(5), b"%PDF-")

    def test_full_report(self):
        path = export_analysis_pdf("shop api", SAMPLE_ANALYSIS, owner="alice")

        self.assertEqual(os.path.dirname(path), "reports")
        self.assertTrue(os.path.basename(path).startswith("shop_api-analysis-report_"))
        self.assertIsPdf(path)

    def test_fallback_report_with_custom_name(self):
        path = export_analysis_pdf("p", SAMPLE_ANALYSIS, is_fallback=True, output_name="fallback.pdf")
        self.assertEqual(path, os.path.join("reports", "fallback.pdf"))
        self.assertIsPdf(path)

    def test_empty_analysis(self):
        self.assertIsPdf(export_analysis_pdf("empty", {}))

    def test_long_report_spans_pages(self):
        result = {
            "overall_debt_score": 80,
            "file_analyses": [
                {"file_path": f"f{i}.py", "debt_score": 80,
                 "issues": [{"type": "Smell", "severity": "high", "description": "x " * 200}]}
                for i in range(40)
            ],
        }
        self.assertIsPdf(export_analysis_pdf("long", result))


if __name__ == "__main__":
    unittest.main()
