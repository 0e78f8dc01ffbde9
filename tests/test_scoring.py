"""
test_scoring.py

Unit tests for scoring.py: score conversion, debt labels and
normalize_analysis(), which has to survive whatever shape the model
(or the fallback generator) hands back.
"""

import json
import unittest

from fakes import SAMPLE_ANALYSIS
from scoring import clamp, debt_color, debt_level, normalize_analysis, to_score


class TestScores(unittest.TestCase):

    def test_clamp(self):
        self.assertEqual(clamp(-5), 0)
        self.assertEqual(clamp(150), 100)
        self.assertEqual(clamp(42), 42)

    def test_to_score(self):
        self.assertEqual(to_score("73"), 73)
        self.assertEqual(to_score(64.6), 65)
        self.assertEqual(to_score(250), 100)
        self.assertIsNone(to_score("high"))
        self.assertIsNone(to_score(None))
        # True is an int in Python but is not a score
        self.assertEqual(to_score(True, default=0), 0)

    def test_to_score_infinity(self):
        # json.loads turns 1e999 and Infinity into float("inf")
        self.assertIsNone(to_score(float("inf")))
        self.assertIsNone(to_score(float("-inf")))
        self.assertIsNone(to_score(float("nan")))
        self.assertEqual(to_score(json.loads("1e999"), default=0), 0)

    def test_debt_level_thresholds(self):
        self.assertEqual(debt_level(70), "High")
        self.assertEqual(debt_level(69), "Moderate")
        self.assertEqual(debt_level(40), "Moderate")
        self.assertEqual(debt_level(39), "Low")
        self.assertEqual(debt_level(None), "Unknown")

    def test_debt_color(self):
        self.assertEqual(debt_color(90), "#EF4444")
        self.assertEqual(debt_color(10), "#22C55E")
        self.assertEqual(debt_color("n/a"), "#94A3B8")


class TestNormalizeAnalysis(unittest.TestCase):

    def test_well_formed_result_keeps_its_values(self):
        result = normalize_analysis(SAMPLE_ANALYSIS)

        self.assertEqual(result["overall_debt_score"], 62)
        self.assertEqual(result["summary"], SAMPLE_ANALYSIS["summary"])
        self.assertEqual(result["file_analyses"][0]["issues"][0]["line"], 12)
        self.assertEqual(result["recommendations"][0]["priority"], "high")

    def test_empty_or_invalid_input(self):
        for raw in (None, "text", [], {}):
            result = normalize_analysis(raw)
            self.assertEqual(result["overall_debt_score"], 0)
            self.assertEqual(result["file_analyses"], [])
            self.assertEqual(result["recommendations"], [])
            self.assertEqual(result["summary"], "")

    def test_missing_overall_score_uses_file_mean(self):
        result = normalize_analysis({
            "file_analyses": [
                {"file_path": "a.py", "debt_score": 20},
                {"file_path": "b.py", "debt_score": "60"},
            ]
        })
        self.assertEqual(result["overall_debt_score"], 40)

    def test_file_analyses_keyed_by_path(self):
        result = normalize_analysis({
            "overall_debt_score": 10,
            "file_analyses": {"a.py": {"file_path": "a.py", "debt_score": 10, "issues": []}},
        })
        self.assertEqual(result["file_analyses"][0]["file_path"], "a.py")

    def test_loose_issue_and_recommendation_values(self):
        result = normalize_analysis({
            "overall_debt_score": 50,
            "file_analyses": [{
                "path": "x.js",
                "debt_score": 55,
                "issues": ["plain string issue", {"severity": "Critical", "line": "n/a"}],
            }],
            "recommendations": ["Write tests", {"priority": "minor", "description": "Rename"}],
        })

        f = result["file_analyses"][0]
        self.assertEqual(f["file_path"], "x.js")
        self.assertEqual(f["issues"][0]["description"], "plain string issue")
        self.assertEqual(f["issues"][1]["severity"], "high")
        self.assertIsNone(f["issues"][1]["line"])
        self.assertEqual(result["recommendations"][0]["description"], "Write tests")
        self.assertEqual(result["recommendations"][1]["priority"], "low")

    def test_infinite_values_from_model_json(self):
        raw = json.loads(
            '{"overall_debt_score": 1e999, "file_analyses": ['
            '{"file_path": "a.py", "debt_score": Infinity, "issues": [{"line": 1e999}]},'
            '{"file_path": "b.py", "debt_score": 60}]}'
        )

        result = normalize_analysis(raw)

        self.assertEqual(result["file_analyses"][0]["debt_score"], 0)
        self.assertIsNone(result["file_analyses"][0]["issues"][0]["line"])
        # unreadable overall score -> mean of the file scores
        self.assertEqual(result["overall_debt_score"], 30)

    def test_input_is_not_modified(self):
        raw = {"overall_debt_score": "80", "file_analyses": []}
        normalize_analysis(raw)
        self.assertEqual(raw["overall_debt_score"], "80")


if __name__ == "__main__":
    unittest.main()
