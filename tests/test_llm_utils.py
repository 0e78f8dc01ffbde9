"""
test_llm_utils.py

Tests for prompt construction, response parsing, the fallback report and
the analyze_codebase() orchestrator.

The orchestrator tests use a real GeminiClient wired to FakeSession, so
retries, rotation and the fallback path run exactly as in production,
just without network or sleeping.
"""

import json
import random
import unittest

from errors import ConfigurationError, EmptyResponseError, MalformedResponseError
from fakes import SAMPLE_ANALYSIS, FakeResponse, FakeSession, connection_error, gemini_envelope, throttled
from gemini_client import GeminiClient
from llm_utils import (
    FALLBACK_FILE_BAND,
    FALLBACK_MAX_FILES,
    FALLBACK_OVERALL_BAND,
    MAX_FILE_CHARS,
    MAX_PROMPT_FILES,
    SOURCE_FALLBACK,
    SOURCE_GENUINE,
    analyze_codebase,
    build_prompt,
    extract_json,
    file_extension,
    parse_response,
    select_files,
    synthesize_fallback,
)
from rate_limit import KeyRotator, RateLimiter


def fake_client(keys, script):
    session = FakeSession(script)
    client = GeminiClient(
        KeyRotator(keys),
        limiter=RateLimiter(min_interval=0.0, sleep=lambda s: None),
        session=session,
        sleep=lambda s: None,
    )
    return client, session


def sent_prompt(session):
    return session.calls[0]["json"]["contents"][0]["parts"][0]["text"]


class TestPromptConstruction(unittest.TestCase):

    def test_file_extension(self):
        self.assertEqual(file_extension("src/App.TSX"), "tsx")
        self.assertEqual(file_extension("Makefile"), "")
        self.assertEqual(file_extension("dir.v2/readme"), "")
        self.assertEqual(file_extension("C:\\proj\\main.py"), "py")

    def test_disallowed_extensions_are_excluded(self):
        files = [{"path": "a.ts", "content": "x"}, {"path": "a.png", "content": "y"}]

        selected = select_files(files)
        prompt = build_prompt(selected)

        self.assertEqual([f["path"] for f in selected], ["a.ts"])
        self.assertIn("a.ts", prompt)
        self.assertNotIn("a.png", prompt)

    def test_only_first_twenty_allowed_files_in_input_order(self):
        files = []
        for i in range(30):
            files.append({"path": f"skip{i}.md", "content": "doc"})
            files.append({"path": f"f{i:02d}.py", "content": "pass"})

        selected = select_files(files)

        self.assertEqual(len(selected), MAX_PROMPT_FILES)
        self.assertEqual([f["path"] for f in selected], [f"f{i:02d}.py" for i in range(20)])

        prompt = build_prompt(selected)
        self.assertIn("=== f19.py ===", prompt)
        self.assertNotIn("f20.py", prompt)

    def test_content_is_truncated(self):
        selected = select_files([{"path": "big.go", "content": "a" * 5000 + "TAIL"}])
        self.assertEqual(len(selected[0]["content"]), MAX_FILE_CHARS)
        self.assertNotIn("TAIL", build_prompt(selected))

    def test_prompt_has_instructions_and_output_shape(self):
        prompt = build_prompt([{"path": "main.rs", "content": "fn main() {}"}])
        self.assertIn("senior software engineer", prompt)
        self.assertIn("fn main() {}", prompt)
        self.assertIn('"overall_debt_score": number', prompt)
        self.assertIn('"recommendations"', prompt)


class TestResponseParsing(unittest.TestCase):

    def test_json_inside_markdown_fence(self):
        text = "Here is the analysis:\n```json\n" + json.dumps(SAMPLE_ANALYSIS) + "\n```\nThanks!"
        self.assertEqual(parse_response(gemini_envelope(text)), SAMPLE_ANALYSIS)

    def test_no_braces_is_malformed(self):
        with self.assertRaises(MalformedResponseError):
            parse_response(gemini_envelope("I could not analyze this code."))

    def test_invalid_json_is_malformed(self):
        with self.assertRaises(MalformedResponseError):
            extract_json("{ overall_debt_score: fifty }")

    def test_deeply_nested_json_is_malformed(self):
        text = '{"a":' * 3000 + "1" + "}" * 3000
        with self.assertRaises(MalformedResponseError):
            extract_json(text)

    def test_missing_candidates_is_empty(self):
        for raw in ({}, {"candidates": []}, {"candidates": [{"content": {"parts": []}}]}, None):
            with self.assertRaises(EmptyResponseError):
                parse_response(raw)

    def test_blank_text_is_empty(self):
        with self.assertRaises(EmptyResponseError):
            parse_response(gemini_envelope("   "))

    def test_no_schema_validation(self):
        self.assertEqual(parse_response(gemini_envelope('{"summary": "only this"}')), {"summary": "only this"})


class TestFallback(unittest.TestCase):

    def test_shape_and_bands(self):
        files = [{"path": f"f{i}.py"} for i in range(12)]

        for seed in range(20):
            result = synthesize_fallback(files, rng=random.Random(seed))

            lo, hi = FALLBACK_OVERALL_BAND
            self.assertTrue(lo <= result["overall_debt_score"] <= hi)
            self.assertLessEqual(len(result["file_analyses"]), FALLBACK_MAX_FILES)
            self.assertEqual(len(result["recommendations"]), 3)
            self.assertIn("12", result["summary"])

            for f in result["file_analyses"]:
                self.assertTrue(FALLBACK_FILE_BAND[0] <= f["debt_score"] <= FALLBACK_FILE_BAND[1])
                self.assertIn(len(f["issues"]), (1, 2))

    def test_file_entries_follow_input_order(self):
        files = [{"path": "b.ts"}, {"path": "a.ts"}]
        result = synthesize_fallback(files, rng=random.Random(1))
        self.assertEqual([f["file_path"] for f in result["file_analyses"]], ["b.ts", "a.ts"])

    def test_no_files(self):
        result = synthesize_fallback([])
        self.assertEqual(result["file_analyses"], [])
        self.assertEqual(len(result["recommendations"]), 3)

    def test_templates_are_copied(self):
        first = synthesize_fallback([{"path": "a.py"}], rng=random.Random(0))
        first["recommendations"][0]["description"] = "changed"
        second = synthesize_fallback([{"path": "a.py"}], rng=random.Random(0))
        self.assertNotEqual(second["recommendations"][0]["description"], "changed")


class TestAnalyzeCodebase(unittest.TestCase):

    def test_genuine_result(self):
        text = "```json\n" + json.dumps(SAMPLE_ANALYSIS) + "\n```"
        client, session = fake_client(["k1"], [FakeResponse(200, gemini_envelope(text))])

        outcome = analyze_codebase([{"path": "src/api.ts", "content": "export {}"}], client=client)

        self.assertEqual(outcome.source, SOURCE_GENUINE)
        self.assertFalse(outcome.is_fallback)
        self.assertIsNone(outcome.error)
        self.assertEqual(outcome.result, SAMPLE_ANALYSIS)
        self.assertEqual(outcome.raw_text, text)
        self.assertIn("src/api.ts", sent_prompt(session))

    def test_end_to_end_prompt_excludes_disallowed_files(self):
        client, session = fake_client(["k1"], [FakeResponse(200, gemini_envelope("{}"))])

        analyze_codebase([{"path": "a.ts", "content": "x"}, {"path": "a.png", "content": "y"}], client=client)

        prompt = sent_prompt(session)
        self.assertIn("a.ts", prompt)
        self.assertNotIn("a.png", prompt)

    def test_persistent_throttling_returns_fallback(self):
        files = [{"path": f"mod{i}.py", "content": "x = 1"} for i in range(30)]
        client, session = fake_client(["k1", "k2"], [throttled()])

        outcome = analyze_codebase(files, client=client, rng=random.Random(3))

        self.assertEqual(outcome.source, SOURCE_FALLBACK)
        self.assertTrue(outcome.is_fallback)
        self.assertIn("rate limited", outcome.error)
        self.assertLessEqual(len(outcome.result["file_analyses"]), 8)
        lo, hi = FALLBACK_OVERALL_BAND
        self.assertTrue(lo <= outcome.result["overall_debt_score"] <= hi)
        self.assertEqual(len(session.calls), 5)

    def test_network_failure_returns_fallback(self):
        client, _ = fake_client(["k1"], [connection_error()])
        outcome = analyze_codebase([{"path": "a.py", "content": ""}], client=client)
        self.assertTrue(outcome.is_fallback)

    def test_malformed_output_returns_fallback(self):
        client, _ = fake_client(["k1"], [FakeResponse(200, gemini_envelope("no json here"))])

        outcome = analyze_codebase([{"path": "a.py", "content": ""}], client=client)

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(outcome.raw_text, "no json here")

    def test_deeply_nested_output_returns_fallback(self):
        text = '{"a":' * 3000 + "1" + "}" * 3000
        client, _ = fake_client(["k1"], [FakeResponse(200, gemini_envelope(text))])

        outcome = analyze_codebase([{"path": "a.py", "content": ""}], client=client)

        self.assertEqual(outcome.source, SOURCE_FALLBACK)
        self.assertIn("nested too deeply", outcome.error)

    def test_configuration_error_propagates(self):
        client, _ = fake_client([], [FakeResponse(200, {})])
        with self.assertRaises(ConfigurationError):
            analyze_codebase([{"path": "a.py", "content": ""}], client=client)


if __name__ == "__main__":
    unittest.main()
