# llm_utils.py
#
# Purpose:
# This file is the "LLM analysis" layer of DebtLens.
# It takes uploaded source files, builds one prompt, sends it through
# GeminiClient, and turns the model output into an analysis dict:
#
#   {
#     "overall_debt_score": 0-100,
#     "summary": "...",
#     "file_analyses": [{"file_path", "debt_score", "issues": [...]}, ...],
#     "recommendations": [{"category", "priority", "description", "impact"}, ...]
#   }
#
# analyze_codebase() never raises for a failed analysis. If the API call or
# the parsing fails, it returns a placeholder report built by
# synthesize_fallback() and marks it with source="fallback" so the UI and
# the database can tell it apart from a real one.
# The only error that gets through is ConfigurationError (no API keys).

import json
import random
import re
from dataclasses import dataclass
from typing import Optional

import requests

from errors import AnalysisError, EmptyResponseError, MalformedResponseError
from gemini_client import get_default_client
from log_utils import get_logger

logger = get_logger("llm")

# Only these extensions are sent to the model.
ANALYSIS_EXTENSIONS = (
    "js", "ts", "jsx", "tsx", "py", "java", "cpp", "c", "cs", "php", "rb", "go", "rs",
)

# Prompt size limits.
MAX_PROMPT_FILES = 20
MAX_FILE_CHARS = 2000

SOURCE_GENUINE = "genuine"
SOURCE_FALLBACK = "fallback"

SYSTEM_PROMPT = """You are a senior software engineer and code quality expert. Analyze the provided codebase for technical debt and code quality issues.

Focus on:
1. Code complexity and maintainability
2. Code smells and anti-patterns
3. Architecture and design issues
4. Missing or inadequate tests
5. Security vulnerabilities
6. Performance issues
7. Documentation quality

For each file, provide:
- A debt score (0-100, where 0 is perfect and 100 is extremely problematic)
- Specific issues with severity levels
- Actionable suggestions for improvement

Provide an overall assessment with:
- Overall debt score for the entire codebase
- Summary of main issues
- Prioritized recommendations

Return your analysis in valid JSON format matching the schema below."""

OUTPUT_FORMAT = """{
  "overall_debt_score": number,
  "summary": "string",
  "file_analyses": [
    {
      "file_path": "string",
      "debt_score": number,
      "issues": [
        {
          "type": "string",
          "severity": "low|medium|high",
          "description": "string",
          "line": number,
          "suggestion": "string"
        }
      ]
    }
  ],
  "recommendations": [
    {
      "category": "string",
      "priority": "low|medium|high",
      "description": "string",
      "impact": "string"
    }
  ]
}"""


@dataclass
class AnalysisOutcome:
    """
    Result of analyze_codebase().

    result   -- the analysis dict (always well-formed enough to render)
    source   -- "genuine" (parsed from the model) or "fallback" (synthesized)
    error    -- why the fallback was used, None for genuine results
    raw_text -- model text, kept for the debug view
    """

    result: dict
    source: str = SOURCE_GENUINE
    error: Optional[str] = None
    raw_text: str = ""

    @property
    def is_fallback(self):
        return self.source == SOURCE_FALLBACK


# ----------------------------
# Prompt construction
# ----------------------------
def file_extension(path):
    """Lower-case extension without the dot, or "" when there is none."""
    name = (path or "").replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_analyzable(path):
    return file_extension(path) in ANALYSIS_EXTENSIONS


def select_files(files, max_files=MAX_PROMPT_FILES, max_chars=MAX_FILE_CHARS):
    """
    Pick the files that go into the prompt.

    Steps (in this order):
    1) keep only analyzable extensions
    2) keep the first max_files in input order
    3) cut each content down to max_chars characters
    """
    kept = []
    for f in (files or []):
        path = f.get("path") or ""
        if not is_analyzable(path):
            continue
        kept.append({"path": path, "content": (f.get("content") or "")[:max_chars]})
        if len(kept) >= max_files:
            break
    return kept


def build_prompt(selected_files):
    """Assemble the full prompt from already-selected files."""
    blocks = []
    for f in selected_files:
        blocks.append(f"\n=== {f['path']} ===\n{f['content']}\n")
    codebase = "\n".join(blocks)

    return (
        f"{SYSTEM_PROMPT}\n\n"
        f"Analyze this codebase:\n\n"
        f"{codebase}\n\n"
        f"Provide your analysis in the following JSON format:\n"
        f"{OUTPUT_FORMAT}"
    )


# ----------------------------
# Response parsing
# ----------------------------
def extract_candidate_text(raw_response):
    """
    Return candidates[0].content.parts[0].text, or "" if any level is missing.
    """
    if not isinstance(raw_response, dict):
        return ""
    try:
        text = raw_response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


def extract_json(text):
    """
    Find the JSON object inside free-form model output.

    The model often wraps JSON in ```json fences or adds a sentence before it.
    The match is greedy (first "{" to last "}"), so nested objects stay intact.
    """
    m = re.search(r"\{.*\}", text or "", flags=re.DOTALL)
    if not m:
        raise MalformedResponseError("No JSON object found in model output.")

    try:
        return json.loads(m.group(0))
    except ValueError as e:
        raise MalformedResponseError(f"Model output contained invalid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedResponseError("Model output JSON is nested too deeply to parse.") from e


def parse_response(raw_response):
    """Turn the Gemini envelope into an analysis dict (no schema validation)."""
    text = extract_candidate_text(raw_response)
    if not text.strip():
        raise EmptyResponseError("No analysis text received from Gemini.")
    return extract_json(text)


# ----------------------------
# Fallback
# ----------------------------
FALLBACK_OVERALL_BAND = (40, 70)
FALLBACK_FILE_BAND = (30, 70)
FALLBACK_MAX_FILES = 8

FALLBACK_ISSUES = [
    {
        "type": "Code Complexity",
        "severity": "medium",
        "description": "Function complexity could be reduced",
        "suggestion": "Consider breaking down large functions into smaller, more focused ones",
    },
    {
        "type": "Documentation",
        "severity": "low",
        "description": "Public functions lack descriptive comments",
        "suggestion": "Document inputs, outputs and side effects of exported functions",
    },
    {
        "type": "Error Handling",
        "severity": "medium",
        "description": "Errors are not handled consistently",
        "suggestion": "Handle failure cases explicitly and surface useful error messages",
    },
    {
        "type": "Testing",
        "severity": "high",
        "description": "No automated tests cover this module",
        "suggestion": "Add unit tests for the main code paths",
    },
]

FALLBACK_RECOMMENDATIONS = [
    {
        "category": "Code Quality",
        "priority": "high",
        "description": "Implement consistent code formatting and linting",
        "impact": "Improves code readability and reduces maintenance burden",
    },
    {
        "category": "Testing",
        "priority": "medium",
        "description": "Increase automated test coverage for core modules",
        "impact": "Catches regressions early and makes refactoring safer",
    },
    {
        "category": "Documentation",
        "priority": "low",
        "description": "Document module responsibilities and public interfaces",
        "impact": "Shortens onboarding time for new contributors",
    },
]


def synthesize_fallback(files, rng=None):
    """
    Build a placeholder analysis with the normal shape.

    files are the selected files (dicts with "path"). Scores are random
    inside FALLBACK_OVERALL_BAND / FALLBACK_FILE_BAND.
    """
    rng = rng or random.Random()
    files = list(files or [])

    file_analyses = []
    for f in files[:FALLBACK_MAX_FILES]:
        issue_count = rng.randint(1, 2)
        issues = [dict(issue) for issue in rng.sample(FALLBACK_ISSUES, issue_count)]
        file_analyses.append({
            "file_path": f.get("path", ""),
            "debt_score": rng.randint(*FALLBACK_FILE_BAND),
            "issues": issues,
        })

    return {
        "overall_debt_score": rng.randint(*FALLBACK_OVERALL_BAND),
        "summary": (
            f"Analysis completed with limited data due to API constraints. "
            f"Reviewed {len(files)} file(s); the codebase shows moderate technical debt."
        ),
        "file_analyses": file_analyses,
        "recommendations": [dict(r) for r in FALLBACK_RECOMMENDATIONS],
    }


# ----------------------------
# Orchestrator
# ----------------------------
def analyze_codebase(files, client=None, rng=None):
    """
    Analyze uploaded files and return an AnalysisOutcome.

    files: list of {"path": str, "content": str}
    client: a GeminiClient; defaults to the environment-configured one

    Raises ConfigurationError when no API keys are configured. Every other
    failure is logged and turned into a fallback outcome.
    """
    client = client or get_default_client()

    selected = select_files(files)
    prompt = build_prompt(selected)
    logger.info("Analyzing %d of %d file(s) (%d prompt chars)", len(selected), len(files or []), len(prompt))

    raw_text = ""
    try:
        raw_response = client.execute(prompt)
        raw_text = extract_candidate_text(raw_response)
        result = parse_response(raw_response)
    except (AnalysisError, requests.RequestException) as e:
        logger.error("Gemini analysis failed, using fallback report: %r", e)
        return AnalysisOutcome(
            result=synthesize_fallback(selected, rng=rng),
            source=SOURCE_FALLBACK,
            error=str(e),
            raw_text=raw_text,
        )

    return AnalysisOutcome(result=result, source=SOURCE_GENUINE, raw_text=raw_text)
