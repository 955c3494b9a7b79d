"""Prompt fragments and parsing of AI replies for categorising, test generation and verdicts."""

from __future__ import annotations

from dataclasses import dataclass

CATEGORIES = ("BUG", "FEATURE", "QUESTION", "DOCS")

ALL_VERDICTS = (
    "BUG_CONFIRMED",
    "NOT_A_BUG",
    "NOT_REPRODUCIBLE",
    "FEATURE_REQUEST",
    "ERROR",
    "INCONCLUSIVE",
    "BUG_FIXED",
    "BUG_REGRESSION",
)


@dataclass
class VerdictResult:
    """The AI's verdict on test results."""

    text: str = ""
    verdict: str = ""
    confidence: str = ""


def parse_category(content: str) -> str:
    """Return BUG, FEATURE, QUESTION or DOCS from a categorisation reply."""
    upper = content.upper()
    for line in upper.split("\n"):
        if "CATEGORY:" in line:
            for cat in CATEGORIES:
                if cat in line:
                    return cat
    for cat in ("FEATURE", "QUESTION", "DOCS"):
        if cat in upper:
            return cat
    return "BUG"


def parse_verdict_response(content: str) -> VerdictResult:
    """Extract verdict and confidence from the AI's summary of test results."""
    if not content:
        return VerdictResult(verdict="ERROR", confidence="LOW")

    result = VerdictResult(text=content, verdict="NOT_REPRODUCIBLE", confidence="MEDIUM")
    upper = content.upper()
    for line in upper.split("\n"):
        if "VERDICT:" in line:
            found = next((v for v in ALL_VERDICTS if v in line), None)
            if found:
                result.verdict = found
        if "CONFIDENCE:" in line:
            found = next((c for c in ("HIGH", "LOW", "MEDIUM") if c in line), None)
            if found:
                result.confidence = found

    if result.verdict == "NOT_REPRODUCIBLE":
        fallbacks = (
            ("INCONCLUSIVE", ("INCONCLUSIVE",)),
            ("BUG_REGRESSION", ("BUG_REGRESSION", "BUG REGRESSION")),
            ("BUG_FIXED", ("BUG_FIXED", "BUG FIXED")),
            ("BUG_CONFIRMED", ("BUG_CONFIRMED", "BUG CONFIRMED")),
            ("NOT_A_BUG", ("NOT_A_BUG", "NOT A BUG")),
        )
        for verdict, keywords in fallbacks:
            if any(k in upper for k in keywords):
                result.verdict = verdict
                break
    return result


def verdict_options(issue_state: str) -> str:
    """Return the list of allowed verdicts for an open or closed issue."""
    if issue_state == "closed":
        return (
            "Use EXACTLY one of these verdicts:\n"
            "- BUG_FIXED — the issue was closed and the fix appears correct (tests pass)\n"
            "- BUG_REGRESSION — the issue was closed but the bug STILL exists (tests fail)\n"
            "- NOT_REPRODUCIBLE — tests ran but could not trigger the bug either way\n"
            "- INCONCLUSIVE — test infrastructure failed (script crashed, server unreachable, etc.)\n"
        )
    return (
        "Use EXACTLY one of these verdicts:\n"
        "- BUG_CONFIRMED — tests prove the bug exists\n"
        "- NOT_A_BUG — tests prove behavior is correct\n"
        "- NOT_REPRODUCIBLE — tests ran but could not trigger the bug\n"
        "- INCONCLUSIVE — test infrastructure failed (script crashed, server unreachable, etc.)\n"
    )


def state_context(issue_state: str) -> str:
    """Return the prompt line describing the issue's state."""
    if issue_state == "closed":
        return "\nThis issue is CLOSED (presumably fixed). Analyze whether the fix is correct.\n"
    return "\nThis is an OPEN issue.\n"


def server_context(server_url: str) -> str:
    """Return the prompt section about a running server, or an empty string."""
    if not server_url:
        return ""
    return (
        "\n\nThe server is already running. Check health with:\n"
        f'  requests.get("{server_url}/health", timeout=5)\n\n'
        "If the health check succeeds (HTTP 200), proceed directly to testing.\n"
        "If the health check fails, you may need to start the server first.\n"
        "Environment: PYTHONUSERBASE=/tmp/pip-user PATH=/tmp/pip-user/bin:$PATH\n\n"
        "Always check health before installing. Never install if the server is already running.\n"
    )


def build_regenerate_prompt(title: str, body: str, script: str, error_output: str) -> str:
    """Return the prompt asking the AI to fix a crashed test script."""
    return (
        "Your previous Python test script crashed. Fix it.\n\n"
        f"Bug report:\nTitle: {title}\nBody: {body}\n\n"
        f"Original script:\n```python\n{script}\n```\n\n"
        f"Error output:\n```\n{error_output}\n```\n\n"
        "Generate a fixed Python test script that avoids this error.\n"
        'Each test must print a JSON line: {"test": "name", "status": "pass|fail", "details": "..."}\n'
        "Handle errors gracefully — report them as test results, don't crash.\n"
        "Output ONLY the Python script, no explanation."
    )


def parse_critique(script: str, content: str) -> str:
    """Return the original script if approved, otherwise the corrected one."""
    content = content.strip()
    if not content or content.upper() == "APPROVED":
        return script
    return strip_code_fences(content)


def strip_code_fences(content: str) -> str:
    """Drop every line that opens or closes a markdown code fence."""
    return "\n".join(line for line in content.split("\n") if not line.strip().startswith("```"))