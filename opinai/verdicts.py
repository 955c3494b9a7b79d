"""Verdicts and reports produced by agent investigations and PR reviews."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from opinai.tools import ToolDef, tool_defs

VERDICT_START = "===VERDICT==="
VERDICT_END = "===END_VERDICT==="
PR_VERDICT_START = "===PR_VERDICT==="
PR_VERDICT_END = "===END_PR_VERDICT==="
PR_REVIEW_START = "--- OPINAI PR REVIEW ---"
PR_REVIEW_END = "--- END PR REVIEW ---"
QUESTIONS_START = "--- OPINAI SUGGESTED_QUESTIONS ---"
QUESTIONS_END = "--- END SUGGESTED_QUESTIONS ---"

_VERDICTS = ("BUG_CONFIRMED", "NOT_REPRODUCIBLE", "INCONCLUSIVE")
_CONFIDENCES = ("HIGH", "MEDIUM", "LOW")
_PR_VERDICTS = ("APPROVE", "CHANGES_REQUESTED", "COMMENT")
_RISKS = ("CRITICAL", "HIGH", "MEDIUM", "LOW")


@dataclass
class AgentResult:
    """Outcome of an agent bug investigation."""

    verdict: str = "INCONCLUSIVE"
    confidence: str = "LOW"
    test_script: str = ""
    test_output: str = ""
    report: str = ""
    iterations: int = 0
    tool_calls: int = 0
    files_read: list[str] = field(default_factory=list)


@dataclass
class PRReviewResult:
    """Outcome of an agent pull-request review."""

    verdict: str = "COMMENT"
    risk: str = "LOW"
    review_text: str = ""
    report: str = ""
    suggested_questions: str = ""
    iterations: int = 0
    tool_calls: int = 0
    files_read: list[str] = field(default_factory=list)


def _block(text: str, start: str, end: str) -> str | None:
    idx = text.find(start)
    if idx < 0:
        return None
    block = text[idx:]
    stop = block.find(end)
    return block if stop < 0 else block[:stop]


def _field_value(block: str, key: str, choices: tuple[str, ...], default: str) -> str:
    value = default
    prefix = key + ":"
    for line in block.split("\n"):
        upper = line.strip().upper()
        if upper.startswith(prefix):
            rest = upper[len(prefix):].strip()
            found = next((c for c in choices if c in rest), None)
            if found:
                value = found
    return value


def parse_verdict(text: str) -> tuple[str, str]:
    """Return the (verdict, confidence) stated in an investigation report."""
    block = _block(text, VERDICT_START, VERDICT_END)
    if block is not None:
        return (
            _field_value(block, "VERDICT", _VERDICTS, "INCONCLUSIVE"),
            _field_value(block, "CONFIDENCE", _CONFIDENCES, "LOW"),
        )

    upper = text.upper()
    verdict = "INCONCLUSIVE"
    if "BUG_CONFIRMED" in upper or "BUG CONFIRMED" in upper:
        verdict = "BUG_CONFIRMED"
    elif "NOT_REPRODUCIBLE" in upper or "NOT REPRODUCIBLE" in upper:
        verdict = "NOT_REPRODUCIBLE"

    confidence = "LOW"
    if "CONFIDENCE: HIGH" in upper or "CONFIDENCE:HIGH" in upper:
        confidence = "HIGH"
    elif "CONFIDENCE: MEDIUM" in upper or "CONFIDENCE:MEDIUM" in upper:
        confidence = "MEDIUM"
    return verdict, confidence


def parse_pr_verdict(text: str) -> tuple[str, str]:
    """Return the (verdict, risk) stated in a PR review."""
    block = _block(text, PR_VERDICT_START, PR_VERDICT_END)
    if block is not None:
        return (
            _field_value(block, "VERDICT", _PR_VERDICTS, "COMMENT"),
            _field_value(block, "RISK", _RISKS, "LOW"),
        )

    upper = text.upper()
    verdict = "COMMENT"
    if "CHANGES_REQUESTED" in upper:
        verdict = "CHANGES_REQUESTED"
    elif "APPROVE" in upper:
        verdict = "APPROVE"

    risk = next(
        (r for r in _RISKS if f"RISK: {r}" in upper or f"RISK:{r}" in upper),
        "LOW",
    )
    return verdict, risk


def _between(text: str, start: str, end: str) -> str | None:
    idx = text.find(start)
    if idx < 0:
        return None
    rest = text[idx + len(start):]
    stop = rest.find(end)
    return (rest if stop < 0 else rest[:stop]).strip()


def extract_pr_review(text: str) -> str:
    """Return the review text between the PR review markers, or an empty string."""
    return _between(text, PR_REVIEW_START, PR_REVIEW_END) or ""


def extract_suggested_questions(text: str) -> str:
    """Return the JSON array of suggested follow-up questions, or an empty string."""
    block = _between(text, QUESTIONS_START, QUESTIONS_END)
    if block is None:
        return ""
    try:
        value = json.loads(block)
    except json.JSONDecodeError:
        return ""
    if value is None:
        return block
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return block
    return ""


def tools_for_server(server_url: str) -> list[ToolDef]:
    """Return the agent tools, leaving out server_request when no server runs."""
    tools = tool_defs()
    if server_url:
        return tools
    return [t for t in tools if t.name != "server_request"]


def investigation_message(title: str, body: str, server_url: str) -> str:
    """Return the opening user message of a bug investigation."""
    msg = f"## Bug Report\n\n**Title:** {title}\n\n**Description:**\n{body}"
    if server_url:
        msg += f"\n\nThe server is running at {server_url} — check /health first."
    else:
        msg += (
            "\n\nNo server is running. Use code review (read_file, grep) to investigate the bug. "
            "You can still use run_test to run local test scripts."
        )
    return msg


def review_message(pr_title: str, pr_author: str, server_url: str) -> str:
    """Return the opening user message of a PR review."""
    msg = (
        "Review this pull request.\n\n"
        f"**Title:** {pr_title}\n**Author:** {pr_author}\n\n"
        "The diff and changed files are in the system prompt. Start by reading the changed "
        "files in full context, then investigate."
    )
    if server_url:
        msg += f"\n\nThe server is running at {server_url} with the PR applied — you can test it."
    else:
        msg += "\n\nNo server is running. Focus on code review using read_file, grep, and run_test."
    return msg


def agent_result_from_text(
    final_text: str, iterations: int, tool_calls: int, files_read
) -> AgentResult:
    """Build an AgentResult from the agent's final report."""
    verdict, confidence = parse_verdict(final_text)
    return AgentResult(
        verdict=verdict,
        confidence=confidence,
        report=final_text,
        iterations=iterations,
        tool_calls=tool_calls,
        files_read=list(files_read or []),
    )


def pr_review_result_from_text(
    final_text: str, iterations: int, tool_calls: int, files_read
) -> PRReviewResult:
    """Build a PRReviewResult from the agent's final review."""
    verdict, risk = parse_pr_verdict(final_text)
    return PRReviewResult(
        verdict=verdict,
        risk=risk,
        review_text=extract_pr_review(final_text),
        report=final_text,
        suggested_questions=extract_suggested_questions(final_text),
        iterations=iterations,
        tool_calls=tool_calls,
        files_read=list(files_read or []),
    )