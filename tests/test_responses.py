from opinai.responses import (
    ALL_VERDICTS,
    VerdictResult,
    build_regenerate_prompt,
    parse_category,
    parse_critique,
    parse_verdict_response,
    server_context,
    state_context,
    strip_code_fences,
    verdict_options,
)


def test_parse_category_structured():
    assert parse_category("CATEGORY: FEATURE") == "FEATURE"
    assert parse_category("reasoning...\ncategory: question") == "QUESTION"


def test_parse_category_fallback_and_default():
    assert parse_category("this is about docs") == "DOCS"
    assert parse_category("something is broken") == "BUG"
    assert parse_category("") == "BUG"


def test_parse_verdict_structured():
    content = "Analysis.\nVERDICT: BUG_CONFIRMED\nCONFIDENCE: HIGH"
    result = parse_verdict_response(content)
    assert result == VerdictResult(text=content, verdict="BUG_CONFIRMED", confidence="HIGH")


def test_parse_verdict_empty_is_error():
    assert parse_verdict_response("") == VerdictResult(verdict="ERROR", confidence="LOW")


def test_parse_verdict_fallback_keywords():
    result = parse_verdict_response("Looks like the bug fixed itself")
    assert result.verdict == "BUG_FIXED"
    assert result.confidence == "MEDIUM"
    assert parse_verdict_response("Result was inconclusive").verdict == "INCONCLUSIVE"
    assert parse_verdict_response("Nothing to see").verdict == "NOT_REPRODUCIBLE"


def test_parse_verdict_every_known_verdict_recognised():
    for verdict in ALL_VERDICTS:
        assert parse_verdict_response(f"verdict: {verdict}").verdict == verdict


def test_verdict_options_by_state():
    closed = verdict_options("closed")
    opened = verdict_options("open")
    assert "BUG_REGRESSION" in closed and "BUG_CONFIRMED" not in closed
    assert "NOT_A_BUG" in opened and "BUG_FIXED" not in opened


def test_state_context():
    assert state_context("open") == "\nThis is an OPEN issue.\n"
    assert "CLOSED" in state_context("closed")


def test_server_context():
    assert server_context("") == ""
    url = "http://localhost:8000"
    assert f'requests.get("{url}/health", timeout=5)' in server_context(url)


def test_build_regenerate_prompt_embeds_inputs():
    prompt = build_regenerate_prompt("T", "B", "print(1)", "Traceback")
    assert "Title: T\nBody: B" in prompt
    assert "```python\nprint(1)\n```" in prompt
    assert "```\nTraceback\n```" in prompt
    assert prompt.endswith("Output ONLY the Python script, no explanation.")


def test_parse_critique():
    assert parse_critique("orig", "  approved \n") == "orig"
    assert parse_critique("orig", "") == "orig"
    assert parse_critique("orig", "```python\nprint(2)\n```") == "print(2)"


def test_strip_code_fences():
    assert strip_code_fences("```python\na = 1\nb = 2\n  ```") == "a = 1\nb = 2"
    plain = "x = 1\ny = 2"
    assert strip_code_fences(plain) == plain