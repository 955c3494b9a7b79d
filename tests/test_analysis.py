import json

import pytest

from opinai.analysis import (
    AnalysisParseError,
    APISurfaceInfo,
    ArchitectureInfo,
    BugHintsInfo,
    ConfigInfo,
    DeploymentInfo,
    EndpointInfo,
    EnvVarInfo,
    ObservabilityInfo,
    RepoAnalysis,
    TestingInfo,
    analysis_tool_defs,
    budget_warning,
    parse_analysis,
)

SAMPLE = {
    "description": "A web service",
    "tech_stack": "Go",
    "architecture": {
        "type": "monolith",
        "entry_point": "cmd/main.go",
        "key_modules": ["api", "store"],
        "patterns": "layered",
    },
    "api_surface": {
        "endpoints": [{"path": "/health", "method": "GET", "purpose": "liveness"}],
        "auth_required": True,
        "auth_method": "bearer",
        "streaming_support": True,
        "streaming_protocol": "SSE",
    },
    "error_handling": {
        "error_format": "json",
        "common_status_codes": [400, 500],
        "custom_error_types": ["AppError"],
    },
    "configuration": {
        "env_vars": [{"name": "PORT", "purpose": "listen port", "default": "8080"}],
        "config_files": ["config.yaml"],
        "cli_flags": ["--port"],
    },
    "testing": {"framework": "go test", "test_dir": "tests", "test_patterns": "*_test.go"},
    "observability": {
        "health_endpoint": "/health",
        "metrics_endpoint": "/metrics",
        "metrics_format": "prometheus",
        "logging_style": "structured",
        "log_levels": ["info"],
    },
    "deployment": {
        "type": "container",
        "needs_cluster": True,
        "external_deps": ["redis"],
        "build_command": "make build",
        "run_command": "./server",
        "install_command": "none",
    },
    "bug_reproduction_hints": {
        "common_bug_areas": ["auth"],
        "test_strategy": "http",
        "how_to_test": "curl it",
        "known_limitations": "",
    },
    "iterations": 4,
    "tool_calls": 9,
}


def test_parse_direct_json():
    result = parse_analysis(json.dumps(SAMPLE))
    assert result.description == "A web service"
    assert result.api_surface.endpoints == [EndpointInfo("/health", "GET", "liveness")]
    assert result.error_handling.common_status_codes == [400, 500]
    assert result.configuration.env_vars == [EnvVarInfo("PORT", "listen port", "8080")]
    assert result.bug_hints.how_to_test == "curl it"


def test_parse_fenced_json():
    text = "```json\n" + json.dumps(SAMPLE, indent=2) + "\n```"
    assert parse_analysis(text).tech_stack == "Go"


def test_parse_embedded_json():
    text = "Here is my analysis:\n" + json.dumps(SAMPLE) + "\nDone."
    result = parse_analysis(text)
    assert result.deployment.needs_cluster is True
    assert result.architecture.key_modules == ["api", "store"]


def test_parse_missing_fields_use_defaults():
    result = parse_analysis('{"description": "x"}')
    assert result == RepoAnalysis(description="x")


def test_parse_broken_block_raises():
    with pytest.raises(AnalysisParseError, match="found JSON block but failed to parse"):
        parse_analysis("prefix {not: valid} suffix")


def test_parse_no_json_raises():
    with pytest.raises(AnalysisParseError, match="no JSON object found in response"):
        parse_analysis("nothing structured here")


def test_parse_wrong_type_raises():
    with pytest.raises(AnalysisParseError):
        parse_analysis('text {"description": 5} more')


def test_round_trip():
    analysis = RepoAnalysis.from_dict(SAMPLE)
    assert analysis.to_dict() == SAMPLE
    assert RepoAnalysis.from_dict(analysis.to_dict()) == analysis


def test_from_dict_rejects_non_object():
    with pytest.raises(ValueError):
        RepoAnalysis.from_dict([1, 2])


def test_to_flat_map():
    analysis = RepoAnalysis(
        description="svc",
        tech_stack="N/A",
        deployment=DeploymentInfo(type="container", needs_cluster=True, install_command="none"),
        bug_hints=BugHintsInfo(test_strategy=" null "),
    )
    flat = analysis.to_flat_map()
    assert flat["description"] == "svc"
    assert flat["tech_stack"] == ""
    assert flat["install_command"] == ""
    assert flat["test_strategy"] == ""
    assert flat["needs_cluster"] == "true"
    assert flat["deployment_type"] == "container"
    assert json.loads(flat["rich_analysis"]) == analysis.to_dict()


def test_to_flat_map_needs_cluster_false():
    assert RepoAnalysis().to_flat_map()["needs_cluster"] == "false"


def test_format_context_full():
    context = RepoAnalysis.from_dict(SAMPLE).format_context()
    lines = context.splitlines()
    assert "Description: A web service" in lines
    assert "Architecture: monolith (layered)" in lines
    assert "Entry Point: cmd/main.go" in lines
    assert "  - GET /health — liveness" in lines
    assert "Auth: bearer" in lines
    assert "Streaming: SSE" in lines
    assert "Config env vars: PORT" in lines
    assert "Metrics: /metrics (prometheus)" in lines
    assert "Tests: go test in tests" in lines
    assert "How to test: curl it" in lines
    assert context.endswith("\n")


def test_format_context_empty_and_auth_none():
    assert RepoAnalysis().format_context() == ""
    analysis = RepoAnalysis(
        architecture=ArchitectureInfo(type="cli"),
        api_surface=APISurfaceInfo(auth_method="none"),
        configuration=ConfigInfo(),
        testing=TestingInfo(),
        observability=ObservabilityInfo(),
    )
    assert analysis.format_context() == "Architecture: cli\n"


def test_analysis_tool_defs_read_only():
    names = [t.name for t in analysis_tool_defs()]
    assert names == ["read_file", "list_dir", "grep"]


def test_budget_warning():
    assert budget_warning(17, 20).startswith("WARNING: You have 3 iterations remaining.")
    assert budget_warning(10, 20) == ""
    assert budget_warning(18, 20) == ""