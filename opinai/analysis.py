"""Structured results of an agent's analysis of a repository."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from opinai.tools import ToolDef, tool_defs

_READ_ONLY_TOOLS = ("read_file", "list_dir", "grep")
_PLACEHOLDERS = ("none", "n/a", "null")


class AnalysisParseError(ValueError):
    """Raised when no analysis can be read from the agent's reply."""


def _obj(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key}: expected an object")
    return value


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected a string")
    return value


def _bool(data: dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{key}: expected a boolean")
    return value


def _list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{key}: expected an array")
    return value


def _strs(data: dict[str, Any], key: str) -> list[str]:
    items = _list(data, key)
    if not all(isinstance(item, str) for item in items):
        raise ValueError(f"{key}: expected an array of strings")
    return list(items)


def _ints(data: dict[str, Any], key: str) -> list[int]:
    result = []
    for item in _list(data, key):
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise ValueError(f"{key}: expected an array of integers")
        if isinstance(item, float) and not item.is_integer():
            raise ValueError(f"{key}: expected an array of integers")
        result.append(int(item))
    return result


def _int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key}: expected an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{key}: expected an integer")
    return int(value)


def _items(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    items = _list(data, key)
    result = []
    for item in items:
        if item is None:
            item = {}
        if not isinstance(item, dict):
            raise ValueError(f"{key}: expected an array of objects")
        result.append(item)
    return result


@dataclass
class EndpointInfo:
    path: str = ""
    method: str = ""
    purpose: str = ""


@dataclass
class EnvVarInfo:
    name: str = ""
    purpose: str = ""
    default: str = ""


@dataclass
class ArchitectureInfo:
    type: str = ""
    entry_point: str = ""
    key_modules: list[str] = field(default_factory=list)
    patterns: str = ""


@dataclass
class APISurfaceInfo:
    endpoints: list[EndpointInfo] = field(default_factory=list)
    auth_required: bool = False
    auth_method: str = ""
    streaming_support: bool = False
    streaming_protocol: str = ""


@dataclass
class ErrorHandlingInfo:
    error_format: str = ""
    common_status_codes: list[int] = field(default_factory=list)
    custom_error_types: list[str] = field(default_factory=list)


@dataclass
class ConfigInfo:
    env_vars: list[EnvVarInfo] = field(default_factory=list)
    config_files: list[str] = field(default_factory=list)
    cli_flags: list[str] = field(default_factory=list)


@dataclass
class TestingInfo:
    __test__ = False

    framework: str = ""
    test_dir: str = ""
    test_patterns: str = ""


@dataclass
class ObservabilityInfo:
    health_endpoint: str = ""
    metrics_endpoint: str = ""
    metrics_format: str = ""
    logging_style: str = ""
    log_levels: list[str] = field(default_factory=list)


@dataclass
class DeploymentInfo:
    type: str = ""
    needs_cluster: bool = False
    external_deps: list[str] = field(default_factory=list)
    build_command: str = ""
    run_command: str = ""
    install_command: str = ""


@dataclass
class BugHintsInfo:
    common_bug_areas: list[str] = field(default_factory=list)
    test_strategy: str = ""
    how_to_test: str = ""
    known_limitations: str = ""


@dataclass
class RepoAnalysis:
    """What the agent learned about a repository."""

    description: str = ""
    tech_stack: str = ""
    architecture: ArchitectureInfo = field(default_factory=ArchitectureInfo)
    api_surface: APISurfaceInfo = field(default_factory=APISurfaceInfo)
    error_handling: ErrorHandlingInfo = field(default_factory=ErrorHandlingInfo)
    configuration: ConfigInfo = field(default_factory=ConfigInfo)
    testing: TestingInfo = field(default_factory=TestingInfo)
    observability: ObservabilityInfo = field(default_factory=ObservabilityInfo)
    deployment: DeploymentInfo = field(default_factory=DeploymentInfo)
    bug_hints: BugHintsInfo = field(default_factory=BugHintsInfo)
    iterations: int = 0
    tool_calls: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepoAnalysis:
        """Build an analysis from its JSON object form; raise ValueError on bad types."""
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        arch = _obj(data, "architecture")
        api = _obj(data, "api_surface")
        errs = _obj(data, "error_handling")
        conf = _obj(data, "configuration")
        test = _obj(data, "testing")
        obs = _obj(data, "observability")
        dep = _obj(data, "deployment")
        hints = _obj(data, "bug_reproduction_hints")
        return cls(
            description=_str(data, "description"),
            tech_stack=_str(data, "tech_stack"),
            architecture=ArchitectureInfo(
                type=_str(arch, "type"),
                entry_point=_str(arch, "entry_point"),
                key_modules=_strs(arch, "key_modules"),
                patterns=_str(arch, "patterns"),
            ),
            api_surface=APISurfaceInfo(
                endpoints=[
                    EndpointInfo(
                        path=_str(ep, "path"),
                        method=_str(ep, "method"),
                        purpose=_str(ep, "purpose"),
                    )
                    for ep in _items(api, "endpoints")
                ],
                auth_required=_bool(api, "auth_required"),
                auth_method=_str(api, "auth_method"),
                streaming_support=_bool(api, "streaming_support"),
                streaming_protocol=_str(api, "streaming_protocol"),
            ),
            error_handling=ErrorHandlingInfo(
                error_format=_str(errs, "error_format"),
                common_status_codes=_ints(errs, "common_status_codes"),
                custom_error_types=_strs(errs, "custom_error_types"),
            ),
            configuration=ConfigInfo(
                env_vars=[
                    EnvVarInfo(
                        name=_str(ev, "name"),
                        purpose=_str(ev, "purpose"),
                        default=_str(ev, "default"),
                    )
                    for ev in _items(conf, "env_vars")
                ],
                config_files=_strs(conf, "config_files"),
                cli_flags=_strs(conf, "cli_flags"),
            ),
            testing=TestingInfo(
                framework=_str(test, "framework"),
                test_dir=_str(test, "test_dir"),
                test_patterns=_str(test, "test_patterns"),
            ),
            observability=ObservabilityInfo(
                health_endpoint=_str(obs, "health_endpoint"),
                metrics_endpoint=_str(obs, "metrics_endpoint"),
                metrics_format=_str(obs, "metrics_format"),
                logging_style=_str(obs, "logging_style"),
                log_levels=_strs(obs, "log_levels"),
            ),
            deployment=DeploymentInfo(
                type=_str(dep, "type"),
                needs_cluster=_bool(dep, "needs_cluster"),
                external_deps=_strs(dep, "external_deps"),
                build_command=_str(dep, "build_command"),
                run_command=_str(dep, "run_command"),
                install_command=_str(dep, "install_command"),
            ),
            bug_hints=BugHintsInfo(
                common_bug_areas=_strs(hints, "common_bug_areas"),
                test_strategy=_str(hints, "test_strategy"),
                how_to_test=_str(hints, "how_to_test"),
                known_limitations=_str(hints, "known_limitations"),
            ),
            iterations=_int(data, "iterations"),
            tool_calls=_int(data, "tool_calls"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form of the analysis."""
        return {
            "description": self.description,
            "tech_stack": self.tech_stack,
            "architecture": asdict(self.architecture),
            "api_surface": asdict(self.api_surface),
            "error_handling": asdict(self.error_handling),
            "configuration": asdict(self.configuration),
            "testing": asdict(self.testing),
            "observability": asdict(self.observability),
            "deployment": asdict(self.deployment),
            "bug_reproduction_hints": asdict(self.bug_hints),
            "iterations": self.iterations,
            "tool_calls": self.tool_calls,
        }

    def to_flat_map(self) -> dict[str, str]:
        """Return the flat key/value form kept in repository memory."""
        flat = {
            "description": self.description,
            "tech_stack": self.tech_stack,
            "deployment_type": self.deployment.type,
            "needs_cluster": "true" if self.deployment.needs_cluster else "false",
            "test_strategy": self.bug_hints.test_strategy,
            "how_to_test": self.bug_hints.how_to_test,
            "build_command": self.deployment.build_command,
            "run_command": self.deployment.run_command,
            "install_command": self.deployment.install_command,
        }
        flat = {
            key: "" if value.strip().lower() in _PLACEHOLDERS else value
            for key, value in flat.items()
        }
        flat["rich_analysis"] = json.dumps(
            self.to_dict(), separators=(",", ":"), ensure_ascii=False
        )
        return flat

    def format_context(self) -> str:
        """Return a readable summary for use in investigation prompts."""
        out: list[str] = []
        if self.description:
            out.append(f"Description: {self.description}\n")
        if self.tech_stack:
            out.append(f"Tech Stack: {self.tech_stack}\n")
        arch = self.architecture
        if arch.type:
            line = f"Architecture: {arch.type}"
            if arch.patterns:
                line += f" ({arch.patterns})"
            out.append(line + "\n")
        if arch.entry_point:
            out.append(f"Entry Point: {arch.entry_point}\n")

        api = self.api_surface
        if api.endpoints:
            out.append("API Endpoints:\n")
            out.extend(f"  - {ep.method} {ep.path} — {ep.purpose}\n" for ep in api.endpoints)
        if api.auth_method and api.auth_method != "none":
            out.append(f"Auth: {api.auth_method}\n")
        if api.streaming_support:
            out.append(f"Streaming: {api.streaming_protocol}\n")

        if self.error_handling.error_format:
            out.append(f"Error format: {self.error_handling.error_format}\n")

        if self.configuration.env_vars:
            names = "".join(f" {ev.name}" for ev in self.configuration.env_vars)
            out.append(f"Config env vars:{names}\n")

        obs = self.observability
        if obs.health_endpoint:
            out.append(f"Health: {obs.health_endpoint}\n")
        if obs.metrics_endpoint:
            out.append(f"Metrics: {obs.metrics_endpoint} ({obs.metrics_format})\n")

        if self.testing.framework:
            out.append(f"Tests: {self.testing.framework} in {self.testing.test_dir}\n")

        if self.bug_hints.test_strategy:
            out.append(f"Recommended test strategy: {self.bug_hints.test_strategy}\n")
        if self.bug_hints.how_to_test:
            out.append(f"How to test: {self.bug_hints.how_to_test}\n")
        return "".join(out)


def analysis_tool_defs() -> list[ToolDef]:
    """Return the read-only tools used for repository analysis."""
    return [t for t in tool_defs() if t.name in _READ_ONLY_TOOLS]


def budget_warning(iteration: int, max_iterations: int) -> str:
    """Return a warning for the AI when three iterations remain, else an empty string."""
    if max_iterations - iteration == 3:
        return (
            "WARNING: You have 3 iterations remaining. Output your JSON analysis NOW with what "
            "you have learned so far. Do NOT make any more tool calls — write the final JSON "
            "object immediately."
        )
    return ""


def _trunc(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]


def _try_parse(text: str) -> RepoAnalysis | None:
    try:
        return RepoAnalysis.from_dict(json.loads(text))
    except ValueError:
        return None


def parse_analysis(text: str) -> RepoAnalysis:
    """Read a RepoAnalysis from the agent's final reply.

    Tries the whole reply, then the reply without markdown fences, then the
    first balanced ``{...}`` block. Raises AnalysisParseError on failure.
    """
    text = text.strip()
    result = _try_parse(text)
    if result is not None:
        return result

    cleaned = "\n".join(
        line for line in text.split("\n") if not line.strip().startswith("```")
    )
    result = _try_parse(cleaned.strip())
    if result is not None:
        return result

    start = text.find("{")
    if start >= 0:
        depth = 0
        for i in range(start, len(text)):
            ch = text[i]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start : i + 1]
                    result = _try_parse(candidate)
                    if result is not None:
                        return result
                    raise AnalysisParseError(
                        f"found JSON block but failed to parse: {_trunc(candidate, 200)}"
                    )
    raise AnalysisParseError("no JSON object found in response")