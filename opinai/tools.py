"""Tools the investigation agent may call, and the state that limits their use."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, NamedTuple

log = logging.getLogger(__name__)

MAX_FILE_SIZE = 10240
MAX_GREP_RESULTS = 50
MAX_LIST_DEPTH = 3
MAX_TEST_RUNS = 3
TEST_TIMEOUT = 60
REQUEST_TIMEOUT = 30


@dataclass
class ToolDef:
    """Description of a tool offered to the AI."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form of the definition."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass
class ToolCall:
    """A tool invocation requested by the AI."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


class ToolResult(NamedTuple):
    """Text handed back to the AI and whether it reports an error."""

    content: str
    is_error: bool


def _string_prop(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


def tool_defs() -> list[ToolDef]:
    """Return the definitions of every tool the agent can use."""
    return [
        ToolDef(
            name="read_file",
            description="Read a file from the repository. Path is relative to repo root.",
            input_schema={
                "type": "object",
                "properties": {
                    "path": _string_prop("File path relative to repo root (e.g. 'src/main.py')"),
                },
                "required": ["path"],
            },
        ),
        ToolDef(
            name="list_dir",
            description="List directory contents. Path is relative to repo root. Returns file/dir names.",
            input_schema={
                "type": "object",
                "properties": {
                    "path": _string_prop("Directory path relative to repo root (e.g. '.' or 'src')"),
                },
                "required": ["path"],
            },
        ),
        ToolDef(
            name="grep",
            description="Search for a pattern in repository files. Returns matching lines with file paths.",
            input_schema={
                "type": "object",
                "properties": {
                    "pattern": _string_prop("Search pattern (regex supported)"),
                    "path": _string_prop(
                        "Directory to search in, relative to repo root (default: '.')"
                    ),
                    "include": _string_prop("File glob pattern to include (e.g. '*.py', '*.go')"),
                },
                "required": ["pattern"],
            },
        ),
        ToolDef(
            name="run_test",
            description=(
                "Execute a Python 3 test script. The script should print JSON lines with test "
                'results: {"test": "name", "status": "pass|fail", "details": "..."}. '
                "Maximum 3 test runs per investigation."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "script": _string_prop("Complete Python 3 test script to execute"),
                },
                "required": ["script"],
            },
        ),
        ToolDef(
            name="server_request",
            description=(
                "Make an HTTP request to the running server or a specific service in a sandbox "
                "deployment. By default targets the primary server URL. Use service_url to target "
                "a different service (e.g. a backend API or database admin UI in a multi-service "
                "sandbox)."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "method": _string_prop("HTTP method (GET, POST, PUT, DELETE, PATCH)"),
                    "path": _string_prop("URL path (e.g. '/api/users' or '/health')"),
                    "body": _string_prop("Request body (for POST/PUT/PATCH)"),
                    "content_type": _string_prop("Content-Type header (default: application/json)"),
                    "service_url": _string_prop(
                        "Full base URL of a specific service to target instead of the default "
                        "server (e.g. 'http://backend-api.sandbox-ns.svc.cluster.local:3000'). "
                        "Use when testing multi-service architectures."
                    ),
                },
                "required": ["method", "path"],
            },
        ),
    ]


def _arg(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    return value if isinstance(value, str) else ""


@dataclass
class ToolState:
    """Limits and collected metadata for one investigation."""

    repo_dir: str
    server_url: str = ""
    test_runs: int = 0
    files_read: list[str] = field(default_factory=list)
    python: str = "python3"

    def handle_tool(self, call: ToolCall) -> ToolResult:
        """Run a tool call and return its result."""
        handlers = {
            "read_file": self.read_file,
            "list_dir": self.list_dir,
            "grep": self.grep,
            "run_test": self.run_test,
            "server_request": self.server_request,
        }
        handler = handlers.get(call.name)
        if handler is None:
            return ToolResult(f"unknown tool: {call.name}", True)
        return handler(call.input)

    def read_file(self, args: dict[str, Any]) -> ToolResult:
        """Read a repository file, truncated to the size limit."""
        path = _arg(args, "path")
        if not path:
            return ToolResult("path is required", True)
        full = self.safe_path(path)
        if full is None:
            return ToolResult("path is outside the repository", True)
        try:
            with open(full, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            return ToolResult(f"cannot read file: {exc}", True)

        if len(data) > MAX_FILE_SIZE:
            content = (
                data[:MAX_FILE_SIZE].decode("utf-8", errors="replace")
                + f"\n... (truncated, file is {len(data)} bytes)"
            )
        else:
            content = data.decode("utf-8", errors="replace")
        self.files_read.append(path)
        return ToolResult(content, False)

    def list_dir(self, args: dict[str, Any]) -> ToolResult:
        """List a repository directory, marking subdirectories with a slash."""
        path = _arg(args, "path") or "."
        full = self.safe_path(path)
        if full is None:
            return ToolResult("path is outside the repository", True)
        try:
            with os.scandir(full) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            return ToolResult(f"cannot list directory: {exc}", True)

        names = [e.name + "/" if e.is_dir() else e.name for e in entries]
        if not names:
            return ToolResult("(empty directory)", False)
        return ToolResult("\n".join(names), False)

    def grep(self, args: dict[str, Any]) -> ToolResult:
        """Search repository files for a pattern."""
        pattern = _arg(args, "pattern")
        if not pattern:
            return ToolResult("pattern is required", True)
        full = self.safe_path(_arg(args, "path") or ".")
        if full is None:
            return ToolResult("path is outside the repository", True)

        cmd = ["grep", "-rn", "--max-count=5"]
        include = _arg(args, "include")
        if include:
            cmd.append("--include=" + include)
        cmd += [pattern, full]

        try:
            proc = subprocess.run(
                cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False
            )
        except OSError:
            return ToolResult("(no matches found)", False)
        output = proc.stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0 and not output:
            return ToolResult("(no matches found)", False)

        lines = output.split("\n")
        if len(lines) > MAX_GREP_RESULTS:
            lines = lines[:MAX_GREP_RESULTS]
            output = "\n".join(lines) + (
                f"\n... ({len(lines)}+ matches, showing first {MAX_GREP_RESULTS})"
            )

        output = output.replace(self.repo_dir + "/", "")
        return ToolResult(output, False)

    def run_test(self, args: dict[str, Any]) -> ToolResult:
        """Execute a Python test script, up to the per-investigation limit."""
        script = _arg(args, "script")
        if not script:
            return ToolResult("script is required", True)
        if self.test_runs >= MAX_TEST_RUNS:
            return ToolResult(
                f"maximum test runs reached ({MAX_TEST_RUNS}). "
                "Deliver your verdict with the results you have.",
                True,
            )
        self.test_runs += 1

        try:
            with tempfile.NamedTemporaryFile(
                "w", suffix=".py", prefix="opinai_agent_test_", delete=False, encoding="utf-8"
            ) as fh:
                fh.write(script)
                script_path = fh.name
        except OSError as exc:
            return ToolResult(f"cannot write test file: {exc}", True)

        env = dict(os.environ)
        if self.server_url:
            env["SERVER_URL"] = self.server_url

        try:
            try:
                proc = subprocess.run(
                    [self.python, script_path],
                    env=env,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    timeout=TEST_TIMEOUT,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                return ToolResult(f"test script timed out after {TEST_TIMEOUT} seconds", True)
            except OSError as exc:
                return ToolResult(f"\n[script exited with error: {exc}]", False)
        finally:
            try:
                os.remove(script_path)
            except OSError:
                pass

        output = proc.stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            output += f"\n[script exited with error: exit status {proc.returncode}]"
        log.info("agent test run complete run=%d output_bytes=%d", self.test_runs, len(output))
        return ToolResult(output, False)

    def server_request(self, args: dict[str, Any]) -> ToolResult:
        """Send an HTTP request to the server under test."""
        if not self.server_url:
            return ToolResult("no server is running — use code review and run_test instead", True)

        method = _arg(args, "method")
        path = _arg(args, "path")
        body = _arg(args, "body")
        content_type = _arg(args, "content_type") or "application/json"
        if not method or not path:
            return ToolResult("method and path are required", True)

        base = _arg(args, "service_url") or self.server_url
        url = base + path

        try:
            req = urllib.request.Request(
                url, data=body.encode("utf-8") if body else None, method=method.upper()
            )
        except ValueError as exc:
            return ToolResult(f"invalid request: {exc}", True)
        if body:
            req.add_header("Content-Type", content_type)

        try:
            resp = urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT)
        except urllib.error.HTTPError as exc:
            resp = exc
        except (urllib.error.URLError, OSError, ValueError) as exc:
            return ToolResult(f"request failed: {exc}", True)

        with resp:
            code = resp.code
            reason = resp.reason
            raw = resp.read(MAX_FILE_SIZE + 1)

        text = raw.decode("utf-8", errors="replace")
        if len(raw) > MAX_FILE_SIZE:
            text = raw[:MAX_FILE_SIZE].decode("utf-8", errors="replace") + "\n... (response truncated)"
        return ToolResult(f"HTTP {code} {code} {reason}\n\n{text}", False)

    def safe_path(self, path: str) -> str | None:
        """Resolve ``path`` inside the repository, or None if it escapes it."""
        cleaned = os.path.normpath(path)
        if os.path.isabs(cleaned):
            return cleaned if cleaned.startswith(self.repo_dir) else None
        full = os.path.abspath(os.path.join(self.repo_dir, cleaned))
        return full if full.startswith(self.repo_dir) else None