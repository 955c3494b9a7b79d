"""Tolerant parsing of AI JSON replies and gathering of deployment context."""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

MAX_MANIFEST_LEN = 8192
MAX_INSTALL_DOCS_LEN = 6144

_HELM_DIRS = ("deploy", "chart", "charts", "helm", "deploy/helm", ".")
_KUSTOMIZE_DIRS = ("config/default", "config/manager", "deploy", "kustomize", ".")
_RAW_DIRS = ("deploy", "manifests", "k8s", "config")
_DOC_FILES = (
    "CONTRIBUTING.md",
    "DEVELOPMENT.md",
    "INSTALL.md",
    "deploy/README.md",
    "docs/install.md",
    "docs/deployment.md",
    "docs/getting-started.md",
    "docs/development.md",
)
_MAKE_TARGETS = (
    "deploy",
    "install",
    "undeploy",
    "run",
    "docker-build",
    "manifests",
    "generate",
    "build",
)


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _load_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_ai_json(raw: str) -> dict[str, Any]:
    """Parse a JSON object from an AI reply, repairing or salvaging it if needed.

    Tries a direct parse, then closes unbalanced brackets and braces, then
    extracts whatever complete option objects can be found.
    """
    text = raw.strip()

    if text.startswith("```"):
        kept = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(kept).strip()

    result = _load_object(text)
    if result is not None:
        return result

    repaired = text.rstrip(", \t\n\r")
    open_braces = repaired.count("{") - repaired.count("}")
    open_brackets = repaired.count("[") - repaired.count("]")
    if open_brackets > 0:
        repaired += "]" * open_brackets
    if open_braces > 0:
        repaired += "}" * open_braces
    result = _load_object(repaired)
    if result is not None:
        result["_warning"] = "Response was truncated — some options may be incomplete"
        return result

    options = extract_option_blocks(text)
    return {
        "options": options,
        "_warning": f"AI response could not be fully parsed. Extracted {len(options)} option(s).",
    }


def extract_option_blocks(text: str) -> list[dict[str, Any]]:
    """Return the complete second-level JSON objects that carry an ``id`` or ``name``."""
    options: list[dict[str, Any]] = []
    depth = 0
    start = -1
    for i, ch in enumerate(text):
        if ch == "{":
            if depth == 1 and start == -1:
                start = i
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 1 and start >= 0:
                obj = _load_object(text[start : i + 1])
                if obj is not None and ("id" in obj or "name" in obj):
                    options.append(obj)
                start = -1
    return options


def truncate_manifests(text: str) -> str:
    """Cut rendered manifests down to the size sent to the AI."""
    if len(text) <= MAX_MANIFEST_LEN:
        return text
    return text[:MAX_MANIFEST_LEN] + "\n... (truncated)"


def _run(args: list[str], cwd: Path | None = None) -> tuple[bool, str]:
    try:
        proc = subprocess.run(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as exc:
        return False, str(exc)
    output = proc.stdout.decode("utf-8", errors="replace")
    return proc.returncode == 0, output


def render_project_manifests(clone_dir: str) -> str:
    """Render the Kubernetes manifests of a cloned project.

    Tries a Helm chart, then kustomize, then collects raw YAML files.
    Returns an empty string when nothing is found.
    """
    if not clone_dir:
        return ""
    root = Path(clone_dir)

    for rel in _HELM_DIRS:
        chart_dir = root / rel
        if not (chart_dir / "Chart.yaml").exists():
            continue
        _run(["helm", "dependency", "build", str(chart_dir)], cwd=root)
        ok, out = _run(["helm", "template", "opinai-render", str(chart_dir)], cwd=root)
        if ok and out:
            log.info("rendered Helm chart for deployment analysis dir=%s bytes=%d", rel, len(out))
            return truncate_manifests(out)
        log.warning("helm template failed dir=%s output=%s", rel, _truncate(out, 200))

    for rel in _KUSTOMIZE_DIRS:
        kdir = root / rel
        if not ((kdir / "kustomization.yaml").exists() or (kdir / "kustomization.yml").exists()):
            continue
        ok, out = _run(["kubectl", "kustomize", str(kdir)])
        if ok and out:
            log.info("rendered kustomize manifests for deployment analysis dir=%s bytes=%d", rel, len(out))
            return truncate_manifests(out)
        log.warning("kubectl kustomize failed dir=%s", rel)

    collected: list[str] = []
    size = 0
    for rel in _RAW_DIRS:
        dir_path = root / rel
        try:
            entries = sorted(dir_path.iterdir(), key=lambda p: p.name)
        except OSError:
            continue
        for entry in entries:
            if entry.is_dir() or not entry.name.endswith((".yaml", ".yml")):
                continue
            try:
                data = entry.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            chunk = f"--- {rel}/{entry.name} ---\n{data}\n"
            collected.append(chunk)
            size += len(chunk)
            if size > MAX_MANIFEST_LEN:
                break
        if size > MAX_MANIFEST_LEN:
            break

    if collected:
        text = "".join(collected)
        log.info("collected raw YAML manifests for deployment analysis bytes=%d", len(text))
        return truncate_manifests(text)
    return ""


def extract_install_docs(clone_dir: str) -> str:
    """Gather install and deploy instructions from docs and Makefile targets."""
    if not clone_dir:
        return ""
    root = Path(clone_dir)

    parts: list[str] = []
    size = 0
    for name in _DOC_FILES:
        try:
            content = (root / name).read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        chunk = f"--- {name} ---\n{content[:3000]}\n\n"
        parts.append(chunk)
        size += len(chunk)
        if size > 5000:
            break

    try:
        makefile = (root / "Makefile").read_text(encoding="utf-8", errors="replace")
    except OSError:
        makefile = None
    if makefile is not None:
        targets = extract_make_targets(makefile, _MAKE_TARGETS)
        if targets:
            parts.append("--- Makefile targets ---\n" + targets + "\n")

    result = "".join(parts)
    if not result:
        return ""
    if len(result) > MAX_INSTALL_DOCS_LEN:
        result = result[:MAX_INSTALL_DOCS_LEN] + "\n... (truncated)"
    log.info("extracted install docs for deployment analysis bytes=%d", len(result))
    return result


def extract_make_targets(makefile: str, targets) -> str:
    """Return the definitions of the named targets from Makefile text."""
    wanted = set(targets)
    out: list[str] = []
    capturing = False
    for line in makefile.split("\n"):
        if not line.startswith("\t") and ":" in line:
            name = line.split(":")[0].strip()
            name = name.removeprefix(".PHONY").strip()
            if name in wanted:
                capturing = True
                out.append(line + "\n")
                continue
            capturing = False
        if capturing and (line.startswith("\t") or line == ""):
            out.append(line + "\n")
        else:
            capturing = False
    return "".join(out)