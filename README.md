# opinai

Pieces for running an AI agent that investigates bug reports and reviews
pull requests against a checked-out repository: the tools the agent may
call, parsing of the model's replies, and a data model for what the agent
learns about a repository. It has no dependencies beyond the standard
library.

## Install

```
pip install .
pip install ".[test]"   # with pytest for the test suite
```

## Modules

- `opinai.config`
  - `load_repo_profile(repo)` reads a JSON object from the environment
    variable `REPO_PROFILE_<repo>`, with `/`, `-` and `.` in the repository
    name replaced by `_`. Returns `None` when the variable is unset, empty,
    not valid JSON or not an object.
  - `env_or(key, fallback)` returns the variable's value, or `fallback` when
    it is unset or empty.

- `opinai.aijson`
  - `parse_ai_json(raw)` parses a JSON object out of model output. It strips
    markdown code fences, then tries a direct parse; failing that it closes
    unbalanced brackets and braces and adds a `_warning` key; failing that it
    returns `{"options": [...], "_warning": ...}` with whatever complete
    option objects `extract_option_blocks(text)` could find (second-level
    objects carrying an `id` or a `name`).
  - `render_project_manifests(clone_dir)` renders Kubernetes manifests from a
    checkout: a Helm chart (`helm dependency build`, `helm template`), then a
    kustomization (`kubectl kustomize`), then raw `.yaml`/`.yml` files from
    `deploy`, `manifests`, `k8s` and `config`. Output is cut to 8192
    characters by `truncate_manifests(text)`.
  - `extract_install_docs(clone_dir)` collects install and development
    documents and the `deploy`, `install`, `run`, `build` and similar targets
    of the `Makefile` (via `extract_make_targets(makefile, targets)`), cut to
    6144 characters.

- `opinai.responses`
  - `parse_category(content)` returns `BUG`, `FEATURE`, `QUESTION` or `DOCS`.
  - `parse_verdict_response(content)` returns a `VerdictResult` with `text`,
    `verdict` and `confidence`; empty content gives `ERROR`/`LOW`.
  - `parse_critique(script, content)` keeps the script when the reply is
    empty or `APPROVED`, otherwise returns the corrected script.
  - `strip_code_fences(content)` drops markdown fence lines.
  - Prompt fragments: `verdict_options(issue_state)`,
    `state_context(issue_state)`, `server_context(server_url)` and
    `build_regenerate_prompt(title, body, script, error_output)`.

- `opinai.tools`
  - `tool_defs()` returns the five `ToolDef`s (`read_file`, `list_dir`,
    `grep`, `run_test`, `server_request`); `ToolDef.to_dict()` gives their
    wire form with `name`, `description` and `input_schema`.
  - `ToolState(repo_dir, server_url="")` runs a `ToolCall` through
    `handle_tool(call)` and returns a `ToolResult(content, is_error)`.
    Paths are confined to the repository by `safe_path(path)`, files are cut
    to 10240 bytes, grep output to 50 lines, and `run_test` executes at most
    three Python scripts per state, each with a 60 second timeout and
    `SERVER_URL` set when a server is known. `server_request` sends an HTTP
    request to the server (or a given `service_url`) with a 30 second
    timeout. `grep` and `python3` must be on `PATH`.

- `opinai.verdicts`
  - `parse_verdict(text)` returns `(verdict, confidence)` from a
    `===VERDICT===` block or, failing that, from keywords; the default is
    `("INCONCLUSIVE", "LOW")`.
  - `parse_pr_verdict(text)` returns `(verdict, risk)` from a
    `===PR_VERDICT===` block or keywords; the default is `("COMMENT", "LOW")`.
  - `extract_pr_review(text)` and `extract_suggested_questions(text)` take
    the text between their markers.
  - `agent_result_from_text(...)` and `pr_review_result_from_text(...)`
    build an `AgentResult` or `PRReviewResult`.
  - `tools_for_server(server_url)`, `investigation_message(title, body,
    server_url)` and `review_message(pr_title, pr_author, server_url)` give
    the tool list and opening messages for a run.

- `opinai.analysis`
  - `RepoAnalysis` and its parts (`ArchitectureInfo`, `APISurfaceInfo`,
    `DeploymentInfo`, ...), with `from_dict`, `to_dict`, `to_flat_map()`
    (placeholder values such as `none` or `n/a` become empty, and the whole
    analysis is kept as JSON under `rich_analysis`) and `format_context()`.
  - `parse_analysis(text)` reads an analysis from the whole reply, the reply
    without code fences, or the first balanced `{...}` block, and raises
    `AnalysisParseError` otherwise.
  - `analysis_tool_defs()` returns the read-only tools;
    `budget_warning(iteration, max_iterations)` returns a warning when three
    iterations remain.

## Example

```python
from opinai.tools import ToolCall, ToolState
from opinai.verdicts import parse_verdict

state = ToolState(repo_dir="/tmp/checkout")
output, is_error = state.handle_tool(ToolCall(id="1", name="list_dir", input={"path": "."}))

verdict, confidence = parse_verdict(
    "===VERDICT===\nverdict: BUG_CONFIRMED\nconfidence: HIGH\n===END_VERDICT==="
)
# ("BUG_CONFIRMED", "HIGH")
```

## What it does not do

The package does not talk to any AI model and does not run the agent loop
itself: the caller sends the prompts, passes the model's tool calls to
`ToolState.handle_tool` and hands the final text to the parsers. It ships no
prompt templates, no command-line program, no web dashboard, no database and
no management of jobs or sandboxes on a cluster.

## Tests

```
pytest
```