from opinai.aijson import (
    extract_install_docs,
    extract_make_targets,
    extract_option_blocks,
    parse_ai_json,
    render_project_manifests,
    truncate_manifests,
)


def test_parse_valid_json():
    result = parse_ai_json('{"options": [{"id": "full"}]}')
    assert result["options"] == [{"id": "full"}]
    assert "_warning" not in result


def test_parse_strips_markdown_fences():
    result = parse_ai_json('```json\n{"options": []}\n```')
    assert result == {"options": []}


def test_parse_garbage_still_returns_result():
    result = parse_ai_json("this is not json at all")
    assert "_warning" in result
    assert result["options"] == []
    assert result["_warning"] == "AI response could not be fully parsed. Extracted 0 option(s)."


def test_extract_option_blocks_keeps_id_or_name_objects():
    text = '{"options": [{"id": "a"}, {"name": "b"}, {"other": 1}], "x": {broken'
    blocks = extract_option_blocks(text)
    assert blocks == [{"id": "a"}, {"name": "b"}]


def test_parse_tier_three_salvages_options():
    text = '{"options": [{"id": "a", "x": 1}], "bad": ]]]'
    result = parse_ai_json(text)
    assert result["options"] == [{"id": "a", "x": 1}]
    assert "Extracted 1 option(s)" in result["_warning"]


def test_truncate_manifests():
    assert truncate_manifests("short") == "short"
    long_text = "a" * 9000
    out = truncate_manifests(long_text)
    assert out.startswith("a" * 8192)
    assert out.endswith("\n... (truncated)")
    assert len(out) == 8192 + len("\n... (truncated)")


def test_render_project_manifests_empty_dir_arg():
    assert render_project_manifests("") == ""


def test_render_project_manifests_nothing_found(tmp_path):
    assert render_project_manifests(str(tmp_path)) == ""


def test_render_project_manifests_raw_yaml(tmp_path):
    deploy = tmp_path / "deploy"
    deploy.mkdir()
    (deploy / "app.yaml").write_text("kind: Deployment")
    (deploy / "notes.txt").write_text("ignored")
    out = render_project_manifests(str(tmp_path))
    assert out == "--- deploy/app.yaml ---\nkind: Deployment\n"


def test_extract_make_targets():
    makefile = (
        ".PHONY: deploy\n"
        "deploy: build\n"
        "\tkubectl apply -f x.yaml\n"
        "\n"
        "lint:\n"
        "\tflake8 .\n"
        "build:\n"
        "\tpython -m build\n"
    )
    out = extract_make_targets(makefile, ["deploy", "build"])
    assert "deploy: build\n\tkubectl apply -f x.yaml\n" in out
    assert "build:\n\tpython -m build\n" in out
    assert "flake8" not in out
    assert ".PHONY" not in out


def test_extract_install_docs(tmp_path):
    (tmp_path / "CONTRIBUTING.md").write_text("Run make deploy")
    (tmp_path / "Makefile").write_text("install:\n\tpip install .\n")
    out = extract_install_docs(str(tmp_path))
    assert out.startswith("--- CONTRIBUTING.md ---\nRun make deploy\n\n")
    assert "--- Makefile targets ---\ninstall:\n\tpip install .\n" in out


def test_extract_install_docs_nothing(tmp_path):
    assert extract_install_docs(str(tmp_path)) == ""
    assert extract_install_docs("") == ""