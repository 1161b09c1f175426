from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from eqmeta import ids
from eqmeta.cli.main import cli


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _write(tmp_path: Path) -> Path:
    document = {
        "types": [
            {
                "name": "com.example.Order",
                "fields": [
                    {"name": "total", "type": "java.math.BigDecimal"},
                    {"name": "id", "type": "java.lang.Long"},
                    {"name": "STATUS", "type": "java.lang.String", "static": True},
                ],
                "equals": {},
                "identifier": "id",
            },
            {
                "name": "com.example.Bean",
                "markers": ["RooJavaBean"],
                "fields": [{"name": "name", "type": "java.lang.String"}],
                "equals": {},
            },
            {"name": "com.example.Plain", "fields": [{"name": "x", "type": "int"}]},
        ]
    }
    path = tmp_path / "declarations.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_compute_text_output(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "WARNING", "compute", str(_write(tmp_path))])
    assert result.exit_code == 0, result.output
    assert "com.example.Order: id, total" in result.output
    assert "com.example.Bean: delegated" in result.output
    assert "com.example.Plain" not in result.output


def test_compute_json_output(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--log-level", "WARNING", "compute", str(_write(tmp_path)), "--json"]
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    by_type = {item["type"]: item for item in payload["artifacts"]}
    assert by_type["com.example.Order"]["fields"] == ["id", "total"]
    assert by_type["com.example.Order"]["identifier_field"] == "id"
    assert by_type["com.example.Bean"]["delegated"] is True
    assert by_type["com.example.Bean"]["fields"] == []


def test_compute_lazy_policy_matches(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EQMETA_RECOMPUTE_POLICY", "lazy")
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "WARNING", "compute", str(_write(tmp_path))])
    assert result.exit_code == 0, result.output
    assert "com.example.Order: id, total" in result.output


def test_graph_lists_field_edges(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "WARNING", "graph", str(_write(tmp_path))])
    assert result.exit_code == 0, result.output
    order = ids.artifact_id("com.example.Order", "SRC_MAIN_JAVA")
    lines = [line for line in result.stdout.splitlines() if line.strip()]
    assert lines == [
        f"{ids.field_id('com.example.Order', 'SRC_MAIN_JAVA', 'id')} -> {order}",
        f"{ids.field_id('com.example.Order', 'SRC_MAIN_JAVA', 'total')} -> {order}",
    ]


def test_invalid_document_reports_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text('{"types": [{"fields": []}]}', encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "WARNING", "compute", str(path)])
    assert result.exit_code != 0
    assert "invalid declaration document" in result.output


def test_compute_explain_lists_rejected_fields(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--log-level", "WARNING", "compute", str(_write(tmp_path)), "--explain"]
    )
    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    order_at = lines.index("com.example.Order: id, total")
    assert lines[order_at + 1] == "  - STATUS: static"
    assert "com.example.Bean: delegated" in lines


def test_compute_explain_json(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--log-level", "WARNING", "compute", str(_write(tmp_path)), "--json", "--explain"]
    )
    assert result.exit_code == 0, result.output
    by_type = {item["type"]: item for item in json.loads(result.stdout)["artifacts"]}
    assert by_type["com.example.Order"]["rejected"] == {"STATUS": "static"}
    assert "rejected" not in by_type["com.example.Bean"]


def test_undecodable_document_reports_error(tmp_path: Path) -> None:
    path = tmp_path / "latin.json"
    path.write_bytes(b'{"types": [{"name": "\xff\xfe"}]}')
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "WARNING", "compute", str(path)])
    assert result.exit_code == 1
    assert not isinstance(result.exception, UnicodeDecodeError)
    assert "not valid UTF-8" in result.output


def test_duplicate_type_reports_error(tmp_path: Path) -> None:
    entry = {"name": "A", "fields": [{"name": "x", "type": "int"}], "equals": {}}
    path = tmp_path / "dup.json"
    path.write_text(json.dumps({"types": [entry, entry]}), encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "WARNING", "compute", str(path)])
    assert result.exit_code == 1
    assert "duplicate type declaration: A" in result.output
    assert "A: x" not in result.output


def test_prod_env_file_switches_logs_to_json(tmp_path: Path) -> None:
    # the autouse fixture runs every test from tmp_path, so this .env is picked up
    (tmp_path / ".env").write_text("APP_ENV=prod\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "INFO", "compute", str(_write(tmp_path))])
    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    events = [record["event"] for record in records]
    assert any(event.startswith("artifact_computed") for event in events)
    assert all(record["level"] in {"info", "warning"} for record in records)
