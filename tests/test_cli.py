# tests/test_cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from verifyforge.cli import run_cli


def _py(code: str) -> dict:
    return {"cmd": sys.executable, "args": ["-c", code]}


def _append(name: str) -> dict:
    return _py(f"open('log.txt', 'a').write('{name}\\n')")


def _leaf(key: str, run: dict, **fields) -> dict:
    return {"key": key, "run": run, "parser": "generic", **fields}


def _write_json_config(path: Path, tasks: list, **top) -> None:
    path.write_text(json.dumps({"tasks": tasks, **top}), encoding="utf-8")


def test_list_prints_one_path_per_line(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(
        cfg,
        [
            _leaf("format", _py("pass")),
            {
                "key": "logic",
                "children": [_leaf("ts", _py("pass")), _leaf("unit", _py("pass"))],
            },
        ],
    )

    code = run_cli(["--config", str(cfg), "list"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["format", "logic", "logic:ts", "logic:unit"]


def test_graph_prints_resolved_dependencies(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(
        cfg,
        [
            _leaf("format", _py("pass")),
            {
                "key": "logic",
                "children": [
                    _leaf("ts", _py("pass"), reporting_depends_on=["format"]),
                    _leaf("unit", _py("pass"), reporting_depends_on=["format", "logic.ts"]),
                ],
            },
        ],
    )

    code = run_cli(["--config", str(cfg), "graph"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["format:", "logic:", "logic:ts: format", "logic:unit: format logic:ts"]


def test_run_executes_relative_to_config_and_reports(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(
        cfg,
        [_leaf("a", _append("a")), _leaf("b", _append("b"))],
        strategy="sequential",
    )

    code = run_cli(["--config", str(cfg), "run", "--no-color"])
    out = capsys.readouterr().out

    assert code == 0
    assert (tmp_path / "log.txt").read_text(encoding="utf-8").splitlines() == ["a", "b"]
    assert "OK finished a" in out
    assert "b: passed" in out
    assert "== verification: All correct ==" in out


def test_run_filter_selects_subtree(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(
        cfg,
        [
            _leaf("format", _append("format")),
            {
                "key": "logic",
                "children": [_leaf("ts", _append("ts")), _leaf("unit", _append("unit"))],
            },
        ],
    )

    code = run_cli(["--config", str(cfg), "run", "logic:unit"])
    _ = capsys.readouterr()

    assert code == 0
    assert (tmp_path / "log.txt").read_text(encoding="utf-8").splitlines() == ["unit"]


def test_run_failure_returns_1_and_prints_logs(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(cfg, [_leaf("fail", _py("print('broken'); raise SystemExit(5)"))])

    code = run_cli(["--config", str(cfg), "run", "--no-color"])
    out = capsys.readouterr().out

    assert code == 1
    assert "FAIL finished fail" in out
    assert "broken" in out
    assert "fail: failed (exit code 5)" in out


def test_run_json_writes_only_the_document_to_stdout(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(
        cfg,
        [
            _leaf("format", _py("raise SystemExit(1)")),
            _leaf(
                "build",
                _py("import time; time.sleep(0.3); raise SystemExit(1)"),
                reporting_depends_on=["format"],
            ),
        ],
    )

    code = run_cli(["--config", str(cfg), "run", "--json"])
    doc = json.loads(capsys.readouterr().out)

    assert code == 1
    assert doc["ok"] is False
    format_, build = doc["tasks"]
    assert format_["path"] == "format"
    assert "suppressed" not in format_
    assert build["suppressed"] is True
    assert build["suppressedBy"] == "format"


def test_run_quiet_prints_final_line(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(cfg, [_leaf("a", _py("print('noise')"))])

    code = run_cli(["--config", str(cfg), "run", "-q"])
    out = capsys.readouterr().out

    assert code == 0
    assert out == "OK All verifications passed\n"


def test_cycle_is_rejected_before_running(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(
        cfg,
        [
            _leaf("a", _append("a"), reporting_depends_on=["b"]),
            _leaf("b", _append("b"), reporting_depends_on=["a"]),
        ],
    )

    code = run_cli(["--config", str(cfg), "run"])
    captured = capsys.readouterr()

    assert code == 2
    assert "Circular reporting dependency" in captured.err
    assert not (tmp_path / "log.txt").exists()


def test_strict_deps_rejects_unknown_dependency(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "verify.json"
    _write_json_config(cfg, [_leaf("a", _py("pass"), reporting_depends_on=["nope"])])

    assert run_cli(["--config", str(cfg), "graph"]) == 0
    capsys.readouterr()

    code = run_cli(["--config", str(cfg), "graph", "--strict-deps"])
    assert code == 2
    assert "nope" in capsys.readouterr().err


def test_invalid_config_path_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    missing = tmp_path / "missing.json"

    code = run_cli(["--config", str(missing), "list"])
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err.startswith("Error:")


def test_missing_config_in_cwd_returns_2(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)

    code = run_cli(["list"])

    assert code == 2
    assert "No verify config found" in capsys.readouterr().err


def test_config_is_discovered_in_cwd(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "verify.yml").write_text(
        "tasks:\n  - key: lint\n    run: echo lint\n", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)

    code = run_cli(["list"])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["lint"]
