import json

import pytest

from gallery_indexer import main as main_module
from tests.conftest import make_tree


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # root logger handlers stay with pytest
    monkeypatch.setattr(main_module, "setup_logging", lambda log_file, verbose: None)


def run_cli(argv):
    with pytest.raises(SystemExit) as exc:
        main_module.main(argv)
    return exc.value.code


def test_scan_prints_snapshot_json(tmp_path, capsys):
    make_tree(tmp_path, ["a.jpg", "sub/b.jpg", "notes.md"])

    code = run_cli(["scan", str(tmp_path), "--no-metadata"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["media_count"] == 1
    assert data["cover"]["name"] == "a.jpg"
    assert [d["name"] for d in data["directories"]] == ["sub"]
    assert data["meta_files"][0]["kind"] == "markdown"


def test_scan_writes_output_file(tmp_path):
    lib = make_tree(tmp_path / "lib", ["x.jpg"])
    out = tmp_path / "out" / "snap.json"

    assert run_cli(["scan", str(lib), "--no-metadata", "--output", str(out)]) == 0
    assert json.loads(out.read_text())["media"][0]["name"] == "x.jpg"


def test_missing_directory_exits_with_scan_error_code(tmp_path):
    assert run_cli(["scan", str(tmp_path), "missing"]) == 2


def test_bad_config_exits_with_one(tmp_path):
    cfg = tmp_path / "bad.json"
    cfg.write_text("{oops")
    assert run_cli(["--config", str(cfg), "scan", str(tmp_path)]) == 1


def test_list_then_not_modified(tmp_path, capsys, monkeypatch):
    lib = make_tree(tmp_path / "lib", ["d/v.txt"])
    db = tmp_path / "snap.db"

    assert run_cli(["list", str(lib), "d", "--db", str(db)]) == 0
    first = json.loads(capsys.readouterr().out)

    assert run_cli(["list", str(lib), "d", "--db", str(db),
                    "--known-last-modified", str(first["last_modified"]),
                    "--known-last-scanned", str(first["last_scanned"])]) == 0
    assert json.loads(capsys.readouterr().out) == {"not_modified": True}


def test_index_command(tmp_path):
    lib = make_tree(tmp_path / "lib", ["a/x.jpg", "b/"])
    db = tmp_path / "snap.db"

    assert run_cli(["index", str(lib), "--db", str(db), "--no-metadata", "--no-progress"]) == 0
