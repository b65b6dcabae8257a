import json
from pathlib import Path

import pytest

import nextword_api
from nextword.engine import Engine
from nextword_api import web
from nextword_api.__main__ import main


def _seed(tmp: Path) -> str:
    root = tmp / "Archive"; root.mkdir()
    (root / "a.txt").write_text(
        "it goes well with cheese.\nit goes on and on.\nit goes well with wine.\n",
        encoding="utf-8",
    )
    return str(root)


@pytest.mark.e2e
def test_cli_build_and_query_json(tmp_path: Path, capsys):
    rc = main(["--build", "--roots", _seed(tmp_path), "--mode", "serial",
               "--q", "it goes", "--json"])
    assert rc == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows[0]["word"] == "well"
    assert set(rows[0]) == {"word", "score"}


@pytest.mark.e2e
def test_cli_load_saved_store(tmp_path: Path, capsys):
    store = str(tmp_path / "store.ngx")
    assert main(["--build", "--roots", _seed(tmp_path), "--out", store, "--mode", "serial"]) == 0
    capsys.readouterr()
    assert main(["--load", "--store", store, "--q", "it goes", "-k", "1"]) == 0
    out = capsys.readouterr().out
    assert "well" in out
    assert "cheese" not in out


@pytest.mark.e2e
def test_cli_reports_no_suggestion_and_stats(tmp_path: Path, capsys):
    rc = main(["--build", "--roots", _seed(tmp_path), "--mode", "serial",
               "--q", "zebra crossing", "--stats"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "(no suggestion)" in out
    assert "Phrases" in out


@pytest.mark.e2e
def test_cli_corrupt_store_exits_2(tmp_path: Path, capsys):
    bad = tmp_path / "bad.ngx"
    bad.write_bytes(b"\x00" * 64)
    assert main(["--load", "--store", str(bad), "--q", "it"]) == 2
    assert "error:" in capsys.readouterr().err


@pytest.mark.e2e
def test_cli_empty_sample_exits_2(tmp_path: Path, capsys):
    root = tmp_path / "short"; root.mkdir()
    (root / "a.txt").write_text("Hi.\nBye.\n", encoding="utf-8")
    assert main(["--build", "--roots", str(root), "--mode", "serial"]) == 2
    assert "no 2-gram pairs" in capsys.readouterr().err


@pytest.fixture
def client(tmp_path: Path, monkeypatch):
    eng = Engine()
    eng.build([_seed(tmp_path)], mode="serial")
    monkeypatch.setattr(web, "_engine", eng)
    yield web.app.test_client()
    eng.shutdown()


def test_api_predict(client):
    r = client.get("/api/predict?q=it%20goes&k=2")
    assert r.status_code == 200
    data = r.get_json()
    assert [row["word"] for row in data] == ["well", "on"]


def test_api_rejects_non_positive_k(client):
    assert client.get("/api/predict?q=it&k=0").status_code == 400
    assert client.get("/api/predict?q=it&k=-3").status_code == 400


def test_api_blank_query_is_empty_list(client):
    r = client.get("/api/predict?q=%20%20")
    assert r.status_code == 200
    assert r.get_json() == []


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"ok": True, "orders": [2, 3, 4]}


def test_health_not_ready(monkeypatch):
    monkeypatch.setattr(web, "_engine", None)
    r = web.app.test_client().get("/health")
    assert r.status_code == 503
    assert r.get_json()["ok"] is False


@pytest.mark.e2e
def test_process_api_builds_then_loads(tmp_path: Path):
    root = _seed(tmp_path)
    store = str(tmp_path / "store.ngx")
    try:
        nextword_api.initialize(store, [root])
        assert Path(store).exists()
        first = nextword_api.predict("it goes", 2)
        nextword_api.initialize(store)
        assert nextword_api.predict("it goes", 2) == first
        assert first[0].word == "well"
    finally:
        nextword_api.shutdown()
    with pytest.raises(RuntimeError):
        nextword_api.predict("it goes")


def test_process_api_needs_roots_without_store(tmp_path: Path):
    with pytest.raises(ValueError):
        nextword_api.initialize(str(tmp_path / "missing.ngx"))


def test_api_predict_not_ready(monkeypatch):
    monkeypatch.setattr(web, "_engine", None)
    r = web.app.test_client().get("/api/predict?q=it+goes")
    assert r.status_code == 503
    assert r.get_json() == {"error": "not ready"}
