from fastapi.testclient import TestClient
from app import app

client = TestClient(app)


def _files(local: bytes, remote: bytes | None = None):
    files = {"local_file": ("local.csv", local, "text/csv")}
    if remote is not None:
        files["remote_file"] = ("remote.csv", remote, "text/csv")
    return files


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_unknown_paths_are_404():
    assert client.get("/.well-known/appspecific/com.chrome.devtools.json").status_code == 404


def test_single_recording(walk_csv_bytes):
    r = client.post("/api/analyze/", files=_files(walk_csv_bytes), data={"leg_side": "LEFT"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["summary"]["mode"] == "single"
    assert body["local"]["total_steps"] > 0
    assert body["remote"] is None and body["comparison"] is None
    assert len(body["raw"]["local"]["timestamps"]) > 0


def test_paired_recordings(walk_csv_bytes):
    r = client.post(
        "/api/analyze/",
        files=_files(walk_csv_bytes, walk_csv_bytes),
        data={"leg_side": "RIGHT"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["summary"]["mode"] == "paired"
    assert body["summary"]["remote_side"] == "LEFT"
    assert body["comparison"]["overall_symmetry_score"] >= 99.0


def test_insufficient_walking_is_422(still_csv_bytes):
    r = client.post("/api/analyze/", files=_files(still_csv_bytes))
    assert r.status_code == 422
    assert "insufficient walking" in r.json()["detail"]


def test_bad_inputs_are_400(walk_csv_bytes):
    r = client.post("/api/analyze/", files=_files(b"timestamp,acc_x\n0,1\n1,2\n"))
    assert r.status_code == 400
    r = client.post("/api/analyze/", files=_files(walk_csv_bytes), data={"leg_side": "UP"})
    assert r.status_code == 400
    r = client.post(
        "/api/analyze/",
        files=_files(walk_csv_bytes, walk_csv_bytes),
        data={"leg_side": "LEFT", "remote_leg_side": "LEFT"},
    )
    assert r.status_code == 400
