import json

import pytest
from fastapi.testclient import TestClient

from conftest import BLACK, RED, WHITE, SyntheticFrameSource
from scenesync.main import app
from scenesync.services import FrameSourceRegistry, GeminiService

SRT = """1
00:00:01,000 --> 00:00:02,000
Opening line

2
00:00:02,000 --> 00:00:05,000
Across the cut
"""


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def video(tmp_path, monkeypatch):
    path = tmp_path / "episode.mp4"
    path.write_bytes(b"\x00")
    monkeypatch.setattr(
        FrameSourceRegistry,
        "_factory",
        lambda video_path: SyntheticFrameSource(10.0, [(0.0, BLACK), (3.0, WHITE), (7.0, RED)]),
    )
    return path


@pytest.fixture
def project_id(client, video):
    response = client.post("/api/projects", json={"video_path": str(video)})
    assert response.status_code == 200
    return response.json()["id"]


def read_events(response):
    return [
        json.loads(line[len("data: "):])
        for line in response.text.splitlines()
        if line.startswith("data: ")
    ]


@pytest.fixture
def detected(client, project_id):
    response = client.post(f"/api/projects/{project_id}/scenes/detect", json={"cut_threshold": 10})
    assert read_events(response)[-1]["status"] == "complete"
    return project_id


def scene_bounds(response):
    return [(s["startTime"], s["endTime"]) for s in response.json()["scenes"]]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_project_reads_video_metadata(client, project_id):
    project = client.get(f"/api/projects/{project_id}").json()

    assert project["video_duration"] == 10.0
    assert project["video_fps"] == 25.0
    assert (project["video_width"], project["video_height"]) == (64, 48)
    assert project["phase"] == "setup"


def test_create_project_missing_video(client):
    response = client.post("/api/projects", json={"video_path": "/nonexistent/video.mp4"})
    assert response.status_code == 404


def test_unknown_and_invalid_project(client):
    assert client.get("/api/projects/doesnotexist").status_code == 404
    assert client.get("/api/projects/bad.id").status_code == 400


def test_detect_streams_progress_and_saves(client, detected):
    response = client.get(f"/api/projects/{detected}/scenes")

    assert scene_bounds(response) == [(0.0, 3.0), (3.0, 7.0), (7.0, 10.0)]
    assert client.get(f"/api/projects/{detected}").json()["phase"] == "scene_validation"


def test_detect_rejects_out_of_range_threshold(client, project_id):
    response = client.post(f"/api/projects/{project_id}/scenes/detect", json={"cut_threshold": 99})
    assert response.status_code == 422


def test_scene_edits(client, detected):
    base = f"/api/projects/{detected}/scenes"

    response = client.post(f"{base}/2/boundary", json={"edge": "start", "time": 2.5})
    assert scene_bounds(response) == [(0.0, 2.5), (2.5, 7.0), (7.0, 10.0)]

    response = client.post(f"{base}/2/boundary", json={"edge": "start", "time": 8.0})
    assert response.status_code == 400

    response = client.post(f"{base}/1/lock")
    assert response.json()["scenes"][0]["isLocked"] is True
    response = client.delete(f"{base}/1")
    assert response.status_code == 400

    response = client.post(f"{base}/3/split", json={"timestamp": 8.5})
    assert [s["id"] for s in response.json()["scenes"]] == [1, 2, 3, 4]

    response = client.delete(f"{base}/2")
    assert scene_bounds(response) == [(0.0, 2.5), (2.5, 8.5), (8.5, 10.0)]

    assert client.delete(f"{base}/9").status_code == 404


def test_adjust_uses_video_frame_rate(client, detected):
    response = client.post(
        f"/api/projects/{detected}/scenes/2/adjust",
        json={"edge": "start", "direction": "forward"},
    )

    scene = response.json()["scenes"][1]
    assert scene["startTime"] == pytest.approx(3.04)
    assert scene["startFrameThumbnail"].startswith("data:image/jpeg;base64,")


def test_capture_frames(client, detected):
    response = client.post(f"/api/projects/{detected}/scenes/3/capture")

    scene = response.json()["scenes"][2]
    assert scene["startFrameThumbnail"]
    assert scene["endFrameThumbnail"]


def test_export_and_import(client, detected):
    base = f"/api/projects/{detected}/scenes"
    exported = client.get(f"{base}/export").json()
    assert "thumbnailUrl" not in exported[0]

    exported[1]["endTime"] = 6.0
    exported[2]["startTime"] = 6.0
    response = client.post(f"{base}/import", json=exported)
    assert scene_bounds(response) == [(0.0, 3.0), (3.0, 6.0), (6.0, 10.0)]

    response = client.post(f"{base}/import", json={"scenes": []})
    assert response.status_code == 400


def test_subtitles_are_adapted(client, detected):
    base = f"/api/projects/{detected}/subtitles"

    response = client.post(base, json={"filename": "episode.srt", "content": SRT})
    assert len(response.json()["subtitles"]) == 2

    adapted = client.post(f"{base}/adapt").json()["subtitles"]
    assert [(s["startTime"], s["endTime"], s["text"]) for s in adapted] == [
        (1.0, 2.0, "Opening line"),
        (2.0, 3.0, "Across the cut"),
        (3.0, 5.0, "Across the cut"),
    ]
    assert client.get(f"/api/projects/{detected}").json()["phase"] == "complete"

    response = client.get(f"{base}/adapted.srt")
    assert response.text.startswith("1\n00:00:01,000 --> 00:00:02,000\nOpening line\n")
    assert 'filename="episode_adapted.srt"' in response.headers["content-disposition"]


def test_subtitles_uploaded_before_detection(client, project_id):
    base = f"/api/projects/{project_id}"
    client.post(f"{base}/subtitles", json={"content": SRT})
    assert client.get(f"{base}/subtitles/adapted").json()["subtitles"] == []

    client.post(f"{base}/scenes/detect")

    assert len(client.get(f"{base}/subtitles/adapted").json()["subtitles"]) == 3


def test_upload_without_valid_blocks(client, project_id):
    response = client.post(f"/api/projects/{project_id}/subtitles", json={"content": "garbage"})
    assert response.status_code == 400


def test_analyze_scene(client, detected, monkeypatch):
    monkeypatch.setattr(GeminiService, "analyze_frame", lambda frame: "Wide shot")
    base = f"/api/projects/{detected}/scenes/1"

    assert client.post(f"{base}/analyze").status_code == 400

    client.post(f"{base}/capture")
    response = client.post(f"{base}/analyze")
    assert response.json()["status"] == "available"

    scene = client.get(f"/api/projects/{detected}/scenes").json()["scenes"][0]
    assert scene["analysis"] == "Wide shot"

    states = client.get(f"{base}/enrichment").json()
    assert {s["status"] for s in states} == {"available", "not_requested"}


def test_remote_failure_maps_to_bad_gateway(client, detected):
    base = f"/api/projects/{detected}/scenes/1"
    client.post(f"{base}/capture")

    response = client.post(f"{base}/clean", json={"edge": "end"})

    assert response.status_code == 502
    states = {(s["kind"], s["edge"]): s["status"] for s in client.get(f"{base}/enrichment").json()}
    assert states[("clean", "end")] == "failed"


def test_delete_project(client, project_id):
    assert client.delete(f"/api/projects/{project_id}").json() == {"status": "deleted"}
    assert client.get(f"/api/projects/{project_id}").status_code == 404


def test_analysis_is_dropped_when_scenes_are_renumbered(client, detected, monkeypatch):
    base = f"/api/projects/{detected}/scenes"
    client.post(f"{base}/2/capture")

    def analyze_while_deleting(frame):
        assert client.delete(f"{base}/1").status_code == 200
        return "Medium shot"

    monkeypatch.setattr(GeminiService, "analyze_frame", analyze_while_deleting)

    response = client.post(f"{base}/2/analyze")

    assert response.status_code == 409
    scenes = client.get(base).json()["scenes"]
    assert [(s["startTime"], s["endTime"]) for s in scenes] == [(0.0, 7.0), (7.0, 10.0)]
    assert all(s["analysis"] is None for s in scenes)


def test_analysis_is_dropped_when_boundary_moves(client, detected, monkeypatch):
    base = f"/api/projects/{detected}/scenes"
    client.post(f"{base}/2/capture")

    def analyze_while_moving(frame):
        client.post(f"{base}/2/boundary", json={"edge": "start", "time": 2.0})
        return "Medium shot"

    monkeypatch.setattr(GeminiService, "analyze_frame", analyze_while_moving)

    assert client.post(f"{base}/2/analyze").status_code == 409
    assert client.get(base).json()["scenes"][1]["analysis"] is None
    states = {(s["kind"], s["edge"]): s for s in client.get(f"{base}/2/enrichment").json()}
    assert states[("analysis", "start")]["status"] == "failed"


def interrupt_first_seek(source, action):
    """Run ``action`` once, from inside the first frame seek on ``source``."""
    seek = source.seek
    pending = [action]

    def seek_once(timestamp):
        if pending:
            pending.pop()()
        seek(timestamp)

    source.seek = seek_once


def test_capture_does_not_restore_deleted_scene(client, detected, video):
    base = f"/api/projects/{detected}/scenes"
    source = FrameSourceRegistry.get(detected, video)
    interrupt_first_seek(source, lambda: client.delete(f"{base}/3"))

    response = client.post(f"{base}/1/capture")

    assert response.status_code == 200
    assert scene_bounds(response) == [(0.0, 3.0), (3.0, 10.0)]
    assert response.json()["scenes"][0]["startFrameThumbnail"]
    assert scene_bounds(client.get(base)) == [(0.0, 3.0), (3.0, 10.0)]


def test_split_keeps_lock_taken_during_capture(client, detected, video):
    base = f"/api/projects/{detected}/scenes"
    source = FrameSourceRegistry.get(detected, video)
    interrupt_first_seek(source, lambda: client.post(f"{base}/3/lock"))

    response = client.post(f"{base}/3/split", json={"timestamp": 8.5})

    assert response.status_code == 400
    scenes = client.get(base).json()["scenes"]
    assert len(scenes) == 3
    assert scenes[2]["isLocked"] is True


def test_adjust_conflicts_when_its_scene_is_gone(client, detected, video):
    base = f"/api/projects/{detected}/scenes"
    source = FrameSourceRegistry.get(detected, video)
    interrupt_first_seek(source, lambda: client.delete(f"{base}/2"))

    response = client.post(
        f"{base}/2/adjust", json={"edge": "start", "direction": "forward"}
    )

    assert response.status_code == 409
    assert scene_bounds(client.get(base)) == [(0.0, 7.0), (7.0, 10.0)]


def test_detection_keeps_subtitles_uploaded_meanwhile(client, project_id, video):
    base = f"/api/projects/{project_id}"
    source = FrameSourceRegistry.get(project_id, video)
    interrupt_first_seek(
        source,
        lambda: client.post(f"{base}/subtitles", json={"filename": "episode.srt", "content": SRT}),
    )

    events = read_events(client.post(f"{base}/scenes/detect"))

    assert events[-1]["status"] == "complete"
    project = client.get(base).json()
    assert project["subtitle_filename"] == "episode.srt"
    assert project["phase"] == "scene_validation"
    assert len(client.get(f"{base}/subtitles/adapted").json()["subtitles"]) == 3
