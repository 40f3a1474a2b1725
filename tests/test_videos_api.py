import asyncio
import io
import time
from pathlib import Path

import pytest
from starlette.datastructures import Headers, UploadFile

from vidshare.models.video import Video
from vidshare.services import ffmpeg_media
from vidshare.services.errors import ProcessingError
from vidshare.services.ffmpeg_media import generate_thumbnail
from vidshare.services.processor import PassthroughProcessor, ProcessedMedia, TranscodeProcessor, VideoProcessor
from vidshare.services.storage import (
    PLACEHOLDER_THUMBNAIL,
    ensure_storage_dirs,
    original_dir,
    processed_dir,
    storage_dirs,
    thumbnails_dir,
)
from vidshare.services.video_upload import handle_upload

MB = 1024 * 1024


def video_bytes(size=2 * MB):
    return b"\x00\x00\x00\x18ftypmp42" + b"\x00" * (size - 12)


def upload(client, title="My video", name="a.mp4", data=None, content_type="video/mp4"):
    data = video_bytes() if data is None else data
    return client.post(
        "/api/upload",
        files={"video": (name, data, content_type)},
        data={"title": title},
    )


def file_count():
    return sum(len(list(d.iterdir())) for d in storage_dirs() if d.is_dir())


def record_count(db):
    return db.query(Video).count()


async def fake_transcode(src, dst):
    dst.write_bytes(src.read_bytes())


async def fake_thumbnail(src, dst):
    dst.write_bytes(b"\xff\xd8 thumb")


async def failing_transcode(src, dst):
    dst.write_bytes(b"partial")
    raise ProcessingError("The video could not be processed.", client_fault=True, error="moov atom not found")


async def crashing_thumbnail(src, dst):
    raise ProcessingError("Video processing is not available on this server.", error="ffmpeg not found")


def test_upload_valid_video_returns_201(client, db):
    res = upload(client, title="  Skate day  ")
    assert res.status_code == 201
    body = res.json()
    assert body["message"]
    video = body["video"]
    assert set(video) == {"_id", "title", "path", "thumbnailPath", "uploadDate"}
    assert video["title"] == "Skate day"
    assert video["path"].startswith("/uploads/processed/video-")
    assert video["thumbnailPath"] == PLACEHOLDER_THUMBNAIL
    assert record_count(db) == 1
    # raw upload is transient
    assert list(original_dir().iterdir()) == []


def test_uploaded_video_is_listed_and_served(client):
    data = video_bytes(1 * MB)
    created = upload(client, title="Served", data=data).json()["video"]

    listed = client.get("/api/videos").json()
    assert [v["_id"] for v in listed] == [created["_id"]]
    assert listed[0]["title"] == "Served"

    served = client.get(created["path"])
    assert served.status_code == 200
    assert served.content == data


def test_oversize_upload_is_rejected_without_leftovers(client, db):
    res = upload(client, data=video_bytes(5 * MB + 1))
    assert res.status_code == 400
    assert "5 MB" in res.json()["message"]
    assert record_count(db) == 0
    assert file_count() == 0


@pytest.mark.parametrize("content_type", ["image/png", "application/pdf", "text/plain"])
def test_disallowed_type_is_rejected(client, db, content_type):
    before = file_count()
    res = upload(client, name="a.png", content_type=content_type)
    assert res.status_code == 400
    assert set(res.json()) == {"message"}
    assert file_count() == before
    assert record_count(db) == 0


@pytest.mark.parametrize("title", ["", "   "])
def test_blank_title_is_rejected_and_temp_file_removed(client, db, title):
    res = upload(client, title=title)
    assert res.status_code == 400
    assert "title" in res.json()["message"].lower()
    assert list(original_dir().iterdir()) == []
    assert file_count() == 0
    assert record_count(db) == 0


def test_missing_file_is_rejected(client):
    res = client.post("/api/upload", data={"title": "no file"})
    assert res.status_code == 400
    assert res.json()["message"]


def test_listing_is_newest_first(client):
    assert upload(client, title="A", name="a.mp4").status_code == 201
    assert upload(client, title="B", name="b.mp4").status_code == 201

    listed = client.get("/api/videos").json()
    assert [v["title"] for v in listed] == ["B", "A"]


def test_listing_is_idempotent(client):
    for title in ("one", "two", "three"):
        upload(client, title=title, data=video_bytes(1024))
    first = client.get("/api/videos").json()
    second = client.get("/api/videos").json()
    assert first == second
    assert len(first) == 3


def test_empty_listing(client):
    res = client.get("/api/videos")
    assert res.status_code == 200
    assert res.json() == []


@pytest.mark.parametrize(
    "processor",
    [TranscodeProcessor(transcode=fake_transcode, thumbnail=fake_thumbnail)],
    ids=["transcode"],
)
def test_transcode_upload_has_thumbnail(client, db, processor):
    res = upload(client, title="With thumb")
    assert res.status_code == 201
    video = res.json()["video"]
    assert video["path"].endswith("-processed.mp4")
    assert video["thumbnailPath"].startswith("/uploads/thumbnails/")
    assert video["thumbnailPath"].endswith("-thumb.jpg")
    assert client.get(video["thumbnailPath"]).status_code == 200

    row = db.query(Video).one()
    assert row.original_filename.startswith("video-")
    assert row.processed_filename.endswith("-processed.mp4")
    assert row.thumbnail_filename.endswith("-thumb.jpg")
    assert list(original_dir().iterdir()) == []


@pytest.mark.parametrize(
    "processor",
    [TranscodeProcessor(transcode=failing_transcode, thumbnail=fake_thumbnail)],
    ids=["transcode-fails"],
)
def test_failed_transcode_leaves_no_record_and_no_files(client, db, processor):
    res = upload(client)
    assert res.status_code == 400
    assert record_count(db) == 0
    assert file_count() == 0


@pytest.mark.parametrize(
    "processor",
    [TranscodeProcessor(transcode=fake_transcode, thumbnail=crashing_thumbnail)],
    ids=["ffmpeg-missing"],
)
def test_system_processing_fault_is_500(client, db, processor):
    res = upload(client)
    assert res.status_code == 500
    body = res.json()
    assert body["message"]
    assert body["error"] == "ffmpeg not found"
    assert record_count(db) == 0
    assert file_count() == 0


class FixedNameProcessor(VideoProcessor):
    """Always writes the same processed name to force a uniqueness violation."""

    name = "fixed"

    async def process(self, raw_path, cleanup):
        target = processed_dir() / "taken.mp4"
        cleanup.register(target)
        target.write_bytes(raw_path.read_bytes())
        return ProcessedMedia(processed_path=target)


@pytest.mark.parametrize("processor", [FixedNameProcessor()], ids=["fixed-name"])
def test_persistence_failure_is_500_and_cleans_files(client, db, processor):
    db.add(Video(title="existing", processed_filename="taken.mp4", processed_path="/uploads/processed/taken.mp4"))
    db.commit()

    res = upload(client)
    assert res.status_code == 500
    assert "error" in res.json()
    assert record_count(db) == 1
    assert list(original_dir().iterdir()) == []
    assert list(processed_dir().iterdir()) == []
    assert list(thumbnails_dir().iterdir()) == []


@pytest.mark.asyncio
async def test_processed_filenames_stay_unique_over_1000_uploads(settings, db):
    ensure_storage_dirs()
    processor = PassthroughProcessor()
    names = set()
    for i in range(1000):
        file = UploadFile(
            file=io.BytesIO(b"clip"),
            filename="same-name.mp4",
            headers=Headers({"content-type": "video/mp4"}),
        )
        video = await handle_upload(file, f"clip {i}", db, processor, settings)
        names.add(video.processed_filename)

    assert len(names) == 1000
    assert record_count(db) == 1000


def test_spa_fallback_serves_index(client):
    for path in ("/", "/watch/some-video"):
        res = client.get(path)
        assert res.status_code == 200
        assert "text/html" in res.headers["content-type"]


def test_spa_serves_placeholder_thumbnail(client):
    res = client.get(PLACEHOLDER_THUMBNAIL)
    assert res.status_code == 200
    assert "svg" in res.headers["content-type"]


async def first_frame_only(args, timeout=None):
    # a half-second clip: no frame at the default 1 s seek, a frame at 0
    if args[args.index("-ss") + 1] == "0":
        Path(args[-1]).write_bytes(b"\xff\xd8 first frame")


@pytest.mark.parametrize(
    "processor",
    [TranscodeProcessor(transcode=fake_transcode, thumbnail=generate_thumbnail)],
    ids=["half-second-clip"],
)
def test_clip_shorter_than_thumbnail_seek_is_accepted(client, db, processor, monkeypatch):
    monkeypatch.setattr(ffmpeg_media, "run_ffmpeg", first_frame_only)

    res = upload(client, title="Blink", data=video_bytes(64 * 1024))

    assert res.status_code == 201
    thumb = res.json()["video"]["thumbnailPath"]
    assert thumb.startswith("/uploads/thumbnails/")
    assert client.get(thumb).content == b"\xff\xd8 first frame"
    assert record_count(db) == 1


@pytest.mark.asyncio
async def test_slow_commit_does_not_stall_other_requests(settings, db, monkeypatch):
    ensure_storage_dirs()
    real_commit = db.commit

    def slow_commit():
        time.sleep(0.5)
        real_commit()

    monkeypatch.setattr(db, "commit", slow_commit)

    gaps = []

    async def heartbeat():
        last = time.monotonic()
        while True:
            await asyncio.sleep(0.01)
            now = time.monotonic()
            gaps.append(now - last)
            last = now

    beat = asyncio.create_task(heartbeat())
    file = UploadFile(
        file=io.BytesIO(video_bytes(64 * 1024)),
        filename="slow.mp4",
        headers=Headers({"content-type": "video/mp4"}),
    )
    try:
        video = await handle_upload(file, "slow commit", db, PassthroughProcessor(), settings)
    finally:
        beat.cancel()

    assert video.title == "slow commit"
    assert len(gaps) > 10
    assert max(gaps) < 0.25
