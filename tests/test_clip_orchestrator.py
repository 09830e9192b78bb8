"""
Tests for the clip pipeline.
"""

import asyncio
import os

import pytest

from app.schemas.requests import ClipRequest
from app.services.clip_orchestrator import ClipOrchestrator, ClipRequestError
from app.services.media_downloader import MediaDownloadError
from app.services.progress_store import JobStatus
from app.services.video_trimmer import TrimError

from conftest import SAMPLE_URL, FakeDownloader, FakeTrimmer


def _request(start="0:10", end="0:40"):
    return ClipRequest(url=SAMPLE_URL, start_time=start, end_time=end)


class TestValidation:
    """Tests for request validation and submission."""

    def test_window(self, orchestrator):
        window = orchestrator.validate(_request("1:00:00", "1:05:30"))
        assert window.start_seconds == 3600
        assert window.duration == 330

    @pytest.mark.parametrize("start,end", [("0:10", "0:10"), ("1:00", "0:30")])
    def test_start_must_precede_end(self, orchestrator, start, end):
        with pytest.raises(ClipRequestError, match="Start time must be before end time"):
            orchestrator.validate(_request(start, end))

    def test_exactly_ten_minutes_allowed(self, orchestrator):
        assert orchestrator.validate(_request("0:00", "10:00")).duration == 600

    def test_longer_than_ten_minutes_rejected(self, orchestrator):
        with pytest.raises(ClipRequestError, match="Clip duration cannot exceed 10 minutes"):
            orchestrator.validate(_request("0:00", "10:01"))

    def test_rejected_request_creates_no_job(self, orchestrator, store, id_generator):
        with pytest.raises(ClipRequestError):
            orchestrator.submit(_request("0:30", "0:10"))
        assert len(store) == 0
        assert len(id_generator) == 0

    def test_submit_records_initial_state(self, orchestrator, store, settings):
        job = orchestrator.submit(_request())

        record = store.get(job.download_id)
        assert record.status == JobStatus.DOWNLOADING
        assert record.progress == 0
        assert record.message == "Starting download..."
        assert job.filename == f"{job.download_id}.mp4"
        assert job.download_url == f"/api/download-file/{job.download_id}.mp4"
        assert job.output_path == os.path.join(settings.download_directory, job.filename)
        assert job.temp_path.endswith("_temp.mkv")

    def test_ids_are_distinct(self, orchestrator):
        ids = {orchestrator.submit(_request()).download_id for _ in range(20)}
        assert len(ids) == 20


class TestPipeline:
    """Tests for ClipOrchestrator.run."""

    def _run(self, orchestrator, broadcaster, observer, request=None):
        job = orchestrator.submit(request or _request())
        broadcaster.attach(job.download_id, observer)
        asyncio.run(orchestrator.run(job))
        return job

    def test_completed_job(self, orchestrator, store, broadcaster, observer, trimmer):
        job = self._run(orchestrator, broadcaster, observer, _request("1:05", "1:35"))

        record = store.get(job.download_id)
        assert record.status == JobStatus.COMPLETED
        assert record.progress == 100
        assert record.message == "Done!"
        assert record.filename == job.filename
        assert record.download_url == job.download_url

        assert os.path.isfile(job.output_path)
        assert not os.path.exists(job.temp_path)
        assert trimmer.calls == [(job.temp_path, job.output_path, "01:05", 30)]

    def test_stage_order(self, orchestrator, broadcaster, observer):
        self._run(orchestrator, broadcaster, observer)

        stages = [(m["data"]["status"], m["data"]["progress"]) for m in observer.messages]
        assert stages[-3:] == [("processing", 50), ("processing", 60), ("completed", 100)]
        assert all(status == "downloading" for status, _ in stages[:-3])

    def test_download_progress_is_monotonic_and_capped(
        self, store, broadcaster, observer, trimmer, id_generator, settings
    ):
        # video stream, then yt-dlp starts over for the audio stream
        downloader = FakeDownloader(percentages=[30.0, 80.0, 100.0, 0.0, 40.0, 100.0])
        orchestrator = ClipOrchestrator(store, broadcaster, downloader, trimmer, id_generator, settings)

        self._run(orchestrator, broadcaster, observer)

        progress = [m["data"]["progress"] for m in observer.messages]
        assert progress == sorted(progress)
        downloading = [
            m["data"]["progress"] for m in observer.messages if m["data"]["status"] == "downloading"
        ]
        assert downloading == [15, 40, 50, 50, 50, 50]

    def test_download_failure(self, store, broadcaster, observer, trimmer, id_generator, settings):
        error = MediaDownloadError("Download failed with code 1: ERROR: Video unavailable", returncode=1)
        downloader = FakeDownloader(percentages=[10.0], error=error)
        orchestrator = ClipOrchestrator(store, broadcaster, downloader, trimmer, id_generator, settings)

        job = self._run(orchestrator, broadcaster, observer)

        record = store.get(job.download_id)
        assert record.status == JobStatus.ERROR
        assert record.progress == 0
        assert record.message == "Download failed with code 1: ERROR: Video unavailable"
        assert trimmer.calls == []
        assert observer.messages[-1]["data"]["status"] == "error"

    def test_cut_failure(self, store, broadcaster, observer, downloader, id_generator, settings):
        trimmer = FakeTrimmer(error=TrimError("FFmpeg failed with code 1", returncode=1))
        orchestrator = ClipOrchestrator(store, broadcaster, downloader, trimmer, id_generator, settings)

        job = self._run(orchestrator, broadcaster, observer)

        record = store.get(job.download_id)
        assert record.status == JobStatus.ERROR
        assert record.message == "FFmpeg failed with code 1"
        assert record.filename is None

    def test_late_progress_after_processing_ignored(self, orchestrator, store):
        job = orchestrator.submit(_request())
        orchestrator._update(
            job.download_id,
            store.get(job.download_id).model_copy(
                update={"status": JobStatus.PROCESSING, "progress": 50, "message": "Processing video..."}
            ),
        )

        orchestrator._on_download_progress(job.download_id, 45, "Downloading... 90.0%")

        assert store.get(job.download_id).status == JobStatus.PROCESSING

    def test_sweep_runs_after_completion(self, orchestrator, broadcaster, observer, settings):
        os.makedirs(settings.download_directory, exist_ok=True)
        stale = os.path.join(settings.download_directory, "clip_old.mp4")
        with open(stale, "wb") as f:
            f.write(b"old")
        os.utime(stale, (0, 0))

        job = self._run(orchestrator, broadcaster, observer)

        assert not os.path.exists(stale)
        assert os.path.isfile(job.output_path)

    def test_sweep_failure_does_not_fail_job(self, orchestrator, store, broadcaster, observer, mocker):
        mocker.patch(
            "app.services.clip_orchestrator.sweep_download_directory",
            side_effect=OSError("disk gone"),
        )

        job = self._run(orchestrator, broadcaster, observer)

        assert store.get(job.download_id).status == JobStatus.COMPLETED
