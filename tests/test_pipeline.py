#!/usr/bin/env python3
"""
Pipeline executor tests: normal path, stage failures, chunked
transcription and the resume path.
"""

import sys
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

TESTS_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(TESTS_DIR.parent))
sys.path.insert(0, str(TESTS_DIR))

from fakes import FakeTools, make_config, write_sized_file, MIB

from ytscribe.core.artifacts import ArtifactStore
from ytscribe.core.constants import JobStatus, ErrorCode
from ytscribe.core.job_store import JobStore
from ytscribe.core.pipeline import PipelineExecutor

URL = "https://youtu.be/abc123"


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = make_config(self._tmp.name)
        self.artifacts = ArtifactStore(self.config.data_root, self.config.tmp_dir)
        self.artifacts.ensure_dirs()
        self.store = JobStore(self.config.jobs_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def build(self, **tool_kwargs):
        self.tools = FakeTools(self.config, **tool_kwargs)
        self.executor = PipelineExecutor(self.store, self.tools, self.artifacts)
        return self.executor

    def new_job(self, job_id="job-1", url=URL):
        return self.store.create(job_id, url=url)

    def persisted(self, job_id):
        with open(self.store.job_path(job_id)) as f:
            return json.load(f)

    def assertDone(self, job):
        self.assertEqual(job.status, JobStatus.DONE)
        self.assertEqual((job.progress, job.audio_progress, job.transcript_progress),
                         (100, 100, 100))
        self.assertTrue(job.text)
        self.assertEqual(job.file, f"/files/{job.id}.txt")
        self.assertEqual(job.error, "")

    def assertFailed(self, job, fragment):
        self.assertEqual(job.status, JobStatus.ERROR)
        self.assertEqual(job.progress, 0)
        self.assertIn(fragment, job.error)
        self.assertEqual(job.text, "")


class TestNormalPath(PipelineTestCase):

    def test_job_reaches_done(self):
        executor = self.build()
        job = self.new_job()

        self.assertTrue(executor.run(job.id))

        done = self.store.get(job.id)
        self.assertDone(done)
        self.assertEqual(done.text, "hello world")
        self.assertEqual(done.audio_file, f"/files/{job.id}.wav")
        self.assertEqual(done.title, "Test Video")
        self.assertEqual(done.duration, 754)
        self.assertEqual(done.channel_name, "Test Channel")
        self.assertEqual(done.url, URL)

        self.assertEqual(self.artifacts.read_transcript(job.id), "hello world")
        self.assertTrue(self.artifacts.has_public_audio(job.id))
        self.assertFalse(self.artifacts.has_tmp_audio(job.id))

        on_disk = self.persisted(job.id)
        self.assertEqual(on_disk['status'], JobStatus.DONE)
        self.assertEqual(on_disk['text'], "hello world")

    def test_metadata_failure_is_not_fatal(self):
        executor = self.build(metadata_error="yt-dlp failed (rc=1)")
        job = self.new_job()

        with self.assertLogs('ytscribe.core.pipeline', level='WARNING'):
            self.assertTrue(executor.run(job.id))

        done = self.store.get(job.id)
        self.assertDone(done)
        self.assertEqual(done.title, "")

    def test_download_failure(self):
        executor = self.build(download_error="yt-dlp failed (rc=1): ERROR: Video unavailable")
        job = self.new_job()

        self.assertFalse(executor.run(job.id))

        failed = self.store.get(job.id)
        self.assertFailed(failed, "Download failed")
        self.assertEqual(failed.error_code, ErrorCode.DOWNLOAD_FAILED)
        self.assertEqual(self.tools.calls['transcribe'], 0)
        self.assertNotIn(job.id, [j.id for j in self.store.list_history()])
        self.assertEqual(self.persisted(job.id)['status'], JobStatus.ERROR)

    def test_transcription_failure_keeps_audio_progress(self):
        executor = self.build(transcribe_error="whisper transcription failed (rc=2)")
        job = self.new_job()

        self.assertFalse(executor.run(job.id))

        failed = self.store.get(job.id)
        self.assertFailed(failed, "Transcription failed")
        self.assertEqual(failed.audio_progress, 100)
        self.assertEqual(failed.transcript_progress, 0)
        self.assertEqual(failed.audio_file, f"/files/{job.id}.wav")

    def test_save_failure(self):
        executor = self.build()
        job = self.new_job()
        # A directory where the transcript should go makes the write fail
        self.artifacts.transcript_path(job.id).mkdir(parents=True)

        self.assertFalse(executor.run(job.id))

        failed = self.store.get(job.id)
        self.assertFailed(failed, "Save failed")
        self.assertEqual(failed.error_code, ErrorCode.SAVE_FAILED)

    def test_failed_publish_keeps_temporary_audio(self):
        executor = self.build()
        job = self.new_job()

        with mock.patch.object(self.artifacts, 'publish_audio',
                               side_effect=OSError("read-only data root")):
            with self.assertLogs('ytscribe.core.pipeline', level='WARNING'):
                self.assertTrue(executor.run(job.id))

        done = self.store.get(job.id)
        self.assertDone(done)
        self.assertEqual(done.audio_file, "")
        self.assertFalse(self.artifacts.has_public_audio(job.id))
        self.assertTrue(self.artifacts.has_tmp_audio(job.id))

    def test_internal_fault_becomes_error(self):
        executor = self.build(metadata_error=RuntimeError("boom"))
        job = self.new_job()

        with self.assertLogs('ytscribe.core.pipeline', level='ERROR'):
            self.assertFalse(executor.run(job.id))

        failed = self.store.get(job.id)
        self.assertFailed(failed, "Internal error: boom")
        self.assertEqual(failed.error_code, ErrorCode.UNEXPECTED)

    def test_unknown_job_is_ignored(self):
        executor = self.build()
        self.assertFalse(executor.run("missing"))
        self.assertIsNone(self.store.get("missing"))


class TestChunkedTranscription(PipelineTestCase):

    def test_large_audio_is_chunked_and_failed_segment_skipped(self):
        executor = self.build(audio_size=12 * MIB, chunk_count=10, failing_chunks={2})
        job = self.new_job()

        with self.assertLogs('ytscribe.core.chunking', level='WARNING'):
            self.assertTrue(executor.run(job.id))

        done = self.store.get(job.id)
        self.assertDone(done)
        expected = " ".join(f"part{i}" for i in range(10) if i != 2)
        self.assertEqual(done.text, expected)
        self.assertEqual(self.tools.calls['split'], 1)
        self.assertEqual(self.tools.calls['transcribe'], 10)

        leftovers = list(self.config.tmp_dir.glob(f"{job.id}_chunk_*"))
        self.assertEqual(leftovers, [])

    def test_small_audio_is_not_chunked(self):
        executor = self.build(audio_size=10 * MIB)
        job = self.new_job()

        self.assertTrue(executor.run(job.id))
        self.assertEqual(self.tools.calls['split'], 0)
        self.assertEqual(self.tools.transcribed, [f"{job.id}.wav"])

    def test_all_segments_failing_is_a_transcription_failure(self):
        executor = self.build(audio_size=12 * MIB, chunk_count=3, failing_chunks={0, 1, 2})
        job = self.new_job()

        self.assertFalse(executor.run(job.id))
        self.assertFailed(self.store.get(job.id), "Transcription failed")


class TestResume(PipelineTestCase):

    def test_existing_public_audio_skips_download(self):
        executor = self.build()
        job = self.new_job()
        self.store.update_status(job.id, JobStatus.TRANSCRIBING, (50, 100, 0))
        write_sized_file(self.artifacts.public_audio_path(job.id), 4096)

        self.assertTrue(executor.resume(job.id))

        done = self.store.get(job.id)
        self.assertDone(done)
        self.assertEqual(done.audio_file, f"/files/{job.id}.wav")
        self.assertEqual(self.tools.calls['acquire'], 0)
        self.assertEqual(self.tools.transcribed, [f"{job.id}.wav"])

    def test_temporary_audio_is_published(self):
        executor = self.build()
        job = self.new_job()
        self.store.update_status(job.id, JobStatus.DOWNLOADING, (25, 0, 0))
        write_sized_file(self.artifacts.tmp_audio_path(job.id), 4096)

        self.assertTrue(executor.resume(job.id))

        self.assertDone(self.store.get(job.id))
        self.assertEqual(self.tools.calls['acquire'], 0)
        self.assertTrue(self.artifacts.has_public_audio(job.id))

    def test_missing_source_cannot_resume(self):
        executor = self.build()
        job = self.new_job(url="")

        self.assertFalse(executor.resume(job.id))

        failed = self.store.get(job.id)
        self.assertFailed(failed, "Cannot resume")
        self.assertEqual(failed.error_code, ErrorCode.RESUME_NO_SOURCE)
        self.assertEqual(self.tools.calls['acquire'], 0)

    def test_no_artifacts_downloads_again(self):
        executor = self.build()
        job = self.new_job()
        self.store.update_status(job.id, JobStatus.FETCHING_INFO, (10, 0, 0))

        self.assertTrue(executor.resume(job.id))

        self.assertDone(self.store.get(job.id))
        self.assertEqual(self.tools.calls['acquire'], 1)

    def test_existing_transcript_is_idempotent(self):
        executor = self.build()
        job = self.new_job()
        self.store.update_status(job.id, JobStatus.SAVING, (90, 100, 90))
        self.artifacts.write_transcript(job.id, "saved before the crash\n")

        for _ in range(2):
            self.assertTrue(executor.resume(job.id))
            done = self.store.get(job.id)
            self.assertDone(done)
            self.assertEqual(done.text, "saved before the crash\n")

        self.assertEqual(self.tools.calls['acquire'], 0)
        self.assertEqual(self.tools.calls['transcribe'], 0)

    def test_resume_download_failure(self):
        executor = self.build(download_error="network down")
        job = self.new_job()

        self.assertFalse(executor.resume(job.id))
        self.assertFailed(self.store.get(job.id), "Download failed: network down")


if __name__ == "__main__":
    unittest.main()
