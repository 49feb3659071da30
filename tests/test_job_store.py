#!/usr/bin/env python3
"""
Job store tests: snapshots, write-through persistence, query views and
startup loading.
"""

import sys
import json
import tempfile
import threading
import unittest
from datetime import timedelta, timezone
from pathlib import Path
from unittest import mock

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ytscribe.core.constants import JobStatus
from ytscribe.core.job_store import JobStore
from ytscribe.core.models import Job, utcnow


class JobStoreTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.jobs_dir = Path(self._tmp.name) / "jobs"
        self.store = JobStore(self.jobs_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def read_file(self, job_id):
        with open(self.store.job_path(job_id)) as f:
            return json.load(f)


class TestCreateAndGet(JobStoreTestCase):

    def test_create_job(self):
        job = self.store.create("a1", url="https://youtu.be/abc123")
        self.assertEqual(job.status, JobStatus.QUEUED)
        self.assertEqual((job.progress, job.audio_progress, job.transcript_progress), (0, 0, 0))
        self.assertEqual(self.read_file("a1")['status'], JobStatus.QUEUED)

    def test_duplicate_id_rejected(self):
        self.store.create("a1")
        with self.assertRaises(KeyError):
            self.store.create("a1")
        self.assertEqual(len(self.store), 1)

    def test_get_returns_snapshot(self):
        self.store.create("a1")
        snapshot = self.store.get("a1")
        snapshot.status = JobStatus.DONE
        snapshot.text = "mutated"
        self.assertEqual(self.store.get("a1").status, JobStatus.QUEUED)
        self.assertEqual(self.store.get("a1").text, "")

    def test_get_unknown(self):
        self.assertIsNone(self.store.get("nope"))


class TestUpdate(JobStoreTestCase):

    def test_update_writes_through(self):
        self.store.create("a1")
        updated = self.store.update_status("a1", JobStatus.TRANSCRIBING, (50, 100, 0),
                                           audio_file="/files/a1.wav")
        self.assertEqual(updated.status, JobStatus.TRANSCRIBING)

        on_disk = self.read_file("a1")
        self.assertEqual(on_disk['status'], JobStatus.TRANSCRIBING)
        self.assertEqual(on_disk['progress'], 50)
        self.assertEqual(on_disk['audio_progress'], 100)
        self.assertEqual(on_disk['transcript_progress'], 0)
        self.assertEqual(on_disk['audio_file'], "/files/a1.wav")

    def test_update_rejects_unknown_field(self):
        self.store.create("a1")
        with self.assertRaises(ValueError):
            self.store.update("a1", id="other")
        with self.assertRaises(ValueError):
            self.store.update("a1", status="processing")

    def test_update_unknown_job(self):
        self.assertIsNone(self.store.update("nope", status=JobStatus.DONE))

    def test_persist_failure_keeps_memory_state(self):
        self.store.create("a1")
        with mock.patch('ytscribe.core.job_store.os.replace', side_effect=OSError("disk full")):
            with self.assertLogs('ytscribe.core.job_store', level='ERROR'):
                self.store.update("a1", status=JobStatus.DOWNLOADING, progress=25)

        self.assertEqual(self.store.get("a1").status, JobStatus.DOWNLOADING)
        self.assertEqual(self.read_file("a1")['status'], JobStatus.QUEUED)


class TestConcurrentAccess(JobStoreTestCase):

    def test_concurrent_updates_and_reads(self):
        job_ids = [f"job-{i}" for i in range(4)]
        for job_id in job_ids:
            self.store.create(job_id)

        torn = []
        errors = []
        stop = threading.Event()

        def writer(job_id, offset):
            try:
                for step in range(40):
                    value = offset + step
                    self.store.update(job_id, progress=value, audio_progress=value,
                                      transcript_progress=value, text=f"v{value}")
            except Exception as e:
                errors.append(e)

        def reader():
            try:
                while not stop.is_set():
                    snapshots = [self.store.get(job_id) for job_id in job_ids]
                    snapshots += self.store.list_active()
                    for job in snapshots:
                        if not (job.progress == job.audio_progress == job.transcript_progress
                                and job.text in ("", f"v{job.progress}")):
                            torn.append(job)
            except Exception as e:
                errors.append(e)

        writers = [threading.Thread(target=writer, args=(job_id, offset))
                   for job_id in job_ids for offset in (0, 1000)]
        readers = [threading.Thread(target=reader) for _ in range(3)]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join(30)
        stop.set()
        for t in readers:
            t.join(30)

        self.assertEqual(errors, [])
        self.assertEqual(torn, [])
        for job_id in job_ids:
            in_memory = self.store.get(job_id)
            self.assertIn(in_memory.progress, (39, 1039))
            self.assertEqual(self.read_file(job_id), in_memory.to_dict())
        self.assertEqual(sorted(p.name for p in self.jobs_dir.iterdir()),
                         sorted(f"{job_id}.json" for job_id in job_ids))


class TestQueries(JobStoreTestCase):

    def test_list_active_window_uses_creation_time(self):
        now = utcnow()
        self.store.create("running-old", created=now - timedelta(hours=48))
        self.store.update("running-old", status=JobStatus.TRANSCRIBING)
        self.store.create("done-recent", created=now - timedelta(hours=1))
        self.store.update("done-recent", status=JobStatus.DONE)
        self.store.create("done-old", created=now - timedelta(hours=25))
        self.store.update("done-old", status=JobStatus.DONE)
        self.store.create("error-old", created=now - timedelta(hours=30))
        self.store.update("error-old", status=JobStatus.ERROR, error="boom")

        active = {job.id for job in self.store.list_active(now=now)}
        self.assertEqual(active, {"running-old", "done-recent"})

    def test_done_job_leaves_active_after_a_day(self):
        created = utcnow()
        self.store.create("a1", created=created)
        self.store.update("a1", status=JobStatus.DONE)

        later = created + timedelta(hours=24, seconds=1)
        self.assertEqual([j.id for j in self.store.list_active(now=created)], ["a1"])
        self.assertEqual(self.store.list_active(now=later), [])
        self.assertEqual([j.id for j in self.store.list_history()], ["a1"])

    def test_list_history_newest_first(self):
        now = utcnow()
        for hours, job_id in ((3, "oldest"), (1, "newest"), (2, "middle")):
            self.store.create(job_id, created=now - timedelta(hours=hours))
            self.store.update(job_id, status=JobStatus.DONE)
        self.store.create("failed", created=now)
        self.store.update("failed", status=JobStatus.ERROR, error="x")
        self.store.create("queued", created=now)

        self.assertEqual([j.id for j in self.store.list_history()],
                         ["newest", "middle", "oldest"])


class TestLoadAll(JobStoreTestCase):

    def test_round_trip(self):
        self.store.create("a1", url="https://www.youtube.com/watch?v=abc123")
        self.store.update("a1",
                          status=JobStatus.DONE, progress=100, audio_progress=100,
                          transcript_progress=100, text="hi there",
                          file="/files/a1.txt", audio_file="/files/a1.wav",
                          title="T", description="D", thumbnail="http://t/x.jpg",
                          duration=61, channel_name="C")
        original = self.store.get("a1")

        reloaded_store = JobStore(self.jobs_dir)
        loaded = reloaded_store.load_all()

        self.assertEqual(len(loaded), 1)
        self.assertEqual(loaded[0], original)
        self.assertEqual(reloaded_store.get("a1").created, original.created)

    def test_malformed_files_skipped(self):
        self.store.create("good")
        (self.jobs_dir / "broken.json").write_text("{not json")
        (self.jobs_dir / "list.json").write_text("[]")
        (self.jobs_dir / "noid.json").write_text('{"status": "done"}')
        (self.jobs_dir / "notes.txt").write_text("ignored")

        reloaded_store = JobStore(self.jobs_dir)
        with self.assertLogs('ytscribe.core.job_store', level='WARNING'):
            loaded = reloaded_store.load_all()

        self.assertEqual([job.id for job in loaded], ["good"])

    def test_record_without_utc_offset_is_usable(self):
        (self.jobs_dir / "naive.json").write_text(json.dumps(
            {'id': "naive", 'status': "done", 'created': "2024-05-01T10:00:00"}))
        (self.jobs_dir / "epoch.json").write_text(json.dumps(
            {'id': "epoch", 'status': "done", 'created': 1714557600}))

        with self.assertLogs('ytscribe.core.job_store', level='WARNING'):
            loaded = self.store.load_all()

        self.assertEqual([job.id for job in loaded], ["naive"])
        self.assertEqual(loaded[0].created.tzinfo, timezone.utc)
        self.assertEqual(self.store.list_active(), [])
        self.assertEqual([j.id for j in self.store.list_history()], ["naive"])

    def test_load_missing_directory(self):
        store = JobStore(Path(self._tmp.name) / "elsewhere")
        self.assertEqual(store.load_all(), [])


class TestSerialization(unittest.TestCase):

    def test_empty_fields_omitted(self):
        data = Job(id="a1").to_dict()
        self.assertEqual(set(data), {'id', 'status', 'progress', 'audio_progress',
                                     'transcript_progress', 'created'})

    def test_from_dict_ignores_unknown_keys(self):
        job = Job.from_dict({'id': "a1", 'status': "done", 'extra': 1,
                             'created': "2024-05-01T10:00:00+00:00"})
        self.assertEqual(job.status, JobStatus.DONE)
        self.assertEqual(job.created.year, 2024)

    def test_from_dict_requires_id(self):
        with self.assertRaises(ValueError):
            Job.from_dict({'status': "queued"})


if __name__ == "__main__":
    unittest.main()
