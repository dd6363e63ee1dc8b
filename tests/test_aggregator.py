"""Tests for concurrent multi-source aggregation."""

import threading
import time

from jobscout.aggregator import aggregate
from jobscout.sources.base import JobSource

from conftest import make_job


class StaticSource(JobSource):
    def __init__(self, tag, jobs, gate=None, release=None):
        self.tag = tag
        self.jobs = jobs
        self.gate = gate
        self.release = release

    def fetch(self, keywords, location):
        if self.gate is not None:
            self.gate.wait(timeout=5)
            time.sleep(0.1)
        if self.release is not None:
            self.release.set()
        return list(self.jobs)


class BrokenSource(JobSource):
    tag = "broken"

    def fetch(self, keywords, location):
        raise RuntimeError("adapter exploded")


def test_failing_source_does_not_fail_the_aggregate():
    a = StaticSource("arbeitsagentur", [make_job(1), make_job(2)])
    b = StaticSource("jsearch", [make_job(3, "jsearch")])

    jobs = aggregate("python", "Berlin", [a, BrokenSource(), b])

    assert len(jobs) == 3
    assert {j.external_id for j in jobs} == {"ext-1", "ext-2", "ext-3"}


def test_results_follow_completion_order():
    first_done = threading.Event()
    # the slow source waits until the fast one has returned
    slow = StaticSource("arbeitsagentur", [make_job(1), make_job(2)], gate=first_done)
    fast = StaticSource("jsearch", [make_job(3, "jsearch"), make_job(4, "jsearch")], release=first_done)

    jobs = aggregate("python", "Berlin", [slow, fast])

    assert [j.external_id for j in jobs] == ["ext-3", "ext-4", "ext-1", "ext-2"]


def test_untagged_jobs_take_the_source_tag():
    live = StaticSource("linkedin", [make_job(1, source_tag="")])
    jobs = aggregate("python", "Remote", [live])
    assert jobs[0].source_tag == "linkedin"


def test_cross_source_duplicates_are_kept():
    a = StaticSource("arbeitsagentur", [make_job(1)])
    b = StaticSource("jsearch", [make_job(1, "jsearch")])
    assert len(aggregate("python", "Berlin", [a, b])) == 2


def test_no_sources_means_no_jobs():
    assert aggregate("python", "Berlin", []) == []
