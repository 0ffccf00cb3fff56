"""
Tests for aggregate(): worst-of semantics, favorites, counters and edge cases.
"""

from __future__ import annotations

import itertools
import unittest

from jenkins_monitor.aggregator import aggregate, aggregate_builds, tracked_jobs, worst_status
from jenkins_monitor.models import BuildStatus

from .test_common import make_build, make_job

SEVERITY_ORDER = [
    BuildStatus.FAILURE,
    BuildStatus.UNSTABLE,
    BuildStatus.ABORTED,
    BuildStatus.BUILDING,
    BuildStatus.UNKNOWN,
    BuildStatus.DISABLED,
    BuildStatus.SUCCESS,
]


class TestWorstStatus(unittest.TestCase):

    def test_severity_order(self):
        ranked = sorted(BuildStatus, key=lambda s: s.severity, reverse=True)
        self.assertEqual(ranked, SEVERITY_ORDER)

    def test_empty_is_unknown(self):
        self.assertIs(worst_status([]), BuildStatus.UNKNOWN)

    def test_worst_of_every_pair(self):
        for a, b in itertools.combinations(SEVERITY_ORDER, 2):
            # a precedes b in the order, so a is worse
            self.assertIs(worst_status([b, a]), a, f"{a} vs {b}")
            self.assertIs(worst_status([a, b]), a, f"{a} vs {b}")


class TestAggregate(unittest.TestCase):

    def test_empty_job_set_is_unknown_not_success(self):
        snapshot = aggregate([])
        self.assertIs(snapshot.overall_status, BuildStatus.UNKNOWN)
        self.assertEqual(snapshot.total, 0)

    def test_all_green_is_success(self):
        snapshot = aggregate([make_job("a"), make_job("b")])
        self.assertIs(snapshot.overall_status, BuildStatus.SUCCESS)
        self.assertEqual(snapshot.succeeded, 2)

    def test_building_does_not_override_failure(self):
        jobs = [
            make_job("a", BuildStatus.FAILURE),
            make_job("b", BuildStatus.BUILDING),
            make_job("c", BuildStatus.SUCCESS),
        ]
        self.assertIs(aggregate(jobs).overall_status, BuildStatus.FAILURE)

    def test_is_deterministic(self):
        jobs = [
            make_job("a", BuildStatus.UNSTABLE),
            make_job("b", BuildStatus.ABORTED),
            make_job("c", BuildStatus.DISABLED),
        ]
        first = aggregate(jobs)
        second = aggregate(jobs)
        self.assertEqual(first.overall_status, second.overall_status)
        self.assertEqual(first.jobs, second.jobs)
        self.assertIs(first.overall_status, BuildStatus.UNSTABLE)

    def test_keeps_server_order(self):
        jobs = [make_job("zeta"), make_job("alpha"), make_job("mid")]
        self.assertEqual(aggregate(jobs).job_names, ["zeta", "alpha", "mid"])

    def test_counters(self):
        jobs = [
            make_job("a", BuildStatus.FAILURE),
            make_job("b", BuildStatus.FAILURE),
            make_job("c", BuildStatus.UNSTABLE),
            make_job("d", BuildStatus.ABORTED),
            make_job("e", BuildStatus.SUCCESS),
            make_job("f", BuildStatus.BUILDING),
            make_job("g", BuildStatus.DISABLED),
        ]
        snapshot = aggregate(jobs)
        self.assertEqual(snapshot.broken, 2)
        self.assertEqual(snapshot.unstable, 1)
        self.assertEqual(snapshot.aborted, 1)
        self.assertEqual(snapshot.succeeded, 1)
        self.assertEqual(snapshot.building, 1)
        self.assertEqual(snapshot.total, 7)

    def test_sequence_is_recorded(self):
        self.assertEqual(aggregate([make_job()], sequence=12).sequence, 12)


class TestFavorites(unittest.TestCase):

    def test_only_favorites_are_tracked_when_present(self):
        jobs = [
            make_job("broken-but-ignored", BuildStatus.FAILURE),
            make_job("mine", BuildStatus.UNSTABLE, favorite=True),
        ]
        snapshot = aggregate(jobs)
        self.assertIs(snapshot.overall_status, BuildStatus.UNSTABLE)
        self.assertEqual(snapshot.total, 1)
        # The full list is still carried by the snapshot
        self.assertEqual(len(snapshot.jobs), 2)

    def test_all_jobs_tracked_without_favorites(self):
        jobs = [make_job("a"), make_job("b", BuildStatus.FAILURE)]
        self.assertEqual(tracked_jobs(jobs), jobs)


class TestAggregateBuilds(unittest.TestCase):

    def test_wraps_builds_in_order(self):
        builds = [make_build("a", 2), make_build("b", 1)]
        snapshot = aggregate_builds(builds, sequence=3)
        self.assertEqual(snapshot.builds, tuple(builds))
        self.assertEqual(snapshot.sequence, 3)
