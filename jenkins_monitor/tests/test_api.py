"""
Tests for the api/ helpers: colour and result mapping, job list and
recent-build parsing, crumb handling and headers.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from datetime import datetime, timezone

import aiohttp

from jenkins_monitor.api.auth import (
    CrumbData,
    get_basic_auth,
    get_standard_headers,
    load_crumb,
    parse_crumb,
)
from jenkins_monitor.api.builds import parse_recent_builds
from jenkins_monitor.api.jobs import (
    job_url,
    jobs_url,
    parse_build,
    parse_jobs,
    status_from_color,
    status_from_result,
)
from jenkins_monitor.models import BuildStatus
from jenkins_monitor.requests import MalformedResponse

from .test_common import make_raw_build, make_raw_job


class TestStatusMapping(unittest.TestCase):

    def test_colors(self):
        cases = {
            "blue": BuildStatus.SUCCESS,
            "green": BuildStatus.SUCCESS,
            "yellow": BuildStatus.UNSTABLE,
            "red": BuildStatus.FAILURE,
            "aborted": BuildStatus.ABORTED,
            "disabled": BuildStatus.DISABLED,
            "notbuilt": BuildStatus.UNKNOWN,
            "red_anime": BuildStatus.BUILDING,
            "blue_anime": BuildStatus.BUILDING,
            "purple": BuildStatus.UNKNOWN,
            None: BuildStatus.UNKNOWN,
        }
        for color, expected in cases.items():
            self.assertIs(status_from_color(color), expected, color)

    def test_results(self):
        self.assertIs(status_from_result("SUCCESS"), BuildStatus.SUCCESS)
        self.assertIs(status_from_result("FAILURE"), BuildStatus.FAILURE)
        self.assertIs(status_from_result("NOT_BUILT"), BuildStatus.UNKNOWN)
        self.assertIs(status_from_result(None), BuildStatus.UNKNOWN)
        self.assertIs(status_from_result(None, building=True), BuildStatus.BUILDING)


class TestParseJobs(unittest.TestCase):

    def test_parses_jobs_in_server_order(self):
        raw = {
            "jobs": [
                make_raw_job("web", "red", make_raw_build(7, "FAILURE")),
                make_raw_job("api", "blue"),
            ]
        }
        jobs = parse_jobs(raw, favorites=frozenset({"api"}))

        self.assertEqual([j.name for j in jobs], ["web", "api"])
        self.assertIs(jobs[0].status, BuildStatus.FAILURE)
        self.assertEqual(jobs[0].last_build.number, 7)
        self.assertIsNone(jobs[1].last_build)
        self.assertFalse(jobs[0].favorite)
        self.assertTrue(jobs[1].favorite)

    def test_running_job_keeps_completed_status(self):
        raw = {"jobs": [make_raw_job("app", "red_anime", make_raw_build(3, None, building=True))]}
        (job,) = parse_jobs(raw)

        self.assertIs(job.status, BuildStatus.BUILDING)
        self.assertIs(job.completed_status, BuildStatus.FAILURE)
        self.assertIs(job.last_build.status, BuildStatus.BUILDING)

    def test_empty_job_list(self):
        self.assertEqual(parse_jobs({"jobs": []}), [])

    def test_malformed_payloads(self):
        for payload in ({}, {"jobs": None}, {"jobs": [{"color": "blue"}]}, []):
            with self.assertRaises(MalformedResponse, msg=repr(payload)):
                parse_jobs(payload)

    def test_build_timestamp_and_duration(self):
        build = parse_build("app", make_raw_build(1, timestamp=1704110400000, duration=90500))
        self.assertEqual(build.timestamp, datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
        self.assertAlmostEqual(build.duration, 90.5)


class TestParseRecentBuilds(unittest.TestCase):

    def test_newest_first_and_jobs_without_builds_skipped(self):
        raw = {
            "jobs": [
                make_raw_job("old", last_build=make_raw_build(1, timestamp=1000)),
                make_raw_job("never-built"),
                make_raw_job("new", last_build=make_raw_build(9, timestamp=5000)),
            ]
        }
        builds = parse_recent_builds(raw)
        self.assertEqual([str(b) for b in builds], ["new#9", "old#1"])

    def test_feed_is_capped(self):
        raw = {"jobs": [make_raw_job(f"job{i}", last_build=make_raw_build(i)) for i in range(1, 6)]}
        builds = parse_recent_builds(raw, max_builds=3)
        self.assertEqual([b.number for b in builds], [5, 4, 3])

    def test_malformed_payload(self):
        with self.assertRaises(MalformedResponse):
            parse_recent_builds({"jobs": [{"lastBuild": {"number": 1}}]})


class TestUrls(unittest.TestCase):

    def test_jobs_url(self):
        self.assertEqual(jobs_url("http://j.example.com/"), "http://j.example.com/api/json")
        self.assertEqual(
            jobs_url("http://j.example.com", "My View"),
            "http://j.example.com/view/My%20View/api/json",
        )

    def test_job_url_quotes_name(self):
        self.assertEqual(job_url("http://j.example.com", "a/b"), "http://j.example.com/job/a%2Fb")


class TestCrumb(unittest.TestCase):

    def test_parse_field_value_pair(self):
        crumb = parse_crumb("Jenkins-Crumb:abc123\n")
        self.assertEqual(crumb.field, "Jenkins-Crumb")
        self.assertEqual(crumb.value, "abc123")

    def test_parse_bare_value(self):
        crumb = parse_crumb("abc123")
        self.assertEqual(crumb.field, "Jenkins-Crumb")
        self.assertEqual(crumb.value, "abc123")

    def test_parse_empty(self):
        self.assertIsNone(parse_crumb("  \n").value)

    def test_load_from_file(self):
        with tempfile.NamedTemporaryFile("w", suffix=".crumb", delete=False) as handle:
            handle.write(".crumb:xyz")
        try:
            crumb = load_crumb(handle.name)
        finally:
            os.unlink(handle.name)
        self.assertEqual(crumb.field, ".crumb")
        self.assertEqual(crumb.value, "xyz")

    def test_load_without_file(self):
        self.assertIsNone(load_crumb(None).value)

    def test_load_missing_file_raises(self):
        with self.assertRaises(OSError):
            load_crumb("/nonexistent/jenkins.crumb")


class TestHeadersAndAuth(unittest.TestCase):

    def test_headers_without_crumb(self):
        self.assertEqual(get_standard_headers(), {"accept": "application/json"})
        self.assertEqual(get_standard_headers(CrumbData(None)), {"accept": "application/json"})

    def test_headers_with_crumb(self):
        headers = get_standard_headers(CrumbData("abc"))
        self.assertEqual(headers["Jenkins-Crumb"], "abc")

    def test_basic_auth(self):
        self.assertIsNone(get_basic_auth(None, "token"))
        auth = get_basic_auth("bot", "token")
        self.assertIsInstance(auth, aiohttp.BasicAuth)
        self.assertEqual(auth.login, "bot")
        self.assertEqual(auth.password, "token")
