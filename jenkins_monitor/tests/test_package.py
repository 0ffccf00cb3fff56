"""
Tests for the public package surface.
"""

from __future__ import annotations

import unittest

import jenkins_monitor
from jenkins_monitor import const


class TestPackageExports(unittest.TestCase):

    def test_every_export_resolves(self):
        for name in jenkins_monitor.__all__:
            self.assertTrue(hasattr(jenkins_monitor, name), name)

    def test_version(self):
        self.assertEqual(jenkins_monitor.__version__, const.VERSION)

    def test_no_host_framework_constants(self):
        self.assertNotIn("DOMAIN", jenkins_monitor.__all__)
        self.assertFalse(hasattr(const, "DOMAIN"))
