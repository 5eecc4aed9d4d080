# test_progress.py -- Tests for progress.py
# Copyright (C) 2026 The Kerngit Authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# Kerngit is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Tests for kerngit.progress."""

from io import StringIO

from kerngit.callbacks import TransferStats
from kerngit.progress import CLEAR_LINE, ProgressReporter, format_bytes

from . import FakeClock, TestCase


class FormatBytesTests(TestCase):
    def test_zero(self):
        self.assertEqual("0.00 B", format_bytes(0))

    def test_below_kib(self):
        self.assertEqual("1023.00 B", format_bytes(1023))

    def test_kib(self):
        self.assertEqual("1.00 KiB", format_bytes(1024))
        self.assertEqual("1.50 KiB", format_bytes(1536))

    def test_mib(self):
        self.assertEqual("10.00 MiB", format_bytes(10 * 2**20))

    def test_largest_unit(self):
        self.assertEqual("10.00 EiB", format_bytes(10 * 2**60))
        self.assertEqual("2048.00 EiB", format_bytes(2**71))

    def test_precision(self):
        self.assertEqual("2 KiB", format_bytes(2048, precision=0))
        self.assertEqual("1.50000 KiB", format_bytes(1536, precision=5))

    def test_not_fixed(self):
        self.assertEqual("1.5 KiB", format_bytes(1536, fixed=False))
        self.assertEqual("1 MiB", format_bytes(2**20, fixed=False))


class BrokenStream:
    def write(self, text):
        raise BrokenPipeError("closed")

    def flush(self):
        pass


class ProgressReporterTests(TestCase):
    def setUp(self):
        super().setUp()
        self.stream = StringIO()
        self.clock = FakeClock()
        self.reporter = ProgressReporter(self.stream, interval=2.0, clock=self.clock)

    def output(self):
        return self.stream.getvalue()

    def test_first_event_shown(self):
        self.reporter.pack_progress(0, 1, 10)
        self.assertEqual(CLEAR_LINE + "Packing objects: stage=0 1/10", self.output())

    def test_rate_limited(self):
        self.reporter.pack_progress(0, 1, 10)
        self.reporter.pack_progress(0, 2, 10)
        self.clock.advance(1.0)
        self.reporter.pack_progress(0, 3, 10)
        self.assertNotIn("2/10", self.output())
        self.assertNotIn("3/10", self.output())
        self.clock.advance(1.5)
        self.reporter.pack_progress(1, 4, 10)
        self.assertIn("stage=1 4/10", self.output())

    def test_terminal_bypasses_limiter(self):
        self.reporter.pack_progress(0, 1, 10)
        self.reporter.pack_progress(0, 10, 10)
        self.assertTrue(
            self.output().endswith(CLEAR_LINE + "Packing objects: stage=0 10/10\n")
        )

    def test_channels_independent(self):
        self.reporter.pack_progress(0, 1, 10)
        self.reporter.checkout_progress("a.c", 1, 3)
        self.assertIn("Checked-out: 1/3 (a.c)", self.output())

    def test_sideband(self):
        self.reporter.sideband_progress("Total 3 (delta 0)\r")
        self.reporter.sideband_progress("done.\n")
        self.assertEqual(
            CLEAR_LINE + "remote: Total 3 (delta 0)" + CLEAR_LINE + "remote: done.\n",
            self.output(),
        )

    def test_transfer_receiving(self):
        self.reporter.transfer_progress(
            TransferStats(total_objects=4, received_objects=1, indexed_objects=1,
                          received_bytes=2048)
        )
        self.assertEqual(
            CLEAR_LINE + "Received 1/4 objects (1) in 2.00 KiB", self.output()
        )

    def test_transfer_done_without_deltas(self):
        self.reporter.transfer_progress(
            TransferStats(total_objects=4, received_objects=4, indexed_objects=4,
                          received_bytes=100)
        )
        self.assertTrue(self.output().endswith("\n"))

    def test_transfer_resolving_deltas(self):
        stats = TransferStats(total_objects=4, received_objects=4,
                              indexed_objects=2, total_deltas=2)
        self.reporter.transfer_progress(stats)
        self.assertEqual(CLEAR_LINE + "Resolving deltas 0/2", self.output())
        self.reporter.transfer_progress(stats._replace(indexed_deltas=2))
        self.assertTrue(self.output().endswith(CLEAR_LINE + "Resolving deltas 2/2\n"))

    def test_transfer_without_header(self):
        self.reporter.transfer_progress(TransferStats())
        self.assertEqual("", self.output())

    def test_checkout_terminal(self):
        self.reporter.checkout_progress(None, 0, 2)
        self.reporter.checkout_progress("a", 1, 2)
        self.reporter.checkout_progress("b", 2, 2)
        self.assertEqual(
            CLEAR_LINE + "Checked-out: 0/2 ()" + CLEAR_LINE + "Checked-out: 2/2 (b)\n",
            self.output(),
        )

    def test_reset(self):
        self.reporter.pack_progress(0, 1, 10)
        self.reporter.reset()
        self.reporter.pack_progress(0, 2, 10)
        self.assertIn("2/10", self.output())

    def test_update_tips_new(self):
        sha = b"a" * 40
        self.reporter.update_tips("refs/remotes/origin/main", None, sha)
        self.assertEqual(
            "[new]     " + "a" * 20 + " refs/remotes/origin/main\n", self.output()
        )

    def test_update_tips_zero_old(self):
        self.reporter.update_tips("refs/tags/v1", b"0" * 40, b"b" * 40)
        self.assertTrue(self.output().startswith("[new]"))

    def test_update_tips_updated(self):
        self.reporter.update_tips("refs/remotes/origin/main", b"a" * 40, "b" * 40)
        self.assertEqual(
            "[updated] aaaaaaaaaa..bbbbbbbbbb refs/remotes/origin/main\n",
            self.output(),
        )

    def test_update_tips_not_limited(self):
        for i in range(3):
            self.reporter.update_tips(f"refs/tags/v{i}", None, b"c" * 40)
        self.assertEqual(3, self.output().count("\n"))

    def test_broken_stream(self):
        reporter = ProgressReporter(BrokenStream(), clock=self.clock)
        reporter.pack_progress(0, 1, 1)
        reporter.sideband_progress("hello\n")
