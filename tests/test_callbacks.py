# test_callbacks.py -- Tests for callbacks.py
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

"""Tests for kerngit.callbacks."""

from io import StringIO

from kerngit.callbacks import (
    DefaultRemoteCallbacks,
    PackStage,
    RemoteCallbacks,
    TransferStats,
)
from kerngit.credentials import CredentialNegotiator, CredentialType, Username
from kerngit.progress import ProgressReporter

from . import FakeClock, TestCase


class RemoteCallbacksTests(TestCase):
    def test_declines(self):
        callbacks = RemoteCallbacks()
        self.assertIsNone(
            callbacks.credentials("ssh://h/r", "git", CredentialType.USERNAME)
        )

    def test_events_ignored(self):
        callbacks = RemoteCallbacks()
        callbacks.pack_progress(PackStage.ADDING_OBJECTS, 1, 2)
        callbacks.sideband_progress("hello\n")
        callbacks.transfer_progress(TransferStats())
        callbacks.checkout_progress("a", 1, 1)
        callbacks.update_tips("refs/heads/main", None, b"a" * 40)


class TransferStatsTests(TestCase):
    def test_defaults(self):
        stats = TransferStats()
        self.assertEqual(0, stats.total_objects)
        self.assertEqual(0, stats.received_bytes)

    def test_replace(self):
        stats = TransferStats(total_objects=3)._replace(received_objects=2)
        self.assertEqual((3, 0, 2), stats[:3])


class DefaultRemoteCallbacksTests(TestCase):
    def test_credentials_from_negotiator(self):
        callbacks = DefaultRemoteCallbacks(CredentialNegotiator(keys=[]))
        self.assertEqual(
            Username("git"),
            callbacks.credentials("ssh://h/r", "git", CredentialType.USERNAME),
        )
        self.assertIsNone(
            callbacks.credentials("ssh://h/r", "git", CredentialType.SSH_KEY)
        )

    def test_silent_without_reporter(self):
        callbacks = DefaultRemoteCallbacks(CredentialNegotiator(keys=[]))
        callbacks.pack_progress(PackStage.DELTAFICATION, 1, 1)
        callbacks.checkout_progress(None, 0, 0)
        callbacks.update_tips("refs/heads/main", None, b"a" * 40)

    def test_reporter(self):
        stream = StringIO()
        callbacks = DefaultRemoteCallbacks(
            CredentialNegotiator(keys=[]),
            ProgressReporter(stream, clock=FakeClock()),
        )
        callbacks.pack_progress(PackStage.DELTAFICATION, 2, 2)
        callbacks.sideband_progress("Enumerating\n")
        callbacks.transfer_progress(
            TransferStats(total_objects=1, received_objects=1, indexed_objects=1)
        )
        callbacks.checkout_progress("README", 1, 1)
        callbacks.update_tips("refs/heads/main", None, b"a" * 40)
        output = stream.getvalue()
        self.assertIn("Packing objects: stage=1 2/2\n", output)
        self.assertIn("remote: Enumerating\n", output)
        self.assertIn("Received 1/1 objects", output)
        self.assertIn("Checked-out: 1/1 (README)\n", output)
        self.assertIn("[new]", output)
