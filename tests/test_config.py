# test_config.py -- Tests for config.py
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

"""Tests for kerngit.config."""

from io import BytesIO, StringIO

from dulwich.config import ConfigFile

from kerngit.callbacks import DefaultRemoteCallbacks
from kerngit.config import SyncConfig
from kerngit.progress import DEFAULT_INTERVAL

from . import TestCase


def parse(text):
    return ConfigFile.from_file(BytesIO(text))


class SyncConfigTests(TestCase):
    def test_defaults(self):
        config = SyncConfig.from_config(ConfigFile())
        self.assertEqual(DEFAULT_INTERVAL, config.progress_interval)
        self.assertIsNone(config.key_dir)
        self.assertTrue(config.progress)

    def test_values(self):
        config = SyncConfig.from_config(
            parse(
                b"[kerngit]\n"
                b"\tprogressInterval = 500\n"
                b"\tsshKeyDir = /srv/keys\n"
                b"\tprogress = false\n"
            )
        )
        self.assertEqual(0.5, config.progress_interval)
        self.assertEqual("/srv/keys", config.key_dir)
        self.assertFalse(config.progress)

    def test_key_dir_expanded(self):
        config = SyncConfig.from_config(parse(b"[kerngit]\n\tsshKeyDir = ~/keys\n"))
        self.assertEqual("/nonexistent/keys", config.key_dir)

    def test_invalid_interval(self):
        with self.assertLogs("kerngit.config", level="WARNING") as cm:
            config = SyncConfig.from_config(
                parse(b"[kerngit]\n\tprogressInterval = soon\n")
            )
        self.assertEqual(DEFAULT_INTERVAL, config.progress_interval)
        self.assertIn("progressInterval", cm.output[0])

    def test_negative_interval(self):
        with self.assertLogs("kerngit.config", level="WARNING") as cm:
            config = SyncConfig.from_config(
                parse(b"[kerngit]\n\tprogressInterval = -5\n")
            )
        self.assertEqual(DEFAULT_INTERVAL, config.progress_interval)
        self.assertIn("progressInterval", cm.output[0])
        self.assertIsNotNone(config.make_callbacks().reporter)

    def test_invalid_progress_flag(self):
        with self.assertLogs("kerngit.config", level="WARNING") as cm:
            config = SyncConfig.from_config(parse(b"[kerngit]\n\tprogress = maybe\n"))
        self.assertTrue(config.progress)
        self.assertIn("kerngit.progress", cm.output[0])

    def test_default(self):
        # HOME points nowhere, so only built-in defaults apply.
        self.assertTrue(SyncConfig.default().progress)

    def test_make_callbacks(self):
        stream = StringIO()
        callbacks = SyncConfig(progress_interval=0.1, stream=stream).make_callbacks()
        self.assertIsInstance(callbacks, DefaultRemoteCallbacks)
        self.assertIsNotNone(callbacks.reporter)
        callbacks.checkout_progress("a", 1, 1)
        self.assertIn("Checked-out: 1/1 (a)", stream.getvalue())

    def test_make_callbacks_fresh_state(self):
        config = SyncConfig(progress=False)
        first = config.make_callbacks()
        second = config.make_callbacks()
        self.assertIsNone(first.reporter)
        self.assertIsNot(first.negotiator, second.negotiator)

    def test_make_callbacks_key_dir(self):
        key_dir = self.mkdtemp()
        callbacks = SyncConfig(key_dir=key_dir, progress=False).make_callbacks()
        self.assertEqual([], callbacks.negotiator.keys("ssh://example.com/r"))
