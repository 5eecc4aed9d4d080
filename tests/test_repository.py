# test_repository.py -- Tests for repository.py
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

"""Tests for kerngit.repository."""

import os

from dulwich.repo import Repo

from kerngit.errors import ErrorClass, clear_last_error, last_error
from kerngit.repository import init_repo, open_repo, set_remote_config

from . import TestCase


class InitRepoTests(TestCase):
    def setUp(self):
        super().setUp()
        clear_last_error()

    def test_init_missing_directory(self):
        path = os.path.join(self.mkdtemp(), "new")
        with init_repo(path) as handle:
            repo = handle.get()
            self.assertFalse(repo.bare)
            self.assertTrue(os.path.isdir(os.path.join(path, ".git")))

    def test_init_bare(self):
        path = self.mkdtemp()
        with init_repo(path, bare=True) as handle:
            self.assertTrue(handle.get().bare)

    def test_origin(self):
        path = self.mkdtemp()
        with init_repo(path, origin_url="https://example.com/r.git") as handle:
            config = handle.get().get_config()
            self.assertEqual(
                b"https://example.com/r.git",
                config.get((b"remote", b"origin"), b"url"),
            )
            self.assertEqual(
                [b"+refs/heads/*:refs/remotes/origin/*"],
                list(config.get_multivar((b"remote", b"origin"), b"fetch")),
            )

    def test_existing_repository(self):
        path = self.mkdtemp()
        Repo.init(path).close()
        self.assertIsNone(init_repo(path))
        self.assertEqual(ErrorClass.OS, last_error().error_class)


class OpenRepoTests(TestCase):
    def setUp(self):
        super().setUp()
        clear_last_error()

    def test_open(self):
        path = self.mkdtemp()
        Repo.init(path).close()
        with open_repo(path) as handle:
            self.assertEqual(path, handle.get().path)
        self.assertIsNone(last_error())

    def test_not_a_repository(self):
        self.assertIsNone(open_repo(self.mkdtemp()))
        self.assertEqual(ErrorClass.REPOSITORY, last_error().error_class)

    def test_set_remote_config_persists(self):
        path = self.mkdtemp()
        with init_repo(path) as handle:
            set_remote_config(handle.get(), "upstream", "/srv/upstream.git")
        with open_repo(path) as handle:
            self.assertEqual(
                b"/srv/upstream.git",
                handle.get().get_config().get((b"remote", b"upstream"), b"url"),
            )
