# __init__.py -- The tests for kerngit
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

"""Tests for Kerngit."""

import os
import shutil
import tempfile
import time
import unittest
from unittest import SkipTest, skipIf  # noqa: F401
from unittest import TestCase as _TestCase

from dulwich.objects import Blob, Commit, Tag, Tree
from dulwich.repo import Repo


class TestCase(_TestCase):
    def setUp(self) -> None:
        super().setUp()
        self._old_home = os.environ.get("HOME")
        os.environ["HOME"] = "/nonexistent"
        self.addCleanup(self._restore_home)

    def _restore_home(self) -> None:
        if self._old_home:
            os.environ["HOME"] = self._old_home
        else:
            del os.environ["HOME"]

    def mkdtemp(self) -> str:
        path = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, path, ignore_errors=True)
        return path


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_commit(repo, files, parents=(), message=b"commit", ref=None):
    """Create a commit in ``repo`` holding ``files`` (path -> bytes)."""
    tree = Tree()
    subtrees = {}
    for path, data in sorted(files.items()):
        blob = Blob.from_string(data)
        repo.object_store.add_object(blob)
        if b"/" in path:
            dirname, basename = path.split(b"/", 1)
            subtrees.setdefault(dirname, {})[basename] = blob.id
        else:
            tree.add(path, 0o100644, blob.id)
    for dirname, entries in sorted(subtrees.items()):
        subtree = Tree()
        for basename, blob_id in sorted(entries.items()):
            subtree.add(basename, 0o100644, blob_id)
        repo.object_store.add_object(subtree)
        tree.add(dirname, 0o040000, subtree.id)
    repo.object_store.add_object(tree)
    commit = Commit()
    commit.tree = tree.id
    commit.parents = list(parents)
    commit.author = commit.committer = b"Test Author <test@example.com>"
    commit.author_time = commit.commit_time = int(time.time())
    commit.author_timezone = commit.commit_timezone = 0
    commit.encoding = b"UTF-8"
    commit.message = message
    repo.object_store.add_object(commit)
    if ref is not None:
        repo.refs[ref] = commit.id
    return commit


def make_tag(repo, name, target, message=b"tag"):
    """Create an annotated tag ``refs/tags/<name>`` pointing at ``target``."""
    tag = Tag()
    tag.name = name
    tag.object = (Commit, target.id)
    tag.tagger = b"Test Tagger <test@example.com>"
    tag.tag_time = int(time.time())
    tag.tag_timezone = 0
    tag.message = message
    repo.object_store.add_object(tag)
    repo.refs[b"refs/tags/" + name] = tag.id
    return tag


def make_source_repo(path):
    """Create a repository with two commits on main and one on stable.

    Returns:
      Tuple of (repo, dict of commits by name)
    """
    repo = Repo.init(path, mkdir=True)
    first = make_commit(
        repo, {b"README": b"first\n", b"src/a.c": b"int a;\n"}, message=b"first"
    )
    second = make_commit(
        repo,
        {b"README": b"second\n", b"src/a.c": b"int a;\n", b"src/b.c": b"int b;\n"},
        parents=[first.id],
        message=b"second",
        ref=b"refs/heads/main",
    )
    stable = make_commit(
        repo,
        {b"README": b"stable\n"},
        parents=[first.id],
        message=b"stable",
        ref=b"refs/heads/stable",
    )
    repo.refs.set_symbolic_ref(b"HEAD", b"refs/heads/main")
    return repo, {"first": first, "second": second, "stable": stable}


def self_test_suite():
    names = [
        "callbacks",
        "cli",
        "client",
        "config",
        "credentials",
        "errors",
        "handle",
        "keys",
        "log_utils",
        "progress",
        "ratelimit",
        "refspec",
        "remote",
        "repository",
        "ssh",
    ]
    module_names = ["tests.test_" + name for name in names]
    loader = unittest.TestLoader()
    return loader.loadTestsFromNames(module_names)


def test_suite():
    return self_test_suite()
