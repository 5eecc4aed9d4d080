# repository.py -- Opening and creating repositories as owned handles
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

"""Repository access returning :class:`~kerngit.handle.Handle` objects.

Failures are written to the error channel and reported as None.
"""

import os
from typing import Optional

from dulwich.repo import Repo

from .handle import Handle, acquire
from .refspec import default_refspec

DEFAULT_REMOTE = "origin"


def open_repo(path: str) -> Optional[Handle[Repo]]:
    """Open an existing repository."""
    return acquire(Repo, path)


def set_remote_config(repo: Repo, name: str, url: str) -> None:
    """Record a remote with the default fetch refspec."""
    config = repo.get_config()
    section = (b"remote", name.encode("utf-8"))
    config.set(section, b"url", url.encode("utf-8"))
    config.set(section, b"fetch", default_refspec(name).encode("utf-8"))
    config.write_to_path()


def _init(path: str, bare: bool, origin_url: Optional[str]) -> Repo:
    mkdir = not os.path.exists(path)
    if bare:
        repo = Repo.init_bare(path, mkdir=mkdir)
    else:
        repo = Repo.init(path, mkdir=mkdir)
    try:
        if origin_url is not None:
            set_remote_config(repo, DEFAULT_REMOTE, origin_url)
    except BaseException:
        repo.close()
        raise
    return repo


def init_repo(
    path: str, bare: bool = False, origin_url: Optional[str] = None
) -> Optional[Handle[Repo]]:
    """Create a repository, optionally with an ``origin`` remote.

    Args:
      path: Directory of the new repository, created if missing
      bare: Create a bare repository
      origin_url: URL recorded as ``remote.origin.url``
    """
    return acquire(_init, path, bare, origin_url)
