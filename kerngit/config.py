# config.py -- Settings read from git configuration
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

"""Kerngit settings.

Settings live in the ``[kerngit]`` section of the usual git configuration
files, e.g.::

    [kerngit]
        progressInterval = 500
        sshKeyDir = ~/.ssh/kernel
        progress = false
"""

import os
from typing import TYPE_CHECKING, Optional, TextIO

from dulwich.config import Config, StackedConfig

from .log_utils import getLogger
from .progress import DEFAULT_INTERVAL

if TYPE_CHECKING:
    from .callbacks import RemoteCallbacks

logger = getLogger(__name__)

SECTION = (b"kerngit",)


class SyncConfig:
    """Settings for clone and fetch operations.

    Args:
      progress_interval: Seconds between two rate-limited progress lines
      key_dir: Directory scanned for SSH key pairs (default ``~/.ssh``)
      progress: Whether the default callbacks print progress at all
      stream: Stream progress is written to (default: stderr)
    """

    def __init__(
        self,
        progress_interval: float = DEFAULT_INTERVAL,
        key_dir: Optional[str] = None,
        progress: bool = True,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.progress_interval = progress_interval
        self.key_dir = key_dir
        self.progress = progress
        self.stream = stream

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(progress_interval={self.progress_interval!r}, "
            f"key_dir={self.key_dir!r}, progress={self.progress!r})"
        )

    @classmethod
    def from_config(cls, config: Config) -> "SyncConfig":
        """Read settings from a dulwich configuration object."""
        ret = cls()
        try:
            value = config.get(SECTION, b"progressInterval")
        except KeyError:
            pass
        else:
            try:
                interval = int(value)
            except ValueError:
                interval = -1
            if interval < 0:
                logger.warning(
                    "ignoring invalid kerngit.progressInterval %r", value.decode()
                )
            else:
                ret.progress_interval = interval / 1000.0
        try:
            key_dir = config.get(SECTION, b"sshKeyDir")
        except KeyError:
            pass
        else:
            ret.key_dir = os.path.expanduser(os.fsdecode(key_dir))
        try:
            ret.progress = config.get_boolean(SECTION, b"progress", True)
        except ValueError:
            logger.warning("ignoring invalid kerngit.progress setting")
        return ret

    @classmethod
    def default(cls) -> "SyncConfig":
        """Settings from the system and user git configuration."""
        return cls.from_config(StackedConfig.default())

    def make_callbacks(self) -> "RemoteCallbacks":
        """Create a fresh set of default callbacks for one operation."""
        from .callbacks import DefaultRemoteCallbacks
        from .credentials import CredentialNegotiator
        from .progress import ProgressReporter

        reporter = None
        if self.progress:
            reporter = ProgressReporter(self.stream, interval=self.progress_interval)
        return DefaultRemoteCallbacks(
            CredentialNegotiator(key_dir=self.key_dir), reporter
        )
