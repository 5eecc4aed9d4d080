# callbacks.py -- Hooks invoked during a remote operation
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

"""Callbacks invoked while talking to a remote.

One :class:`RemoteCallbacks` object is created per clone or fetch and passed
to every hook of the transport. All hooks run synchronously on the thread
that started the operation.
"""

from enum import IntEnum
from typing import NamedTuple, Optional, Union

from .credentials import Credential, CredentialNegotiator, CredentialType
from .progress import ProgressReporter


class PackStage(IntEnum):
    """Phase of pack building on the remote side."""

    ADDING_OBJECTS = 0
    DELTAFICATION = 1


class TransferStats(NamedTuple):
    """Counters describing a pack transfer."""

    total_objects: int = 0
    indexed_objects: int = 0
    received_objects: int = 0
    local_objects: int = 0
    total_deltas: int = 0
    indexed_deltas: int = 0
    received_bytes: int = 0


class RemoteCallbacks:
    """Hooks for a remote operation.

    The base class declines every credential challenge and ignores every
    event; subclasses override what they need.
    """

    def credentials(
        self,
        url: str,
        username_from_url: Optional[str],
        allowed_types: CredentialType,
    ) -> Optional[Credential]:
        """Answer an authentication challenge.

        Args:
          url: Location of the remote
          username_from_url: User name embedded in the URL, if any
          allowed_types: Credential kinds the remote accepts
        Returns: a credential, or None to decline
        """
        return None

    def pack_progress(self, stage: PackStage, current: int, total: int) -> None:
        pass

    def sideband_progress(self, text: str) -> None:
        pass

    def transfer_progress(self, stats: TransferStats) -> None:
        pass

    def checkout_progress(
        self, path: Optional[str], completed_steps: int, total_steps: int
    ) -> None:
        pass

    def update_tips(
        self,
        refname: str,
        old: Optional[Union[bytes, str]],
        new: Union[bytes, str],
    ) -> None:
        pass


class DefaultRemoteCallbacks(RemoteCallbacks):
    """Callbacks answering challenges from local keys and printing progress.

    Args:
      negotiator: Source of credentials (default: a fresh
        :class:`~kerngit.credentials.CredentialNegotiator`)
      reporter: Progress output, or None for silence
    """

    def __init__(
        self,
        negotiator: Optional[CredentialNegotiator] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        if negotiator is None:
            negotiator = CredentialNegotiator()
        self.negotiator = negotiator
        self.reporter = reporter

    def credentials(self, url, username_from_url, allowed_types):
        return self.negotiator(url, username_from_url, allowed_types)

    def pack_progress(self, stage, current, total):
        if self.reporter is not None:
            self.reporter.pack_progress(stage, current, total)

    def sideband_progress(self, text):
        if self.reporter is not None:
            self.reporter.sideband_progress(text)

    def transfer_progress(self, stats):
        if self.reporter is not None:
            self.reporter.transfer_progress(stats)

    def checkout_progress(self, path, completed_steps, total_steps):
        if self.reporter is not None:
            self.reporter.checkout_progress(path, completed_steps, total_steps)

    def update_tips(self, refname, old, new):
        if self.reporter is not None:
            self.reporter.update_tips(refname, old, new)
