# credentials.py -- Credential types and multi-round negotiation
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

"""Answering authentication challenges.

A single fetch may be challenged several times: once for a user name, then
once per key the server rejects. :class:`CredentialNegotiator` answers each
challenge and keeps enough state to never offer the same key twice, so that a
session always ends, either authenticated or with the negotiator declining
(returning None) and the transport giving up.
"""

import getpass
from enum import IntFlag
from typing import Optional, Sequence, Union
from urllib.parse import urlparse

from dulwich.client import parse_rsync_url

from .keys import KeyPair, discover_keys
from .log_utils import getLogger

logger = getLogger(__name__)


class CredentialType(IntFlag):
    """Kinds of credentials a remote may accept."""

    USERPASS_PLAINTEXT = 1 << 0
    SSH_KEY = 1 << 1
    SSH_CUSTOM = 1 << 2
    DEFAULT = 1 << 3
    SSH_INTERACTIVE = 1 << 4
    USERNAME = 1 << 5
    SSH_MEMORY = 1 << 6


class Username:
    """Just a user name, for transports that ask for it separately."""

    credential_type = CredentialType.USERNAME

    def __init__(self, username: str) -> None:
        self.username = username

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.username!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Username) and self.username == other.username


class Keypair:
    """An SSH key pair on disk."""

    credential_type = CredentialType.SSH_KEY

    def __init__(
        self,
        username: str,
        pubkey: str,
        privkey: str,
        passphrase: Optional[str] = None,
    ) -> None:
        self.username = username
        self.pubkey = pubkey
        self.privkey = privkey
        self.passphrase = passphrase

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.username!r}, {self.pubkey!r}, {self.privkey!r})"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Keypair)
            and self.username == other.username
            and self.pubkey == other.pubkey
            and self.privkey == other.privkey
            and self.passphrase == other.passphrase
        )


class UserPass:
    """User name and password, for HTTP basic authentication."""

    credential_type = CredentialType.USERPASS_PLAINTEXT

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.username!r}, ...)"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, UserPass)
            and self.username == other.username
            and self.password == other.password
        )


Credential = Union[Username, Keypair, UserPass]


def host_from_url(url: str) -> Optional[str]:
    """Extract the host name from a URL or an scp-style location."""
    if "://" in url:
        return urlparse(url).hostname
    try:
        return parse_rsync_url(url)[1]
    except ValueError:
        return None


def os_user_name() -> str:
    return getpass.getuser()


class CredentialAttemptState:
    """What has been tried so far in one operation."""

    def __init__(self) -> None:
        self.tried = CredentialType(0)
        self.tried_key = 0
        self.user_name: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(tried={self.tried!r}, "
            f"tried_key={self.tried_key!r}, user_name={self.user_name!r})"
        )


class CredentialNegotiator:
    """Answer successive credential challenges of one operation.

    Args:
      keys: Key pairs to offer; discovered on the first key challenge when
        not given
      key_dir: Directory to scan when discovering keys
    """

    def __init__(
        self,
        keys: Optional[Sequence[KeyPair]] = None,
        key_dir: Optional[str] = None,
    ) -> None:
        self._keys = list(keys) if keys is not None else None
        self._key_dir = key_dir
        self.state = CredentialAttemptState()

    def user_name(self, username_from_url: Optional[str]) -> str:
        """Resolve the user name once: URL user first, then the OS account."""
        if self.state.user_name is None:
            if username_from_url:
                self.state.user_name = username_from_url
            else:
                self.state.user_name = os_user_name()
        return self.state.user_name

    def keys(self, url: str) -> list[KeyPair]:
        if self._keys is None:
            self._keys = discover_keys(host_from_url(url), self._key_dir)
        return self._keys

    def __call__(
        self,
        url: str,
        username_from_url: Optional[str],
        allowed_types: CredentialType,
    ) -> Optional[Credential]:
        """Answer one challenge.

        Returns:
          A credential, or None to decline ("pass-through")
        """
        allowed_types = CredentialType(allowed_types)
        user = self.user_name(username_from_url)
        state = self.state
        logger.debug(
            "credentials: url=%s user=%s types=%s tried=%s keys=%s tried_key=%d",
            url,
            user,
            format(allowed_types.value, "08b"),
            format(state.tried.value, "08b"),
            "?" if self._keys is None else len(self._keys),
            state.tried_key,
        )

        if allowed_types & CredentialType.USERNAME:
            return Username(user)

        if allowed_types & CredentialType.SSH_KEY and not (
            state.tried & CredentialType.SSH_KEY
        ):
            keys = self.keys(url)
            if state.tried_key >= len(keys):
                state.tried |= CredentialType.SSH_KEY
                return None
            pair = keys[state.tried_key]
            state.tried_key += 1
            return Keypair(user, pair.public, pair.private)

        logger.debug("credentials: nothing to offer for %s", url)
        return None
