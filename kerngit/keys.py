# keys.py -- Discovery of local SSH key pairs
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

"""Enumerate SSH key pairs available on the local machine.

Two sources are consulted, in this order:

* ``IdentityFile`` entries that ``~/.ssh/config`` gives for the host;
* every ``<name>.pub`` file in the key directory that has a matching
  private key ``<name>`` next to it.

Nothing here talks to the network, and failing to read either source just
yields fewer keys: username-only or anonymous access may still work.
"""

import os
import warnings
from typing import NamedTuple, Optional

import paramiko.config

from .log_utils import getLogger

logger = getLogger(__name__)

PUBLIC_KEY_SUFFIX = ".pub"


class KeyPair(NamedTuple):
    """Paths of a public key and its private counterpart."""

    public: str
    private: str


def default_key_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".ssh")


def load_ssh_config(path: Optional[str] = None) -> paramiko.config.SSHConfig:
    """Load the SSH client configuration (``~/.ssh/config`` by default)."""
    ssh_config = paramiko.config.SSHConfig()
    if path is None:
        path = os.path.join(default_key_dir(), "config")
    try:
        with open(path) as config_file:
            ssh_config.parse(config_file)
    except FileNotFoundError:
        pass
    except OSError as e:
        warnings.warn(f"Could not read SSH config file {path}: {e}")
    return ssh_config


def _pair_for_private(private: str) -> Optional[KeyPair]:
    public = private + PUBLIC_KEY_SUFFIX
    if os.path.isfile(private) and os.path.isfile(public):
        return KeyPair(public, private)
    return None


def identity_keys(
    host: str, ssh_config: Optional[paramiko.config.SSHConfig] = None
) -> list[KeyPair]:
    """Key pairs named by ``IdentityFile`` for a host in the SSH config."""
    if ssh_config is None:
        ssh_config = load_ssh_config()
    identity_files = ssh_config.lookup(host).get("identityfile", [])
    if isinstance(identity_files, str):
        identity_files = [identity_files]
    ret = []
    for path in identity_files:
        pair = _pair_for_private(os.path.expanduser(path))
        if pair is not None:
            ret.append(pair)
    return ret


def scan_key_dir(key_dir: Optional[str] = None) -> list[KeyPair]:
    """Key pairs found in a directory, sorted by file name."""
    if key_dir is None:
        key_dir = default_key_dir()
    try:
        names = sorted(os.listdir(key_dir))
    except OSError as e:
        logger.debug("not scanning %s for keys: %s", key_dir, e)
        return []
    ret = []
    for name in names:
        if not name.endswith(PUBLIC_KEY_SUFFIX) or name == PUBLIC_KEY_SUFFIX:
            continue
        private = os.path.join(key_dir, name[: -len(PUBLIC_KEY_SUFFIX)])
        pair = _pair_for_private(private)
        if pair is not None:
            ret.append(pair)
    return ret


def discover_keys(
    host: Optional[str] = None,
    key_dir: Optional[str] = None,
    ssh_config: Optional[paramiko.config.SSHConfig] = None,
) -> list[KeyPair]:
    """Return the key pairs to offer to a host, without duplicates.

    Args:
      host: Host name to look up in the SSH config, if any
      key_dir: Directory to scan (default ``~/.ssh``)
      ssh_config: Parsed SSH config to use instead of ``~/.ssh/config``
    """
    found = []
    if host:
        found.extend(identity_keys(host, ssh_config))
    found.extend(scan_key_dir(key_dir))
    ret = []
    seen = set()
    for pair in found:
        key = os.path.realpath(pair.private)
        if key in seen:
            continue
        seen.add(key)
        ret.append(pair)
    logger.debug("discovered %d key pair(s) for %s", len(ret), host or "any host")
    return ret
