# refspec.py -- Parsing and applying fetch refspecs
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

"""Fetch refspecs: ``[+]<src>[:<dst>]``, with at most one ``*`` per side."""

from collections.abc import Iterable, Mapping
from typing import Optional, Union

from dulwich.refs import LOCAL_BRANCH_PREFIX, LOCAL_REMOTE_PREFIX, PEELED_TAG_SUFFIX

from .errors import InvalidRefspec

WILDCARD = b"*"


def _to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


class Refspec:
    """A single fetch refspec.

    Attributes:
      src: Pattern matched against remote ref names
      dst: Local ref name or pattern, or None when nothing is stored
      force: Whether the spec was prefixed with ``+``
    """

    def __init__(self, src: bytes, dst: Optional[bytes], force: bool = False) -> None:
        self.src = src
        self.dst = dst
        self.force = force

    @classmethod
    def parse(cls, spec: Union[str, bytes]) -> "Refspec":
        """Parse a refspec.

        Raises:
          InvalidRefspec: if the refspec is malformed
        """
        text = _to_bytes(spec)
        force = text.startswith(b"+")
        if force:
            text = text[1:]
        if b":" in text:
            src, dst = text.split(b":", 1)
        else:
            src, dst = text, b""
        shown = _to_bytes(spec).decode("utf-8", "replace")
        if not src:
            raise InvalidRefspec(shown, "empty source")
        if b":" in dst:
            raise InvalidRefspec(shown, "more than one ':'")
        if src.count(WILDCARD) > 1 or dst.count(WILDCARD) > 1:
            raise InvalidRefspec(shown, "more than one '*' on one side")
        if dst and (WILDCARD in src) != (WILDCARD in dst):
            raise InvalidRefspec(shown, "'*' must appear on both sides or neither")
        return cls(src, dst or None, force)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.src!r}, {self.dst!r}, force={self.force!r})"

    def __str__(self) -> str:
        text = self.src
        if self.dst is not None:
            text += b":" + self.dst
        if self.force:
            text = b"+" + text
        return text.decode("utf-8", "replace")

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Refspec)
            and self.src == other.src
            and self.dst == other.dst
            and self.force == other.force
        )

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in self.src

    def _match_middle(self, name: bytes) -> Optional[bytes]:
        if not self.is_wildcard:
            return b"" if name == self.src else None
        prefix, suffix = self.src.split(WILDCARD, 1)
        if (
            len(name) >= len(prefix) + len(suffix)
            and name.startswith(prefix)
            and name.endswith(suffix)
        ):
            return name[len(prefix) : len(name) - len(suffix)]
        return None

    def matches(self, name: bytes) -> bool:
        """Check whether a remote ref name matches the source side."""
        return self._match_middle(name) is not None

    def transform(self, name: bytes) -> Optional[bytes]:
        """Map a matching remote ref name to its local name.

        Returns None if the name does not match or the spec has no
        destination.
        """
        middle = self._match_middle(name)
        if middle is None or self.dst is None:
            return None
        if WILDCARD in self.dst:
            return self.dst.replace(WILDCARD, middle, 1)
        return self.dst


def parse_refspecs(specs: Iterable[Union[str, bytes]]) -> list[Refspec]:
    return [Refspec.parse(spec) for spec in specs]


def expand_branch(remote_name: str, branch: str) -> str:
    """Refspec fetching one branch into its remote-tracking ref."""
    return "+{}{}:{}{}/{}".format(
        LOCAL_BRANCH_PREFIX.decode(),
        branch,
        LOCAL_REMOTE_PREFIX.decode(),
        remote_name,
        branch,
    )


def default_refspec(remote_name: str) -> str:
    return expand_branch(remote_name, "*")


def map_refs(
    refspecs: Iterable[Refspec], remote_refs: Mapping[bytes, bytes]
) -> dict[bytes, tuple[bytes, bytes]]:
    """Work out which local refs a fetch should set.

    Peeled tag entries are ignored. When several refspecs map to the same
    local ref, the first one wins.

    Returns:
      Dictionary mapping local ref name to (remote ref name, sha)
    """
    ret: dict[bytes, tuple[bytes, bytes]] = {}
    for refspec in refspecs:
        for name, sha in sorted(remote_refs.items()):
            if name.endswith(PEELED_TAG_SUFFIX) or sha is None:
                continue
            local = refspec.transform(name)
            if local is not None:
                ret.setdefault(local, (name, sha))
    return ret


def wanted_remote_refs(
    refspecs: Iterable[Refspec], remote_refs: Mapping[bytes, bytes]
) -> dict[bytes, bytes]:
    """Remote refs matched by any refspec, including destination-less ones."""
    refspecs = list(refspecs)
    return {
        name: sha
        for name, sha in remote_refs.items()
        if sha is not None
        and not name.endswith(PEELED_TAG_SUFFIX)
        and any(refspec.matches(name) for refspec in refspecs)
    }
