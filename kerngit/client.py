# client.py -- Driving dulwich transports with remote callbacks
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

"""Fetching packs through dulwich while reporting to remote callbacks.

Dulwich performs the wire protocol. This module picks the client for a URL,
answers HTTP authentication challenges, splits the remote's sideband
messages into pack and text progress, and counts the objects of the
incoming pack so that transfer statistics can be reported while the pack is
still arriving.
"""

import re
import struct
import zlib
from collections.abc import Iterable, Mapping, Sequence
from tempfile import SpooledTemporaryFile
from typing import Optional
from urllib.parse import urlparse

from dulwich.client import (
    FetchPackResult,
    GitClient,
    HTTPUnauthorized,
    SSHGitClient,
    get_transport_and_path,
    parse_rsync_url,
)
from dulwich.config import Config
from dulwich.errors import FileFormatException
from dulwich.objects import Commit
from dulwich.pack import OFS_DELTA, PACK_SPOOL_FILE_MAX_SIZE, REF_DELTA
from dulwich.refs import LOCAL_TAG_PREFIX, PEELED_TAG_SUFFIX
from dulwich.repo import BaseRepo

from .callbacks import PackStage, RemoteCallbacks, TransferStats
from .credentials import CredentialType, UserPass
from .log_utils import getLogger
from .refspec import Refspec, wanted_remote_refs
from .ssh import CallbackSSHVendor

logger = getLogger(__name__)

SSH_SCHEMES = ("ssh", "git+ssh", "ssh+git")

PACK_HEADER = struct.Struct(">4sLL")

# Decompressed output is discarded, so cap how much is produced per call.
_INFLATE_CHUNK = 64 * 1024

SHA1_OID_LENGTH = 20


def _oid_length(repo: BaseRepo) -> int:
    # Repositories only carry an object format from dulwich 0.25 on.
    object_format = getattr(repo, "object_format", None)
    if object_format is None:
        return SHA1_OID_LENGTH
    return object_format.oid_length


class PackScanner:
    """Count the objects of a pack stream as it is received.

    Chunks are passed to :meth:`feed` in order. After the header the scanner
    reports a :class:`~kerngit.callbacks.TransferStats` to the callbacks
    each time an object has been completely received.

    Args:
      callbacks: Receiver of the transfer statistics
      oid_length: Size of a binary object id, which is how long the base
        reference of a REF_DELTA object is
    """

    def __init__(
        self, callbacks: RemoteCallbacks, oid_length: int = SHA1_OID_LENGTH
    ) -> None:
        self.callbacks = callbacks
        self.oid_length = oid_length
        self.total_objects: Optional[int] = None
        self.received_objects = 0
        self.indexed_objects = 0
        self.local_objects = 0
        self.total_deltas = 0
        self.indexed_deltas = 0
        self.received_bytes = 0
        self._buf = bytearray()
        self._inflate = None
        self._is_delta = False
        self._disabled = False

    def stats(self) -> TransferStats:
        return TransferStats(
            total_objects=self.total_objects or 0,
            indexed_objects=self.indexed_objects,
            received_objects=self.received_objects,
            local_objects=self.local_objects,
            total_deltas=self.total_deltas,
            indexed_deltas=self.indexed_deltas,
            received_bytes=self.received_bytes,
        )

    def _report(self) -> None:
        self.callbacks.transfer_progress(self.stats())

    def feed(self, data: bytes) -> None:
        self.received_bytes += len(data)
        if self._disabled:
            return
        self._buf += data
        try:
            self._scan()
        except (FileFormatException, zlib.error) as e:
            # The object store checks the pack properly; just stop counting.
            logger.debug("not counting pack objects any further: %s", e)
            self._disabled = True
            self._buf.clear()

    def _scan(self) -> None:
        if self.total_objects is None:
            if len(self._buf) < PACK_HEADER.size:
                return
            signature, version, count = PACK_HEADER.unpack_from(self._buf)
            if signature != b"PACK":
                raise FileFormatException(f"invalid pack signature {signature!r}")
            if version not in (2, 3):
                raise FileFormatException(f"unsupported pack version {version}")
            del self._buf[: PACK_HEADER.size]
            self.total_objects = count
            self._report()
        while self.received_objects < self.total_objects:
            if self._inflate is None and not self._read_object_header():
                return
            if not self._inflate_some():
                return
            self.received_objects += 1
            if self._is_delta:
                self.total_deltas += 1
            else:
                self.indexed_objects += 1
            self._report()

    def _read_object_header(self) -> bool:
        buf = self._buf
        pos = 0
        if not buf:
            return False
        c = buf[pos]
        pos += 1
        type_num = (c >> 4) & 0x07
        while c & 0x80:
            if pos >= len(buf):
                return False
            c = buf[pos]
            pos += 1
        if type_num == OFS_DELTA:
            while True:
                if pos >= len(buf):
                    return False
                c = buf[pos]
                pos += 1
                if not c & 0x80:
                    break
        elif type_num == REF_DELTA:
            pos += self.oid_length
            if pos > len(buf):
                return False
        elif type_num not in (1, 2, 3, 4):
            raise FileFormatException(f"invalid object type {type_num}")
        del buf[:pos]
        self._is_delta = type_num in (OFS_DELTA, REF_DELTA)
        self._inflate = zlib.decompressobj()
        return True

    def _inflate_some(self) -> bool:
        """Feed buffered data to the inflater; True once the object ended."""
        inflate = self._inflate
        data = bytes(self._buf)
        self._buf.clear()
        while not inflate.eof:
            out = inflate.decompress(data, _INFLATE_CHUNK)
            data = inflate.unconsumed_tail
            if not data and len(out) < _INFLATE_CHUNK:
                break
        if not inflate.eof:
            return False
        self._buf += inflate.unused_data
        self._inflate = None
        return True

    def finish(self, pack_size: Optional[int] = None) -> None:
        """Report the end of indexing.

        Args:
          pack_size: Number of objects in the stored pack, which exceeds
            the number received when a thin pack was completed
        """
        if self.total_objects is None or self._disabled:
            return
        if pack_size is not None:
            self.local_objects = max(0, pack_size - self.total_objects)
        self.indexed_objects = self.received_objects
        if self.total_deltas:
            self.indexed_deltas = self.total_deltas
            self._report()


_PACK_PROGRESS_RE = re.compile(
    r"^(Counting|Enumerating|Compressing) objects:\s+\d+% \((\d+)/(\d+)\)"
)

_PACK_STAGES = {
    "Counting": PackStage.ADDING_OBJECTS,
    "Enumerating": PackStage.ADDING_OBJECTS,
    "Compressing": PackStage.DELTAFICATION,
}


class SidebandDemux:
    """Split remote progress output into lines and dispatch them.

    Lines describing pack building on the remote go to
    ``pack_progress``; everything else goes to ``sideband_progress``. Each
    line keeps its terminator (``\\r`` or ``\\n``).
    """

    def __init__(self, callbacks: RemoteCallbacks) -> None:
        self.callbacks = callbacks
        self._pending = ""

    def __call__(self, data: bytes) -> None:
        text = self._pending + data.decode("utf-8", "replace")
        lines = re.split(r"(?<=[\r\n])", text)
        self._pending = lines.pop()
        for line in lines:
            self._dispatch(line)

    def _dispatch(self, line: str) -> None:
        m = _PACK_PROGRESS_RE.match(line)
        if m:
            self.callbacks.pack_progress(
                _PACK_STAGES[m.group(1)], int(m.group(2)), int(m.group(3))
            )
        else:
            self.callbacks.sideband_progress(line)

    def flush(self) -> None:
        if self._pending:
            line, self._pending = self._pending, ""
            self._dispatch(line)


def is_ssh_url(url: str) -> bool:
    """Check whether a location is reached over SSH."""
    if "://" in url:
        return urlparse(url).scheme in SSH_SCHEMES
    try:
        parse_rsync_url(url)
    except ValueError:
        return False
    return True


def username_from_url(url: str) -> Optional[str]:
    if "://" in url:
        return urlparse(url).username
    try:
        return parse_rsync_url(url)[0]
    except ValueError:
        return None


def open_client(
    url: str,
    callbacks: RemoteCallbacks,
    config: Optional[Config] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> tuple[GitClient, str]:
    """Obtain a git client and the remote path for a URL.

    SSH locations get a client whose vendor authenticates through the
    callbacks; everything else is left to dulwich.
    """
    if is_ssh_url(url):
        vendor = CallbackSSHVendor(callbacks, url)
        if "://" in url:
            parsed = urlparse(url)
            host, port, user, path = (
                parsed.hostname,
                parsed.port,
                parsed.username,
                parsed.path,
            )
        else:
            user, host, path = parse_rsync_url(url)
            port = None
        client = SSHGitClient(
            host, port=port, username=user, vendor=vendor, config=config
        )
        return client, path
    return get_transport_and_path(
        url, config=config, operation="pull", username=username, password=password
    )


def shallow_boundary(target: BaseRepo, heads: Iterable[bytes]) -> set[bytes]:
    """Find fetched commits whose parents are not in the object store."""
    store = target.object_store
    ret = set()
    todo = [sha for sha in heads if sha in store]
    seen = set()
    while todo:
        sha = todo.pop()
        if sha in seen:
            continue
        seen.add(sha)
        obj = store[sha]
        if not isinstance(obj, Commit):
            continue
        for parent in obj.parents:
            if parent in store:
                todo.append(parent)
            else:
                ret.add(sha)
    return ret


def _tag_refs(remote_refs: Mapping[bytes, bytes]) -> dict[bytes, bytes]:
    return {
        name: sha
        for name, sha in remote_refs.items()
        if name.startswith(LOCAL_TAG_PREFIX)
        and not name.endswith(PEELED_TAG_SUFFIX)
        and sha is not None
    }


class Fetcher:
    """Fetch objects for a set of refspecs into a repository.

    Args:
      target: Repository receiving the objects
      url: Remote location
      refspecs: Refspecs selecting the remote refs to fetch
      callbacks: Callbacks of the running operation
      depth: History depth, 0 for everything
      include_tags: Also fetch tags pointing at fetched commits
      config: Configuration for transport settings
    """

    def __init__(
        self,
        target: BaseRepo,
        url: str,
        refspecs: Sequence[Refspec],
        callbacks: RemoteCallbacks,
        depth: int = 0,
        include_tags: bool = True,
        config: Optional[Config] = None,
    ) -> None:
        self.target = target
        self.url = url
        self.refspecs = list(refspecs)
        self.callbacks = callbacks
        self.depth = depth
        self.include_tags = include_tags
        self.config = config
        self.wanted: dict[bytes, bytes] = {}

    def determine_wants(
        self, refs: Mapping[bytes, bytes], depth: Optional[int] = None
    ) -> list[bytes]:
        wanted = wanted_remote_refs(self.refspecs, refs)
        if self.include_tags:
            commits = set(wanted.values())
            for name, sha in _tag_refs(refs).items():
                peeled = refs.get(name + PEELED_TAG_SUFFIX, sha)
                if peeled in commits:
                    wanted.setdefault(name, sha)
        self.wanted = wanted
        store = self.target.object_store
        wants = []
        for sha in wanted.values():
            if sha not in wants and (self.depth or sha not in store):
                wants.append(sha)
        logger.debug("wanting %d object(s) for %d ref(s)", len(wants), len(wanted))
        return wants

    def _fetch_pack(self, client: GitClient, path: str) -> FetchPackResult:
        scanner = PackScanner(self.callbacks, _oid_length(self.target))
        demux = SidebandDemux(self.callbacks)
        f = SpooledTemporaryFile(
            max_size=PACK_SPOOL_FILE_MAX_SIZE,
            prefix="incoming-",
            dir=getattr(self.target.object_store, "path", None),
        )
        with f:

            def pack_data(data: bytes) -> int:
                scanner.feed(data)
                return f.write(data)

            result = client.fetch_pack(
                path,
                self.determine_wants,
                self.target.get_graph_walker(),
                pack_data,
                progress=demux,
                depth=self.depth or None,
            )
            demux.flush()
            if f.tell():
                f.seek(0)
                pack = self.target.object_store.add_thin_pack(f.read, None)
                scanner.finish(len(pack) if pack is not None else None)
        if self.depth:
            self._record_shallow(result)
        return result

    def _record_shallow(self, result: FetchPackResult) -> None:
        if result.new_shallow is not None or result.new_unshallow is not None:
            self.target.update_shallow(result.new_shallow, result.new_unshallow)
            return
        boundary = shallow_boundary(self.target, self.wanted.values())
        boundary -= self.target.get_shallow()
        if boundary:
            logger.debug("recording %d shallow commit(s)", len(boundary))
            self.target.update_shallow(boundary, None)

    def run(self) -> FetchPackResult:
        """Fetch, asking for HTTP credentials as long as the server refuses.

        Raises:
          HTTPUnauthorized: if the callbacks stop supplying passwords
        """
        username = password = None
        while True:
            client, path = open_client(
                self.url, self.callbacks, self.config, username, password
            )
            try:
                return self._fetch_pack(client, path)
            except HTTPUnauthorized as e:
                credential = self.callbacks.credentials(
                    e.url or self.url,
                    username or username_from_url(self.url),
                    CredentialType.USERPASS_PLAINTEXT,
                )
                if not isinstance(credential, UserPass) or (
                    credential.username,
                    credential.password,
                ) == (username, password):
                    raise
                logger.debug("retrying %s as %s", self.url, credential.username)
                username, password = credential.username, credential.password
