# remote.py -- Clone and fetch operations
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

"""Clone and fetch.

These are the public operations. They never raise for transport,
authentication or repository failures: they return a :class:`SyncResult`
that is false and carries the failure, which is also stored in the calling
thread's error channel (see :func:`kerngit.errors.last_error`).

 * clone
 * fetch
 * Remote.lookup
 * Remote.create
"""

import os
import shutil
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional, Union

from dulwich.client import FetchPackResult
from dulwich.config import Config
from dulwich.index import (
    Index,
    build_file_from_blob,
    index_entry_from_stat,
    validate_path,
    validate_path_element_default,
)
from dulwich.object_store import iter_tree_contents
from dulwich.objects import S_ISGITLINK, Commit, Tag
from dulwich.refs import (
    LOCAL_BRANCH_PREFIX,
    LOCAL_REMOTE_PREFIX,
    LOCAL_TAG_PREFIX,
    PEELED_TAG_SUFFIX,
)
from dulwich.repo import Repo

from .callbacks import RemoteCallbacks
from .client import Fetcher
from .config import SyncConfig
from .errors import (
    RECORDED_ERRORS,
    DestinationExists,
    LastError,
    RefNotFound,
    RemoteExists,
    RemoteNotFound,
    record_error,
)
from .handle import Handle
from .log_utils import getLogger
from .refspec import Refspec, default_refspec, expand_branch, map_refs, parse_refspecs
from .repository import DEFAULT_REMOTE, set_remote_config

logger = getLogger(__name__)

HEADREF = b"HEAD"


class SyncResult:
    """Outcome of a clone or fetch.

    Attributes:
      refs: Local refs that were created or moved, mapped to their new value
      repo: For clone, the handle owning the new repository
      error: The failure, or None on success
    """

    def __init__(
        self,
        refs: Optional[dict[bytes, bytes]] = None,
        repo: Optional[Handle[Repo]] = None,
        error: Optional[LastError] = None,
    ) -> None:
        self.refs = refs if refs is not None else {}
        self.repo = repo
        self.error = error

    def __repr__(self) -> str:
        if self.error is not None:
            return f"<{self.__class__.__name__} error={self.error.message!r}>"
        return f"<{self.__class__.__name__} refs={len(self.refs)}>"

    def __bool__(self) -> bool:
        return self.error is None

    @property
    def ok(self) -> bool:
        return self.error is None

    def close(self) -> None:
        if self.repo is not None:
            self.repo.close()

    def __enter__(self) -> "SyncResult":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _failed(e: BaseException) -> SyncResult:
    return SyncResult(error=record_error(e))


def _as_repo(repo: Union[Repo, Handle[Repo]]) -> Repo:
    if isinstance(repo, Handle):
        resource = repo.get()
        if resource is None:
            raise ValueError("repository handle is closed")
        return resource
    return repo


def _peel(repo: Repo, sha: bytes, name: str) -> bytes:
    if sha not in repo.object_store:
        raise RefNotFound(name, "fetched objects")
    obj = repo.object_store[sha]
    while isinstance(obj, Tag):
        obj = repo.object_store[obj.object[1]]
    return obj.id


def update_refs(
    repo: Repo,
    refspecs: Sequence[Refspec],
    remote_refs: Mapping[bytes, bytes],
    callbacks: RemoteCallbacks,
    include_tags: bool = True,
    message: Optional[bytes] = None,
) -> dict[bytes, bytes]:
    """Set local refs from the refs of a remote.

    Only refs whose objects are present locally are touched. Every change
    is reported through ``callbacks.update_tips``.

    Returns:
      Dictionary of updated local refs and their new values
    """
    ret = {}
    for local, (remote_name, sha) in sorted(map_refs(refspecs, remote_refs).items()):
        if sha not in repo.object_store:
            logger.debug("not updating %s: %s was not fetched", local, sha)
            continue
        _, old = repo.refs.follow(local)
        if old == sha:
            continue
        repo.refs.set_if_equals(local, old, sha, message=message)
        callbacks.update_tips(local.decode("utf-8", "replace"), old, sha)
        ret[local] = sha
    if include_tags:
        for name, sha in sorted(remote_refs.items()):
            if (
                not name.startswith(LOCAL_TAG_PREFIX)
                or name.endswith(PEELED_TAG_SUFFIX)
                or name in ret
                or sha not in repo.object_store
            ):
                continue
            if repo.refs.add_if_new(name, sha, message=message):
                callbacks.update_tips(name.decode("utf-8", "replace"), None, sha)
                ret[name] = sha
    return ret


def checkout_tree(repo: Repo, tree_id: bytes, callbacks: RemoteCallbacks) -> None:
    """Write a tree into an empty work tree and index it.

    ``callbacks.checkout_progress`` is told about every path written.
    """
    config = repo.get_config()
    honor_filemode = config.get_boolean(b"core", b"filemode", os.name != "nt")
    root = os.fsencode(repo.path)
    sep = os.fsencode(os.sep)
    index = Index(repo.index_path(), read=False)
    entries = list(iter_tree_contents(repo.object_store, tree_id))
    total = len(entries)
    callbacks.checkout_progress(None, 0, total)
    for done, entry in enumerate(entries, 1):
        path = entry.path.decode("utf-8", "replace")
        if not validate_path(entry.path, validate_path_element_default):
            logger.warning("not checking out unsafe path %s", path)
            callbacks.checkout_progress(path, done, total)
            continue
        full_path = os.path.join(root, entry.path.replace(b"/", sep))
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        if S_ISGITLINK(entry.mode):
            os.makedirs(full_path, exist_ok=True)
            st = os.lstat(full_path)
            index[entry.path] = index_entry_from_stat(st, entry.sha, mode=entry.mode)
        else:
            st = build_file_from_blob(
                repo.object_store[entry.sha],
                entry.mode,
                full_path,
                honor_filemode=honor_filemode,
            )
            mode = None if honor_filemode else entry.mode
            index[entry.path] = index_entry_from_stat(st, entry.sha, mode=mode)
        callbacks.checkout_progress(path, done, total)
    index.write()


def _default_callbacks(
    callbacks: Optional[RemoteCallbacks], config: Optional[SyncConfig]
) -> RemoteCallbacks:
    if callbacks is not None:
        return callbacks
    if config is None:
        config = SyncConfig.default()
    return config.make_callbacks()


class Remote:
    """A named remote of a repository.

    Args:
      repo: Repository the remote belongs to
      name: Remote name, e.g. ``origin``
      url: Location of the remote
      refspecs: Configured fetch refspecs
    """

    def __init__(
        self, repo: Repo, name: str, url: str, refspecs: Iterable[str] = ()
    ) -> None:
        self.repo = repo
        self.name = name
        self.url = url
        self.refspecs = list(refspecs)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, {self.url!r})"

    @classmethod
    def _from_config(cls, repo: Repo, name: str, config: Config) -> "Remote":
        section = (b"remote", name.encode("utf-8"))
        try:
            url = config.get(section, b"url")
        except KeyError as e:
            raise RemoteNotFound(name) from e
        refspecs = [spec.decode("utf-8") for spec in config.get_multivar(section, b"fetch")]
        return cls(repo, name, url.decode("utf-8"), refspecs)

    @classmethod
    def lookup(cls, repo: Union[Repo, Handle[Repo]], name: str) -> Optional["Remote"]:
        """Find a configured remote; None (with the error recorded) if missing."""
        repo = _as_repo(repo)
        try:
            return cls._from_config(repo, name, repo.get_config())
        except RECORDED_ERRORS as e:
            record_error(e)
            return None

    @classmethod
    def create(
        cls, repo: Union[Repo, Handle[Repo]], name: str, url: str
    ) -> Optional["Remote"]:
        """Add a remote with the default fetch refspec.

        Returns None, with the error recorded, if the remote already exists.
        """
        repo = _as_repo(repo)
        try:
            config = repo.get_config()
            if config.has_section((b"remote", name.encode("utf-8"))):
                raise RemoteExists(name)
            set_remote_config(repo, name, url)
        except RECORDED_ERRORS as e:
            record_error(e)
            return None
        return cls(repo, name, url, [default_refspec(name)])

    def _fetch(
        self,
        refspecs: Sequence[Refspec],
        depth: int,
        include_tags: bool,
        callbacks: RemoteCallbacks,
    ) -> tuple[FetchPackResult, dict[bytes, bytes]]:
        if depth < 0:
            raise ValueError(f"depth must not be negative: {depth!r}")
        logger.debug(
            "fetching %s from %s (depth=%d, tags=%s)",
            ", ".join(str(refspec) for refspec in refspecs),
            self.url,
            depth,
            include_tags,
        )
        fetcher = Fetcher(
            self.repo,
            self.url,
            refspecs,
            callbacks,
            depth=depth,
            include_tags=include_tags,
            config=self.repo.get_config_stack(),
        )
        result = fetcher.run()
        remote_refs = {
            name: sha for name, sha in result.refs.items() if sha is not None
        }
        updated = update_refs(
            self.repo,
            refspecs,
            remote_refs,
            callbacks,
            include_tags=include_tags,
            message=b"fetch: from " + self.url.encode("utf-8"),
        )
        return result, updated

    def fetch_refspecs(
        self,
        refspecs: Iterable[str] = (),
        depth: int = 0,
        include_tags: bool = True,
        callbacks: Optional[RemoteCallbacks] = None,
    ) -> SyncResult:
        """Fetch refs selected by refspecs.

        Args:
          refspecs: Refspecs to fetch; the configured ones when empty
          depth: Number of commits of history to fetch, 0 for all of it
          include_tags: Also fetch tags pointing at fetched commits
          callbacks: Callbacks for this fetch (default: from the repository
            configuration)
        """
        if callbacks is None:
            callbacks = SyncConfig.from_config(
                self.repo.get_config_stack()
            ).make_callbacks()
        try:
            specs = parse_refspecs(
                list(refspecs) or self.refspecs or [default_refspec(self.name)]
            )
            _, updated = self._fetch(specs, depth, include_tags, callbacks)
        except RECORDED_ERRORS as e:
            return _failed(e)
        return SyncResult(updated)

    def fetch_branches(
        self,
        branches: Iterable[str],
        depth: int = 0,
        include_tags: bool = True,
        callbacks: Optional[RemoteCallbacks] = None,
    ) -> SyncResult:
        """Fetch branches into their remote-tracking refs."""
        refspecs = [expand_branch(self.name, branch) for branch in branches]
        return self.fetch_refspecs(refspecs, depth, include_tags, callbacks)

    def fetch(
        self,
        branch: str,
        depth: int = 0,
        include_tags: bool = True,
        callbacks: Optional[RemoteCallbacks] = None,
    ) -> SyncResult:
        """Fetch a single branch."""
        return self.fetch_branches([branch], depth, include_tags, callbacks)


def fetch(
    repo: Union[Repo, Handle[Repo]],
    remote_name: str = DEFAULT_REMOTE,
    refspecs: Optional[Iterable[str]] = None,
    branches: Optional[Iterable[str]] = None,
    depth: int = 0,
    include_tags: bool = True,
    callbacks: Optional[RemoteCallbacks] = None,
) -> SyncResult:
    """Fetch from a configured remote.

    Args:
      repo: Repository to fetch into
      remote_name: Name of the remote
      refspecs: Refspecs to fetch
      branches: Branch names, fetched into ``refs/remotes/<remote>/<branch>``
      depth: Number of commits of history to fetch, 0 for all of it
      include_tags: Also fetch tags pointing at fetched commits
      callbacks: Callbacks for this fetch
    Returns: A :class:`SyncResult`
    """
    repo = _as_repo(repo)
    try:
        remote = Remote._from_config(repo, remote_name, repo.get_config())
    except RECORDED_ERRORS as e:
        return _failed(e)
    specs = list(refspecs or ())
    specs.extend(expand_branch(remote_name, branch) for branch in branches or ())
    return remote.fetch_refspecs(specs, depth, include_tags, callbacks)


def _check_destination(path: str) -> bool:
    """Check a clone destination; returns whether it has to be created."""
    if not os.path.exists(path):
        return True
    if not os.path.isdir(path) or os.listdir(path):
        raise DestinationExists(path)
    return False


def _remove_created(path: str, created: bool) -> None:
    if created:
        shutil.rmtree(path, ignore_errors=True)
        return
    for name in os.listdir(path):
        full_path = os.path.join(path, name)
        if os.path.isdir(full_path) and not os.path.islink(full_path):
            shutil.rmtree(full_path, ignore_errors=True)
        else:
            os.remove(full_path)


def _select_head(
    repo: Repo,
    remote_refs: Mapping[bytes, bytes],
    symrefs: Mapping[bytes, bytes],
    branch: Optional[str],
) -> tuple[Optional[bytes], Optional[bytes]]:
    """Pick what to check out after a clone.

    Returns:
      Tuple of (remote branch ref or None when HEAD is detached, commit id
      or None when the remote is empty)
    """
    if branch is not None:
        name = branch.encode("utf-8")
        ref = LOCAL_BRANCH_PREFIX + name
        if ref in remote_refs:
            return ref, remote_refs[ref]
        tag = LOCAL_TAG_PREFIX + name
        if tag in remote_refs:
            return None, _peel(repo, remote_refs[tag], branch)
        raise RefNotFound(branch)
    target = symrefs.get(HEADREF)
    if target is not None and target in remote_refs:
        return target, remote_refs[target]
    if HEADREF in remote_refs:
        return None, _peel(repo, remote_refs[HEADREF], "HEAD")
    return None, None


def _setup_head(
    repo: Repo,
    remote_name: str,
    branch_ref: Optional[bytes],
    sha: bytes,
    message: bytes,
) -> None:
    if branch_ref is None:
        del repo.refs[HEADREF]
        repo.refs.set_if_equals(HEADREF, None, sha, message=message)
        return
    name = branch_ref[len(LOCAL_BRANCH_PREFIX) :]
    remote_prefix = LOCAL_REMOTE_PREFIX + remote_name.encode("utf-8") + b"/"
    repo.refs.set_if_equals(branch_ref, None, sha, message=message)
    repo.refs.set_symbolic_ref(HEADREF, branch_ref, message=message)
    repo.refs.set_symbolic_ref(
        remote_prefix + HEADREF, remote_prefix + name, message=message
    )
    config = repo.get_config()
    section = (b"branch", name)
    config.set(section, b"remote", remote_name.encode("utf-8"))
    config.set(section, b"merge", branch_ref)
    config.write_to_path()


def clone(
    destination: str,
    url: str,
    branch: Optional[str] = None,
    depth: int = 0,
    include_tags: bool = True,
    callbacks: Optional[RemoteCallbacks] = None,
    config: Optional[SyncConfig] = None,
) -> SyncResult:
    """Clone a repository.

    Args:
      destination: Directory to create; may exist if it is empty
      url: Location of the remote
      branch: Branch (or tag, giving a detached HEAD) to check out;
        the remote's HEAD when None
      depth: Number of commits of history to fetch, 0 for all of it
      include_tags: Also fetch tags pointing at fetched commits
      callbacks: Callbacks for this clone
      config: Settings for the default callbacks when ``callbacks`` is None
    Returns: A :class:`SyncResult` whose ``repo`` owns the new repository
    """
    callbacks = _default_callbacks(callbacks, config)
    try:
        created = _check_destination(destination)
    except RECORDED_ERRORS as e:
        return _failed(e)

    handle: Optional[Handle[Repo]] = None
    try:
        repo = Repo.init(destination, mkdir=created)
        handle = Handle(repo)
        set_remote_config(repo, DEFAULT_REMOTE, url)
        remote = Remote(repo, DEFAULT_REMOTE, url, [default_refspec(DEFAULT_REMOTE)])
        refspecs = list(remote.refspecs)
        if branch is not None:
            tag = LOCAL_TAG_PREFIX.decode() + branch
            refspecs.append(f"+{tag}:{tag}")
        result, updated = remote._fetch(
            parse_refspecs(refspecs), depth, include_tags, callbacks
        )
        remote_refs = {
            name: sha for name, sha in result.refs.items() if sha is not None
        }
        branch_ref, sha = _select_head(repo, remote_refs, result.symrefs, branch)
        if sha is None:
            logger.info("cloned an empty repository from %s", url)
        else:
            _setup_head(
                repo,
                DEFAULT_REMOTE,
                branch_ref,
                sha,
                b"clone: from " + url.encode("utf-8"),
            )
            commit = repo.object_store[sha]
            if not isinstance(commit, Commit):
                raise RefNotFound(sha.decode("ascii"), "commits")
            checkout_tree(repo, commit.tree, callbacks)
    except BaseException as e:
        if handle is not None:
            handle.close()
        _remove_created(destination, created)
        if isinstance(e, RECORDED_ERRORS):
            return _failed(e)
        raise
    return SyncResult(updated, handle)
