# errors.py -- Error classes and the per-thread last error record
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

"""Kerngit exception classes and the last-error channel.

Internally failures are raised as exceptions. The public operations in
:mod:`kerngit.remote` and :mod:`kerngit.repository` catch the ones listed in
:data:`RECORDED_ERRORS`, turn them into a :class:`LastError` and store it in
a thread-local slot, so that two operations running on different threads
never see each other's failures.
"""

import threading
import zlib
from enum import IntEnum
from typing import NamedTuple, Optional

import paramiko
import urllib3.exceptions
from dulwich.client import HTTPUnauthorized
from dulwich.errors import (
    ApplyDeltaError,
    ChecksumMismatch,
    FileFormatException,
    GitProtocolError,
    HangupException,
    NotGitRepository,
)

from .log_utils import getLogger

logger = getLogger(__name__)


class ErrorClass(IntEnum):
    """Subsystem that produced an error.

    The numbering follows the libgit2 convention, which most Git tooling
    understands.
    """

    NONE = 0
    NOMEMORY = 1
    OS = 2
    INVALID = 3
    REFERENCE = 4
    ZLIB = 5
    REPOSITORY = 6
    CONFIG = 7
    NET = 12
    INDEXER = 15
    SSH = 23
    CALLBACK = 26
    HTTP = 34


class ErrorCode(IntEnum):
    """Numeric return code of a failed call."""

    OK = 0
    ERROR = -1
    ENOTFOUND = -3
    EEXISTS = -4
    EUSER = -7
    EINVALIDSPEC = -12
    EAUTH = -16
    ECERTIFICATE = -17
    PASSTHROUGH = -30


class LastError(NamedTuple):
    """Record describing the most recent failure on a thread."""

    message: str
    error_class: ErrorClass
    code: ErrorCode

    def __str__(self) -> str:
        return self.message


class KerngitError(Exception):
    """Base class for errors raised by Kerngit itself."""

    error_class = ErrorClass.NONE
    code = ErrorCode.ERROR


class AuthenticationExhausted(KerngitError):
    """The remote asked for credentials and none were left to offer."""

    code = ErrorCode.EAUTH

    def __init__(self, url: str, error_class: ErrorClass = ErrorClass.SSH) -> None:
        self.url = url
        self.error_class = error_class
        super().__init__(f"authentication failed for {url}: no more credentials to offer")


class HostKeyMismatch(KerngitError):
    """The SSH host key differs from the one in known_hosts."""

    error_class = ErrorClass.SSH
    code = ErrorCode.ECERTIFICATE

    def __init__(self, host: str, fingerprint: str) -> None:
        self.host = host
        self.fingerprint = fingerprint
        super().__init__(f"host key for {host} does not match known_hosts ({fingerprint})")


class DestinationExists(KerngitError):
    """Clone target exists and is not an empty directory."""

    error_class = ErrorClass.INVALID
    code = ErrorCode.EEXISTS

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"'{path}' exists and is not an empty directory")


class RemoteNotFound(KerngitError):
    """The named remote is not configured."""

    error_class = ErrorClass.CONFIG
    code = ErrorCode.ENOTFOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"remote '{name}' does not exist")


class RemoteExists(KerngitError):
    """A remote with that name is already configured."""

    error_class = ErrorClass.CONFIG
    code = ErrorCode.EEXISTS

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"remote '{name}' already exists")


class RefNotFound(KerngitError):
    """A branch or reference the caller asked for does not exist."""

    error_class = ErrorClass.REFERENCE
    code = ErrorCode.ENOTFOUND

    def __init__(self, name: str, where: str = "remote") -> None:
        self.name = name
        super().__init__(f"reference '{name}' not found in {where}")


class InvalidRefspec(KerngitError):
    """A refspec could not be parsed."""

    error_class = ErrorClass.INVALID
    code = ErrorCode.EINVALIDSPEC

    def __init__(self, refspec: str, reason: str) -> None:
        self.refspec = refspec
        super().__init__(f"invalid refspec '{refspec}': {reason}")


# Failures that public operations report through the error channel instead
# of raising.
RECORDED_ERRORS = (
    KerngitError,
    GitProtocolError,
    HTTPUnauthorized,
    NotGitRepository,
    FileFormatException,
    ChecksumMismatch,
    ApplyDeltaError,
    zlib.error,
    urllib3.exceptions.HTTPError,
    paramiko.SSHException,
    OSError,
)

# Checked in order, so subclasses come before their bases.
_CLASSIFICATION = [
    (HangupException, ErrorClass.NET, ErrorCode.ERROR),
    (GitProtocolError, ErrorClass.NET, ErrorCode.ERROR),
    (HTTPUnauthorized, ErrorClass.HTTP, ErrorCode.EAUTH),
    (NotGitRepository, ErrorClass.REPOSITORY, ErrorCode.ENOTFOUND),
    (ChecksumMismatch, ErrorClass.INDEXER, ErrorCode.ERROR),
    (ApplyDeltaError, ErrorClass.INDEXER, ErrorCode.ERROR),
    (FileFormatException, ErrorClass.INDEXER, ErrorCode.ERROR),
    (zlib.error, ErrorClass.ZLIB, ErrorCode.ERROR),
    (urllib3.exceptions.HTTPError, ErrorClass.HTTP, ErrorCode.ERROR),
    (paramiko.BadHostKeyException, ErrorClass.SSH, ErrorCode.ECERTIFICATE),
    (paramiko.AuthenticationException, ErrorClass.SSH, ErrorCode.EAUTH),
    (paramiko.SSHException, ErrorClass.SSH, ErrorCode.ERROR),
    (ConnectionError, ErrorClass.NET, ErrorCode.ERROR),
    (TimeoutError, ErrorClass.NET, ErrorCode.ERROR),
    (FileExistsError, ErrorClass.OS, ErrorCode.EEXISTS),
    (FileNotFoundError, ErrorClass.OS, ErrorCode.ENOTFOUND),
    (OSError, ErrorClass.OS, ErrorCode.ERROR),
]

_state = threading.local()


def _message(e: BaseException) -> str:
    if isinstance(e, HTTPUnauthorized):
        return f"authentication required for {e.url}"
    text = str(e)
    return text if text else e.__class__.__name__


def error_from_exception(e: BaseException) -> LastError:
    """Build a :class:`LastError` describing an exception."""
    if isinstance(e, KerngitError):
        return LastError(_message(e), e.error_class, e.code)
    for kls, error_class, code in _CLASSIFICATION:
        if isinstance(e, kls):
            return LastError(_message(e), error_class, code)
    return LastError(_message(e), ErrorClass.NONE, ErrorCode.ERROR)


def last_error() -> Optional[LastError]:
    """Return the last failure recorded on the calling thread, if any.

    The record stays in place after later successful calls; it is only
    replaced by the next failure.
    """
    return getattr(_state, "last_error", None)


def set_last_error(error: LastError) -> LastError:
    _state.last_error = error
    return error


def clear_last_error() -> None:
    _state.last_error = None


def record_error(e: BaseException) -> LastError:
    """Store a failure in the calling thread's error channel."""
    error = set_last_error(error_from_exception(e))
    logger.debug(
        "recorded error: class=%s code=%s: %s",
        error.error_class.name,
        error.code.name,
        error.message,
    )
    return error
