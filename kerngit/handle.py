# handle.py -- Owning wrappers for closeable resources
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

"""Exclusive ownership of resources that the garbage collector won't free.

Repositories keep pack files open and SSH transports keep sockets open.
A :class:`Handle` owns exactly one such resource and releases it exactly
once, either through :meth:`Handle.close` or by leaving a ``with`` block.
Ownership can be handed over with :meth:`Handle.detach`; the handle left
behind is empty and closing it does nothing.
"""

import warnings
from types import TracebackType
from typing import Any, Callable, Generic, Optional, TypeVar

from .errors import RECORDED_ERRORS, record_error

T = TypeVar("T")


def _default_release(resource: Any) -> None:
    resource.close()


class Handle(Generic[T]):
    """Owner of a single resource."""

    def __init__(
        self, resource: T, release: Optional[Callable[[T], None]] = None
    ) -> None:
        if resource is None:
            raise ValueError("a handle needs a resource to own")
        self._resource: Optional[T] = resource
        self._release = release if release is not None else _default_release

    def __repr__(self) -> str:
        if self._resource is None:
            return f"<{self.__class__.__name__} (empty)>"
        return f"<{self.__class__.__name__} {self._resource!r}>"

    def __bool__(self) -> bool:
        return self._resource is not None

    def __copy__(self) -> "Handle[T]":
        raise TypeError(f"{self.__class__.__name__} objects cannot be copied")

    def __deepcopy__(self, memo: dict) -> "Handle[T]":
        raise TypeError(f"{self.__class__.__name__} objects cannot be copied")

    def __reduce__(self) -> Any:
        raise TypeError(f"{self.__class__.__name__} objects cannot be pickled")

    @property
    def closed(self) -> bool:
        return self._resource is None

    def get(self) -> Optional[T]:
        """Return the owned resource without giving up ownership.

        An empty handle returns None; check ``bool(handle)`` or ``closed``
        first when that matters.
        """
        return self._resource

    def detach(self) -> T:
        """Give up ownership; the caller becomes responsible for release.

        Raises:
          ValueError: if the handle is empty
        """
        resource = self._resource
        if resource is None:
            raise ValueError("handle does not own a resource")
        self._resource = None
        return resource

    def move(self) -> "Handle[T]":
        """Transfer ownership to a new handle, leaving this one empty."""
        release = self._release
        return self.__class__(self.detach(), release)

    def close(self) -> None:
        """Release the resource. Further calls are no-ops."""
        resource, self._resource = self._resource, None
        if resource is not None:
            self._release(resource)

    def __enter__(self) -> "Handle[T]":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_resource", None) is not None:
            warnings.warn(f"unclosed {self!r}", ResourceWarning, stacklevel=2)
            self.close()


def acquire(
    constructor: Callable[..., T],
    *args: Any,
    release: Optional[Callable[[T], None]] = None,
    **kwargs: Any,
) -> Optional[Handle[T]]:
    """Call a constructor and wrap its result in a :class:`Handle`.

    If the constructor fails with one of the errors Kerngit reports, the
    failure is written to the error channel and None is returned.
    """
    try:
        resource = constructor(*args, **kwargs)
    except RECORDED_ERRORS as e:
        record_error(e)
        return None
    return Handle(resource, release)
