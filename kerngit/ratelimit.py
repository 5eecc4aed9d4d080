# ratelimit.py -- Cooldown gate for high-frequency events
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

"""Rate limiting for progress output."""

import time
from typing import Callable, Optional


class RateLimiter:
    """Allow an action at most once per interval.

    This is a plain boolean gate meant to be polled from a callback that
    fires far more often than the operator wants to see output. It never
    sleeps and never queues anything.

    Args:
      interval: Minimum time between two allowed calls, in seconds
      clock: Monotonic clock returning seconds
    """

    def __init__(
        self, interval: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        if interval < 0:
            raise ValueError(f"negative interval: {interval!r}")
        self.interval = interval
        self._clock = clock
        self._last: Optional[float] = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.interval!r})"

    def allow(self) -> bool:
        """Check whether the action may happen now.

        Returns True, and starts a new interval, when nothing was allowed
        yet or more than ``interval`` seconds have passed since the last
        allowed call. Otherwise returns False and changes nothing.
        """
        now = self._clock()
        if self._last is not None and now - self._last <= self.interval:
            return False
        self._last = now
        return True

    def reset(self) -> None:
        """Make the next :meth:`allow` call succeed unconditionally."""
        self._last = None
