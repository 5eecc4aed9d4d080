# progress.py -- Rate-limited progress output
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

"""Render transfer progress as single, overwritten status lines.

Every event channel (pack building, remote messages, object transfer and
checkout) has its own :class:`~kerngit.ratelimit.RateLimiter`. An event is
printed when its limiter allows it, which includes the first event of a
channel, or when it is terminal. Terminal events are always printed and are
the only ones that end with a newline, so the status line is closed exactly
once per phase.
"""

import sys
import time
from typing import TYPE_CHECKING, Callable, Optional, TextIO, Union

from dulwich.objects import ZERO_SHA

from .log_utils import getLogger
from .ratelimit import RateLimiter

if TYPE_CHECKING:
    from .callbacks import TransferStats

logger = getLogger(__name__)

CLEAR_LINE = "\x1b[2K\r"

DEFAULT_INTERVAL = 2.0

BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB")

PACK = "pack"
SIDEBAND = "sideband"
TRANSFER = "transfer"
CHECKOUT = "checkout"
CHANNELS = (PACK, SIDEBAND, TRANSFER, CHECKOUT)


def format_bytes(count: int, precision: int = 2, fixed: bool = True) -> str:
    """Format a byte count with a binary unit.

    The value is divided by 1024 for as long as it is at least 1024, so the
    number printed is below 1024 unless the count exceeds the largest unit.

    Args:
      count: Number of bytes
      precision: Digits after the decimal point in fixed notation
      fixed: Use fixed notation; otherwise the shortest general notation
    """
    value = float(count)
    unit = 0
    while value >= 1024.0 and unit < len(BYTE_UNITS) - 1:
        value /= 1024.0
        unit += 1
    if fixed:
        number = f"{value:.{precision}f}"
    else:
        number = f"{value:g}"
    return f"{number} {BYTE_UNITS[unit]}"


def _sha_str(sha: Union[bytes, str]) -> str:
    if isinstance(sha, bytes):
        return sha.decode("ascii")
    return sha


class ProgressReporter:
    """Print progress events to a text stream.

    Args:
      stream: Stream to write to (default: stderr)
      interval: Minimum number of seconds between two non-terminal lines
        of the same channel
      clock: Monotonic clock, in seconds
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._limiters = {
            channel: RateLimiter(interval, clock) for channel in CHANNELS
        }
        self._broken = False

    def reset(self) -> None:
        """Forget rate-limiting history, so the next event of every channel is shown."""
        for limiter in self._limiters.values():
            limiter.reset()

    def _should_render(self, channel: str, terminal: bool) -> bool:
        if terminal:
            return True
        return self._limiters[channel].allow()

    def _write(self, text: str) -> None:
        if self._broken:
            return
        try:
            self._stream.write(text)
            self._stream.flush()
        except (OSError, ValueError) as e:
            # Progress is best effort; stop writing once the stream fails.
            logger.debug("disabling progress output: %s", e)
            self._broken = True

    def _status(self, text: str, terminal: bool) -> None:
        self._write(CLEAR_LINE + text + ("\n" if terminal else ""))

    def pack_progress(self, stage: int, current: int, total: int) -> None:
        terminal = current == total
        if self._should_render(PACK, terminal):
            self._status(
                f"Packing objects: stage={int(stage)} {current}/{total}", terminal
            )

    def sideband_progress(self, text: str) -> None:
        terminal = text.endswith("\n")
        if self._should_render(SIDEBAND, terminal):
            self._write(CLEAR_LINE + "remote: " + text.rstrip("\r"))

    def transfer_progress(self, stats: "TransferStats") -> None:
        if stats.received_objects == stats.total_objects and stats.total_deltas:
            terminal = stats.indexed_deltas == stats.total_deltas
            if self._should_render(TRANSFER, terminal):
                self._status(
                    f"Resolving deltas {stats.indexed_deltas}/{stats.total_deltas}",
                    terminal,
                )
        elif stats.total_objects > 0:
            terminal = stats.received_objects == stats.total_objects
            if self._should_render(TRANSFER, terminal):
                self._status(
                    f"Received {stats.received_objects}/{stats.total_objects} "
                    f"objects ({stats.indexed_objects}) in "
                    f"{format_bytes(stats.received_bytes)}",
                    terminal,
                )

    def checkout_progress(
        self, path: Optional[str], completed_steps: int, total_steps: int
    ) -> None:
        terminal = completed_steps == total_steps
        if self._should_render(CHECKOUT, terminal):
            self._status(
                f"Checked-out: {completed_steps}/{total_steps} ({path or ''})",
                terminal,
            )

    def update_tips(
        self,
        refname: str,
        old: Optional[Union[bytes, str]],
        new: Union[bytes, str],
    ) -> None:
        new_str = _sha_str(new)
        if old is None or _sha_str(old) == _sha_str(ZERO_SHA):
            self._write(f"[new]     {new_str[:20]} {refname}\n")
        else:
            self._write(f"[updated] {_sha_str(old)[:10]}..{new_str[:10]} {refname}\n")
