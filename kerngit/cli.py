# cli.py -- Command-line interface
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

"""Command-line interface to Kerngit.

  kerngit clone [-b BRANCH] [--depth N] [--no-tags] URL DEST
  kerngit fetch [--remote NAME] [--depth N] [--no-tags] [--branch B]... [REFSPEC...]
  kerngit keys [HOST]
"""

import argparse
import logging
import signal
import sys
import types
from collections.abc import Sequence
from typing import Optional

from .config import SyncConfig
from .errors import LastError, last_error
from .keys import discover_keys
from .log_utils import default_logging_config
from .remote import clone, fetch
from .repository import DEFAULT_REMOTE, open_repo


def signal_int(signal: int, frame: Optional[types.FrameType]) -> None:
    sys.exit(1)


def _report(error: Optional[LastError]) -> int:
    message = error.message if error is not None else "unknown error"
    sys.stderr.write(f"error: {message}\n")
    return 1


class Command:
    """A Kerngit subcommand."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_clone(Command):
    """Clone a repository into a new directory."""

    def run(self, args: Sequence[str]) -> int:
        parser = argparse.ArgumentParser(prog="kerngit clone")
        parser.add_argument(
            "-b",
            "--branch",
            type=str,
            help="Check out branch instead of branch pointed to by remote HEAD",
        )
        parser.add_argument(
            "--depth", type=int, default=0, help="Depth at which to fetch"
        )
        parser.add_argument(
            "--no-tags", action="store_true", help="Don't fetch any tags from remote"
        )
        parser.add_argument("source", help="Repository to clone from")
        parser.add_argument("target", help="Directory to clone into")
        parsed_args = parser.parse_args(args)

        result = clone(
            parsed_args.target,
            parsed_args.source,
            branch=parsed_args.branch,
            depth=parsed_args.depth,
            include_tags=not parsed_args.no_tags,
            config=SyncConfig.default(),
        )
        if not result:
            return _report(result.error)
        result.close()
        return 0


class cmd_fetch(Command):
    """Download objects and refs from a configured remote."""

    def run(self, args: Sequence[str]) -> int:
        parser = argparse.ArgumentParser(prog="kerngit fetch")
        parser.add_argument(
            "--repo", default=".", help="Repository to fetch into (default: .)"
        )
        parser.add_argument(
            "--remote",
            default=DEFAULT_REMOTE,
            help=f"Remote to fetch from (default: {DEFAULT_REMOTE})",
        )
        parser.add_argument(
            "--depth", type=int, default=0, help="Depth at which to fetch"
        )
        parser.add_argument(
            "--no-tags", action="store_true", help="Don't fetch any tags from remote"
        )
        parser.add_argument(
            "--branch",
            dest="branches",
            action="append",
            default=[],
            help="Branch to fetch into its remote-tracking branch",
        )
        parser.add_argument("refspecs", nargs="*", help="Refspecs to fetch")
        parsed_args = parser.parse_args(args)

        handle = open_repo(parsed_args.repo)
        if handle is None:
            return _report(last_error())
        with handle:
            result = fetch(
                handle,
                parsed_args.remote,
                refspecs=parsed_args.refspecs,
                branches=parsed_args.branches,
                depth=parsed_args.depth,
                include_tags=not parsed_args.no_tags,
            )
        if not result:
            return _report(result.error)
        return 0


class cmd_keys(Command):
    """List the SSH key pairs that would be offered to a host."""

    def run(self, args: Sequence[str]) -> int:
        parser = argparse.ArgumentParser(prog="kerngit keys")
        parser.add_argument("host", nargs="?", help="Host to look up in ~/.ssh/config")
        parsed_args = parser.parse_args(args)

        config = SyncConfig.default()
        for pair in discover_keys(parsed_args.host, config.key_dir):
            sys.stdout.write(f"{pair.private}\t{pair.public}\n")
        return 0


commands = {
    "clone": cmd_clone,
    "fetch": cmd_fetch,
    "keys": cmd_keys,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="kerngit", description="Clone and fetch with key negotiation"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug output"
    )
    parser.add_argument(
        "command",
        help=f"Command to run. Available: {', '.join(sorted(commands))}",
    )
    parser.add_argument("args", nargs=argparse.REMAINDER)
    if not argv:
        parser.print_help()
        return 1
    parsed_args = parser.parse_args(argv)

    default_logging_config(parsed_args.verbose)

    try:
        cmd_kls = commands[parsed_args.command]
    except KeyError:
        logging.fatal("No such subcommand: %s", parsed_args.command)
        return 1
    return cmd_kls().run(parsed_args.args) or 0


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)
    sys.exit(main())


if __name__ == "__main__":
    _main()
