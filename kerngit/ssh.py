# ssh.py -- SSH vendor driven by credential callbacks
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

"""Paramiko SSH support with callback-driven authentication.

Dulwich calls :meth:`CallbackSSHVendor.run_command` to start
``git-upload-pack`` on the remote. Before the command runs, the vendor
authenticates in rounds: every round asks the operation's
:class:`~kerngit.callbacks.RemoteCallbacks` for a credential of a type the
server still accepts, and tries it. The session fails with
:class:`~kerngit.errors.AuthenticationExhausted` as soon as the callbacks
decline.
"""

import os
from typing import BinaryIO, Optional, cast

import paramiko
import paramiko.config

from .callbacks import RemoteCallbacks
from .credentials import Credential, CredentialType, Keypair, Username, UserPass
from .errors import AuthenticationExhausted, HostKeyMismatch
from .handle import Handle
from .keys import default_key_dir, load_ssh_config
from .log_utils import getLogger

logger = getLogger(__name__)

DEFAULT_PORT = 22
RECV_SIZE = 4096

# SSH authentication method names and the credential kinds answering them.
AUTH_METHODS = {
    "publickey": CredentialType.SSH_KEY,
    "password": CredentialType.USERPASS_PLAINTEXT,
    "keyboard-interactive": CredentialType.SSH_INTERACTIVE,
}


def credential_types(methods) -> CredentialType:
    """Translate SSH authentication method names to a credential mask."""
    ret = CredentialType(0)
    for method in methods:
        ret |= AUTH_METHODS.get(method, CredentialType(0))
    return ret


class SSHChannelFile:
    """Blocking byte stream over the channel running the remote command.

    Closing it also closes the transport that carries the channel.
    """

    def __init__(self, transport: paramiko.Transport, channel: paramiko.Channel) -> None:
        channel.setblocking(True)
        self.transport = transport
        self.channel = channel

    @property
    def stderr(self) -> BinaryIO:
        return cast(BinaryIO, self.channel.makefile_stderr("rb"))

    def can_read(self) -> bool:
        return self.channel.recv_ready()

    def write(self, data: bytes) -> None:
        self.channel.sendall(data)

    def read(self, n: Optional[int] = None) -> bytes:
        """Read ``n`` bytes, fewer only at end of stream.

        Without ``n``, return whatever the next receive yields.
        """
        if not n:
            return self.channel.recv(RECV_SIZE)
        buf = bytearray()
        while len(buf) < n:
            chunk = self.channel.recv(n - len(buf))
            if not chunk:
                break
            buf += chunk
        return bytes(buf)

    def close(self) -> None:
        try:
            self.channel.close()
        finally:
            self.transport.close()


class CallbackSSHVendor:
    """SSH vendor that authenticates through remote callbacks.

    Args:
      callbacks: Callbacks of the running operation
      url: Remote location, passed to the credential callback
      ssh_config: Parsed SSH client config (default: ``~/.ssh/config``)
      known_hosts: Path of the known hosts file
      timeout: Connection timeout in seconds
    """

    def __init__(
        self,
        callbacks: RemoteCallbacks,
        url: str,
        ssh_config: Optional[paramiko.config.SSHConfig] = None,
        known_hosts: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.callbacks = callbacks
        self.url = url
        self.ssh_config = ssh_config if ssh_config is not None else load_ssh_config()
        if known_hosts is None:
            known_hosts = os.path.join(default_key_dir(), "known_hosts")
        self.known_hosts = known_hosts
        self.timeout = timeout

    def _load_host_keys(self) -> paramiko.HostKeys:
        host_keys = paramiko.HostKeys()
        try:
            host_keys.load(self.known_hosts)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("could not read %s: %s", self.known_hosts, e)
        return host_keys

    def check_host_key(self, host: str, port: int, key: paramiko.PKey) -> None:
        """Compare the server key with known_hosts.

        Unknown hosts are accepted.

        Raises:
          HostKeyMismatch: if known_hosts has a different key of the same type
        """
        name = host if port == DEFAULT_PORT else f"[{host}]:{port}"
        entry = self._load_host_keys().lookup(name)
        known = entry.get(key.get_name()) if entry is not None else None
        if known is None:
            logger.info("accepting unknown %s host key for %s", key.get_name(), name)
            return
        if known != key:
            raise HostKeyMismatch(name, key.fingerprint)

    def _ask(self, username: Optional[str], allowed: CredentialType) -> Credential:
        credential = self.callbacks.credentials(self.url, username, allowed)
        if credential is None:
            raise AuthenticationExhausted(self.url)
        return credential

    def _try_credential(
        self, transport: paramiko.Transport, username: str, credential: Credential
    ) -> list[str]:
        """Attempt one authentication; returns the methods still allowed.

        Raises:
          paramiko.AuthenticationException: if the server rejects it
        """
        if isinstance(credential, Keypair):
            # Bytes, passed positionally: the keyword is renamed in paramiko 5.
            passphrase = None
            if credential.passphrase is not None:
                passphrase = credential.passphrase.encode("utf-8")
            try:
                pkey = paramiko.PKey.from_path(credential.privkey, passphrase)
            except (paramiko.SSHException, ValueError, OSError) as e:
                logger.debug("skipping unusable key %s: %s", credential.privkey, e)
                raise paramiko.AuthenticationException(
                    f"could not load key {credential.privkey}"
                ) from e
            return transport.auth_publickey(credential.username or username, pkey)
        if isinstance(credential, UserPass):
            return transport.auth_password(credential.username, credential.password)
        raise AuthenticationExhausted(self.url)

    def authenticate(self, transport: paramiko.Transport, username: str) -> None:
        """Run authentication rounds until the server accepts or we run out."""
        try:
            methods = transport.auth_none(username)
        except paramiko.BadAuthenticationType as e:
            methods = e.allowed_types
        while not transport.is_authenticated():
            allowed = credential_types(methods)
            if not allowed:
                logger.debug("no usable authentication method in %r", methods)
                raise AuthenticationExhausted(self.url)
            credential = self._ask(username, allowed)
            logger.debug("trying %r", credential)
            try:
                methods = self._try_credential(transport, username, credential)
            except paramiko.BadAuthenticationType as e:
                methods = e.allowed_types
            except paramiko.AuthenticationException as e:
                logger.debug("credential rejected: %s", e)

    def run_command(
        self,
        host: str,
        command: bytes,
        username: Optional[str] = None,
        port: Optional[int] = None,
        password: Optional[str] = None,
        key_filename: Optional[str] = None,
        protocol_version: Optional[int] = None,
        **kwargs: object,
    ) -> SSHChannelFile:
        host_config = self.ssh_config.lookup(host)
        hostname = host_config.get("hostname", host)
        if not port:
            port = int(host_config.get("port", DEFAULT_PORT))
        if not username:
            username = host_config.get("user")

        transport = paramiko.Transport((hostname, port))
        with Handle(transport) as handle:
            transport.start_client(timeout=self.timeout)
            self.check_host_key(hostname, port, transport.get_remote_server_key())

            if not username:
                credential = self._ask(None, CredentialType.USERNAME)
                if not isinstance(credential, Username):
                    raise AuthenticationExhausted(self.url)
                username = credential.username
            self.authenticate(transport, username)

            channel = transport.open_session(timeout=self.timeout)
            if protocol_version is None or protocol_version == 2:
                channel.set_environment_variable(name="GIT_PROTOCOL", value="version=2")
            channel.exec_command(command)
            return SSHChannelFile(handle.detach(), channel)
