"""
SSH connection management using paramiko.
"""
import logging
import os
import socket
import threading
from typing import Dict, Optional, Tuple

import paramiko

logger = logging.getLogger("ssh")


class SSHConnection:
    """A single paramiko SSH session to one host."""

    def __init__(self, host: str, username: str = 'root', key_path: Optional[str] = None,
                 port: int = 22, timeout: int = 30):
        """Open an SSH connection.

        Args:
            host: Remote host to connect to
            username: Username for authentication
            key_path: Path to SSH private key (optional; agent and default keys are also tried)
            port: SSH port (default: 22)
            timeout: Connection timeout in seconds
        """
        self.host = host
        self.username = username
        self.key_path = os.path.expanduser(key_path) if key_path else None
        self.port = port
        self.timeout = timeout
        self.client = paramiko.SSHClient()
        self._connect()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _connect(self):
        self.client.load_system_host_keys()
        self.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        logger.debug(f"Connecting to {self.username}@{self.host}:{self.port}")
        self.client.connect(
            hostname=self.host,
            port=self.port,
            username=self.username,
            key_filename=self.key_path,
            timeout=self.timeout,
            allow_agent=True,
            look_for_keys=True,
        )

    def execute(self, command: str) -> Tuple[int, str, str]:
        """Execute a command and wait for it to finish.

        There is no command timeout; a hung remote command blocks the caller.
        """
        logger.debug(f"[{self.host}] {command}")
        _, stdout, stderr = self.client.exec_command(command)
        out = stdout.read().decode(errors='replace')
        err = stderr.read().decode(errors='replace')
        return stdout.channel.recv_exit_status(), out, err

    def put(self, localpath: str, remotepath: str) -> None:
        """Upload a file to the remote host over SFTP."""
        logger.debug(f"Uploading {localpath} to {self.host}:{remotepath}")
        sftp = self.client.open_sftp()
        try:
            sftp.put(localpath, remotepath)
        finally:
            sftp.close()

    def close(self):
        self.client.close()


class ConnectionPool:
    """Thread-safe pool holding one SSH connection per host."""

    def __init__(self, username: str = 'root', key_path: Optional[str] = None,
                 port: int = 22, timeout: int = 30):
        self.username = username
        self.key_path = key_path
        self.port = port
        self.timeout = timeout
        self.connections: Dict[str, SSHConnection] = {}
        self.lock = threading.RLock()

    def get_connection(self, host: str) -> SSHConnection:
        """Get a connection from the pool, opening one if needed.

        Connections are opened outside the lock so one slow host does not
        hold up the others.
        """
        with self.lock:
            conn = self.connections.get(host)
        if conn is not None:
            return conn

        logger.debug(f"Creating new SSH connection to {self.username}@{host}")
        new_conn = SSHConnection(host, username=self.username, key_path=self.key_path,
                                 port=self.port, timeout=self.timeout)
        with self.lock:
            conn = self.connections.setdefault(host, new_conn)
        if conn is not new_conn:
            # another thread connected first
            new_conn.close()
        return conn

    def execute(self, host: str, command: str) -> Tuple[int, str, str]:
        """Run a command on a host; connection failures give exit code 255."""
        try:
            return self.get_connection(host).execute(command)
        except (paramiko.SSHException, socket.error) as e:
            self._discard(host)
            return 255, '', f"ssh {host}: {e}"

    def put(self, host: str, localpath: str, remotepath: str) -> Tuple[int, str, str]:
        """Upload a file to a host; failures give exit code 1, or 255 for connection errors."""
        try:
            conn = self.get_connection(host)
        except (paramiko.SSHException, socket.error) as e:
            self._discard(host)
            return 255, '', f"ssh {host}: {e}"
        try:
            conn.put(localpath, remotepath)
        except (paramiko.SSHException, IOError) as e:
            return 1, '', f"Failed to upload {localpath} to {host}:{remotepath}: {e}"
        return 0, '', ''

    def _discard(self, host: str) -> None:
        with self.lock:
            conn = self.connections.pop(host, None)
        if conn is not None:
            conn.close()

    def close_all(self):
        """Close all connections in the pool."""
        with self.lock:
            for host, conn in self.connections.items():
                logger.debug(f"Closing SSH connection to {host}")
                conn.close()
            self.connections.clear()
