"""
Infrastructure management modules.
"""
from .ssh import ConnectionPool, SSHConnection

__all__ = [
    'ConnectionPool',
    'SSHConnection',
]
