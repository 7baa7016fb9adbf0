"""
SSH Reachability Probe

A probe opens one SSH connection to a machine and closes it again. It only
answers whether the machine currently accepts logins; it never runs
commands.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import asyncssh
from loguru import logger


class ReachabilityProber(ABC):
    @abstractmethod
    async def probe(self, address: str, username: str, key_path: Union[str, Path]) -> bool:
        """Return True if `username@address` accepts the key at `key_path`"""


class SshProber(ReachabilityProber):
    """Probes machines with asyncssh"""

    def __init__(self, connect_timeout: float = 10.0, port: int = 22):
        self.connect_timeout = connect_timeout
        self.port = port

    async def probe(self, address: str, username: str, key_path: Union[str, Path]) -> bool:
        if not address:
            return False
        try:
            conn = await asyncssh.connect(
                address,
                port=self.port,
                username=username,
                client_keys=[str(Path(key_path).expanduser())],
                known_hosts=None,
                connect_timeout=self.connect_timeout,
            )
        except (asyncssh.Error, OSError, asyncio.TimeoutError) as e:
            logger.debug(f"SSH to {username}@{address} not ready: {e}")
            return False

        conn.close()
        await conn.wait_closed()
        return True
