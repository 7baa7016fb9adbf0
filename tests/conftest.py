from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from testbed_orchestrator.configs.types import Repository, Settings
from testbed_orchestrator.ssh import ReachabilityProber


def write_key_pair(directory: Path, name: str = "id_ed25519", with_public: bool = True) -> Tuple[Path, str]:
    key = ed25519.Ed25519PrivateKey.generate()
    private_path = directory / name
    private_path.write_bytes(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    public_key = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    ).decode("utf-8")
    if with_public:
        (directory / f"{name}.pub").write_text(public_key + "\n")
    return private_path, public_key


class FakeProber(ReachabilityProber):
    """Succeeds unless the address still has failures left"""

    def __init__(self, failures: Optional[Dict[str, int]] = None, always_fail: bool = False):
        self.failures = dict(failures or {})
        self.always_fail = always_fail
        self.calls: List[Tuple[str, str, Path]] = []

    async def probe(self, address, username, key_path) -> bool:
        self.calls.append((address, username, key_path))
        if self.always_fail:
            return False
        if self.failures.get(address, 0) > 0:
            self.failures[address] -= 1
            return False
        return True

    def probed(self, address: str) -> int:
        return sum(1 for a, _, _ in self.calls if a == address)


@pytest.fixture
def key_pair(tmp_path: Path) -> Tuple[Path, str]:
    return write_key_pair(tmp_path)


@pytest.fixture
def make_settings(key_pair):
    private_path, _ = key_pair

    def _make(regions=("A", "B"), **overrides) -> Settings:
        values = dict(
            regions=list(regions),
            repository=Repository(url="https://example.com/testbed.git", branch="main"),
            ssh_private_key_file=private_path,
            readiness_interval=0,
            stop_poll_interval=0,
            max_wait=5,
        )
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def key_pair_factory(tmp_path: Path):
    def _make(name: str = "id_ed25519", with_public: bool = True) -> Tuple[Path, str]:
        return write_key_pair(tmp_path, name=name, with_public=with_public)

    return _make


@pytest.fixture
def prober_factory():
    return FakeProber
