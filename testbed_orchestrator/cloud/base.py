"""
Cloud Provider Abstract Base Class

Defines the capability interface the testbed engine requires from any
cloud backend, and the instance model backends report.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Iterable, List

if TYPE_CHECKING:
    from ..configs.types import Settings


class PowerStatus(str, Enum):
    """Instance power states"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"
    # Transitional state reported while booting or changing power state
    PENDING = "pending"


@dataclass(frozen=True)
class Instance:
    """A machine as reported by the provider"""
    id: str
    region: str
    main_address: str
    power_status: PowerStatus

    def is_active(self) -> bool:
        return self.power_status == PowerStatus.ACTIVE

    def is_inactive(self) -> bool:
        return self.power_status == PowerStatus.INACTIVE

    def is_terminated(self) -> bool:
        return self.power_status == PowerStatus.TERMINATED

    def ssh_address(self) -> str:
        return self.main_address

    def ssh_command(self, username: str, key_path: str) -> str:
        return f"ssh -i {key_path} {username}@{self.main_address}"


class ServerProviderClient(ABC):
    """
    Abstract base class for cloud backends.

    Implementations are bound to a single provider account and may span
    several regions. Every method is a coroutine so the engine can fan out
    many calls concurrently.
    """

    # Login user for every instance of this backend
    USERNAME: ClassVar[str] = "root"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServerProviderClient":
        """Build the backend for the CLI. Credentials come from the environment."""
        return cls()

    @abstractmethod
    async def register_ssh_public_key(self, public_key: str) -> None:
        """
        Upload a public key so new instances accept it.

        Must be idempotent: registering an already known key is a no-op.
        """

    @abstractmethod
    async def list_instances(self) -> List[Instance]:
        """
        Return every non-purged instance, regardless of power state.
        """

    @abstractmethod
    async def create_instance(self, region: str) -> Instance:
        """
        Provision one instance in the given region.

        The returned instance may report a transitional power state.
        """

    @abstractmethod
    async def delete_instance(self, instance: Instance) -> None:
        """
        Permanently remove an instance, even while it is changing state.
        """

    @abstractmethod
    async def start_instances(self, instances: Iterable[Instance]) -> None:
        """Power on the given instances. Empty input is a no-op."""

    @abstractmethod
    async def stop_instances(self, instances: Iterable[Instance]) -> None:
        """Power off the given instances. Empty input is a no-op."""

    def __str__(self) -> str:
        return type(self).__name__
