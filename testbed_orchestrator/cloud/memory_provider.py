"""
In-Memory Cloud Provider

Simulates a cloud backend without any network access. Instance ids and
addresses are assigned deterministically, which makes the backend suitable
for unit tests and dry runs of the CLI.
"""

import asyncio
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .base import Instance, PowerStatus, ServerProviderClient


class InMemoryProvider(ServerProviderClient):
    """
    Deterministic fake backend.

    Created instances are powered off unless `created_status` says
    otherwise. Power transitions requested through
    start_instances/stop_instances report PENDING for `transition_listings`
    subsequent listings before settling.
    """

    USERNAME = "ubuntu"

    @classmethod
    def from_settings(cls, settings) -> "InMemoryProvider":
        return cls(settings.regions)

    def __init__(
        self,
        regions: Sequence[str],
        transition_listings: int = 0,
        fail_create_after: Optional[int] = None,
        list_errors: Optional[List[BaseException]] = None,
        created_status: PowerStatus = PowerStatus.INACTIVE,
    ):
        """
        Args:
            regions: Regions this fake account can create instances in
            transition_listings: Listings during which a started/stopped instance stays PENDING
            fail_create_after: Number of successful creates before every further create fails
            list_errors: Exceptions raised, in order, by the next list_instances calls
            created_status: Power status of newly created instances
        """
        self.regions = list(regions)
        self.transition_listings = transition_listings
        self.fail_create_after = fail_create_after
        self.list_errors = list(list_errors or [])
        self.created_status = created_status

        self.public_keys: List[str] = []
        self.start_calls: List[List[str]] = []
        self.stop_calls: List[List[str]] = []
        self.list_calls = 0

        self._instances: Dict[str, Instance] = {}
        self._transitions: Dict[str, Tuple[int, PowerStatus]] = {}
        self._next_id = 0
        self._creates = 0

    async def register_ssh_public_key(self, public_key: str) -> None:
        await asyncio.sleep(0)
        if public_key not in self.public_keys:
            self.public_keys.append(public_key)

    async def list_instances(self) -> List[Instance]:
        await asyncio.sleep(0)
        self.list_calls += 1
        if self.list_errors:
            raise self.list_errors.pop(0)

        for instance_id, (remaining, target) in list(self._transitions.items()):
            if remaining <= 0:
                del self._transitions[instance_id]
                self._set_status(instance_id, target)
            else:
                self._transitions[instance_id] = (remaining - 1, target)

        return list(self._instances.values())

    async def create_instance(self, region: str) -> Instance:
        await asyncio.sleep(0)
        if region not in self.regions:
            raise ValueError(f"Unknown region {region}")
        if self.fail_create_after is not None and self._creates >= self.fail_create_after:
            raise RuntimeError(f"Quota exceeded in region {region}")
        self._creates += 1

        instance_id = str(self._next_id)
        self._next_id += 1
        region_index = self.regions.index(region)
        instance = Instance(
            id=instance_id,
            region=region,
            main_address=f"10.{region_index}.{int(instance_id) // 256}.{int(instance_id) % 256}",
            power_status=self.created_status,
        )
        self._instances[instance_id] = instance
        logger.debug(f"Created instance {instance_id} in region {region}")
        return instance

    async def delete_instance(self, instance: Instance) -> None:
        await asyncio.sleep(0)
        if instance.id not in self._instances:
            raise KeyError(f"Unknown instance {instance.id}")
        del self._instances[instance.id]
        self._transitions.pop(instance.id, None)

    async def start_instances(self, instances: Iterable[Instance]) -> None:
        ids = [instance.id for instance in instances]
        await asyncio.sleep(0)
        self.start_calls.append(ids)
        self._transition(ids, PowerStatus.ACTIVE)

    async def stop_instances(self, instances: Iterable[Instance]) -> None:
        ids = [instance.id for instance in instances]
        await asyncio.sleep(0)
        self.stop_calls.append(ids)
        self._transition(ids, PowerStatus.INACTIVE)

    def _transition(self, ids: List[str], target: PowerStatus):
        for instance_id in ids:
            if instance_id not in self._instances:
                raise KeyError(f"Unknown instance {instance_id}")
        for instance_id in ids:
            if self.transition_listings > 0:
                self._transitions[instance_id] = (self.transition_listings, target)
                self._set_status(instance_id, PowerStatus.PENDING)
            else:
                self._set_status(instance_id, target)

    def _set_status(self, instance_id: str, status: PowerStatus):
        self._instances[instance_id] = replace(self._instances[instance_id], power_status=status)
