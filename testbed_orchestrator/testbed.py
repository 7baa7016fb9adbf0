"""
Testbed Orchestration Engine

Owns the local snapshot of the fleet and drives lifecycle changes through a
ServerProviderClient. Every lifecycle change is gated on the machines
actually accepting SSH logins, not only on the status reported by the
provider.

The engine is meant to be driven by a single caller at a time.
"""

import asyncio
import time
from typing import Awaitable, Iterable, List, Optional, Sequence, TypeVar

from loguru import logger

from .allocation import StartPlan, select_instances_to_start
from .cloud.base import Instance, ServerProviderClient
from .configs.loader import load_ssh_public_key
from .configs.types import Settings
from .errors import (
    InsufficientCapacity,
    ProviderOperationFailed,
    ReadinessTimeout,
    TestbedError,
    TransientProviderError,
)
from .ssh import ReachabilityProber, SshProber

T = TypeVar("T")


class Testbed:
    settings: Settings
    client: ServerProviderClient
    prober: ReachabilityProber

    _instances: List[Instance]

    def __init__(
        self,
        settings: Settings,
        client: ServerProviderClient,
        instances: Iterable[Instance] = (),
        prober: Optional[ReachabilityProber] = None,
    ):
        self.settings = settings
        self.client = client
        self.prober = prober if prober is not None else SshProber(connect_timeout=settings.probe_timeout)
        self._instances = list(instances)

    @classmethod
    async def create(
        cls,
        settings: Settings,
        client: ServerProviderClient,
        prober: Optional[ReachabilityProber] = None,
    ) -> "Testbed":
        """
        Register the SSH public key with the provider and load the current fleet.

        Raises:
            ConfigurationError: If the key material cannot be loaded
            ProviderOperationFailed: If the provider rejects the key or the listing fails
        """
        public_key = load_ssh_public_key(settings)
        await _provider_call("register_ssh_public_key", client.register_ssh_public_key(public_key))
        instances = await _provider_call("list_instances", client.list_instances())
        logger.info(f"Testbed on {client} has {len(instances)} instances")
        return cls(settings, client, instances, prober)

    @property
    def instances(self) -> List[Instance]:
        return list(self._instances)

    @property
    def username(self) -> str:
        return self.client.USERNAME

    async def deploy(self, quantity: int):
        """
        Create `quantity` instances in every region. The total number of
        instances created is thus `quantity` x the number of regions.
        """
        if quantity < 0:
            raise ValueError(f"quantity must be non-negative, got {quantity}")

        logger.info(f"Populating testbed with {quantity} instances per region...")
        created = await _gather(
            "create_instance",
            [self.client.create_instance(region) for region in self.settings.regions for _ in range(quantity)],
        )

        await self._ready(created=[x.id for x in created])
        self._instances = await self._list_instances()
        logger.success(f"Testbed populated, {len(self._instances)} instances")

    async def destroy(self):
        """Delete every instance of the snapshot"""
        logger.info(f"Destroying {len(self._instances)} instances...")
        await _gather("delete_instance", [self.client.delete_instance(x) for x in self._instances])
        self._instances = []
        logger.success("Testbed destroyed")

    def plan_start(self, quantity: int) -> StartPlan:
        """Select the instances start(quantity) would power on, without side effects"""
        return select_instances_to_start(self._instances, self.settings.regions, quantity)

    async def start(self, quantity: int):
        """
        Power on `quantity` inactive instances in every region.

        Either every region gets `quantity` instances or nothing is started.

        Raises:
            InsufficientCapacity: If any region has fewer than `quantity` inactive
                instances. The error lists every such region and its shortfall.
        """
        plan = self.plan_start(quantity)
        if not plan.feasible:
            raise InsufficientCapacity(plan.missing)

        logger.info(f"Starting {quantity} instances per region...")
        await _provider_call("start_instances", self.client.start_instances(plan.selected))

        await self._ready(powered_on=[x.id for x in plan.selected])
        self._instances = await self._list_instances()
        logger.success(f"Started {len(plan.selected)} instances")

    async def stop(self):
        """Power off every instance of the snapshot and wait until all are inactive"""
        logger.info(f"Stopping {len(self._instances)} instances...")
        await _provider_call("stop_instances", self.client.stop_instances(list(self._instances)))

        started = time.monotonic()
        while True:
            instances = await self._poll_instances()
            if instances is not None:
                running = [x.id for x in instances if not x.is_inactive() and not x.is_terminated()]
                if not running:
                    self._instances = instances
                    break
                logger.debug(f"Instances {running} not stopped yet")

            self._check_deadline(started, "instances did not stop")
            await asyncio.sleep(self.settings.stop_poll_interval)

        logger.success("All instances stopped")

    async def _ready(self, created: Sequence[str] = (), powered_on: Sequence[str] = ()):
        """
        Block until every powered-on instance accepts SSH logins.

        Args:
            created: Ids that must show up in the listing, in any power state
                but terminated
            powered_on: Ids that must show up in the listing and have left the
                inactive state
        """
        interval = self.settings.readiness_interval
        started = time.monotonic()
        while True:
            await asyncio.sleep(interval)
            logger.info(f"Waiting for machines to boot ({time.monotonic() - started:.0f}s)...")

            instances = await self._poll_instances()
            if instances is not None and await self._all_reachable(instances, created, powered_on):
                break

            self._check_deadline(started, "machines are not reachable")

        logger.success("Machines are reachable")

    async def _all_reachable(
        self, instances: List[Instance], created: Sequence[str], powered_on: Sequence[str]
    ) -> bool:
        listed = {x.id: x for x in instances}
        not_listed = [i for i in created if i not in listed or listed[i].is_terminated()]
        if not_listed:
            logger.debug(f"Instances {not_listed} not listed yet")
            return False

        not_started = [i for i in powered_on if i not in listed or listed[i].is_inactive()]
        if not_started:
            logger.debug(f"Instances {not_started} not started yet")
            return False

        targets = [x for x in instances if not x.is_inactive() and not x.is_terminated()]
        key_path = self.settings.ssh_private_key_file
        results = await asyncio.gather(
            *(self.prober.probe(x.ssh_address(), self.username, key_path) for x in targets))

        unreachable = [x.id for x, ok in zip(targets, results) if not ok]
        if unreachable:
            logger.debug(f"Instances {unreachable} not reachable yet")
            return False
        return True

    async def _list_instances(self) -> List[Instance]:
        return await _provider_call("list_instances", self.client.list_instances())

    async def _poll_instances(self) -> Optional[List[Instance]]:
        """List instances, returning None on a transient provider failure"""
        try:
            return await self.client.list_instances()
        except TransientProviderError as e:
            logger.warning(f"Listing instances failed, retrying: {e}")
            return None
        except TestbedError:
            raise
        except Exception as e:
            raise ProviderOperationFailed("list_instances", e) from e

    def _check_deadline(self, started: float, reason: str):
        max_wait = self.settings.max_wait
        waited = time.monotonic() - started
        if max_wait is not None and waited >= max_wait:
            raise ReadinessTimeout(waited, reason)


async def _provider_call(operation: str, call: Awaitable[T]) -> T:
    try:
        return await call
    except TransientProviderError as e:
        raise ProviderOperationFailed(operation, e) from e
    except TestbedError:
        raise
    except Exception as e:
        raise ProviderOperationFailed(operation, e) from e


async def _gather(operation: str, calls: List[Awaitable[T]]) -> List[T]:
    # Only the first failure is reported, calls already dispatched keep running
    return await _provider_call(operation, asyncio.gather(*calls))
