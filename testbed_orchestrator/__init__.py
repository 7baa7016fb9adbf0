"""
Testbed Orchestrator

Provisions, tracks and recycles a fleet of cloud instances spread over
several regions, for running distributed experiments.

Features:
- Concurrent creation and deletion of instances in every region
- All-or-nothing start of a fixed number of instances per region
- Lifecycle changes gated on SSH reachability, not provider status alone
- Pluggable cloud backends, with a deterministic in-memory backend

Usage:
    from testbed_orchestrator import Testbed, InMemoryProvider, load_settings

    settings = load_settings("testbed.toml")
    testbed = await Testbed.create(settings, InMemoryProvider(settings.regions))
    await testbed.deploy(5)
    await testbed.start(2)

CLI:
    testbed-orchestrator -c testbed.toml deploy 5
    testbed-orchestrator -c testbed.toml start 2
    testbed-orchestrator -c testbed.toml destroy
"""

__version__ = "0.1.0"

from .cloud import (
    Instance,
    PowerStatus,
    ServerProviderClient,
    InMemoryProvider,
    get_client,
    resolve_client_class,
)
from .configs import Repository, Settings, load_settings, load_ssh_public_key
from .errors import (
    TestbedError,
    ConfigurationError,
    InsufficientCapacity,
    ProviderOperationFailed,
    TransientProviderError,
    ReadinessTimeout,
)
from .allocation import StartPlan, select_instances_to_start
from .ssh import ReachabilityProber, SshProber
from .testbed import Testbed
from .status import render_status

__all__ = [
    # Version
    "__version__",
    # Cloud
    "Instance",
    "PowerStatus",
    "ServerProviderClient",
    "InMemoryProvider",
    "get_client",
    "resolve_client_class",
    # Configuration
    "Repository",
    "Settings",
    "load_settings",
    "load_ssh_public_key",
    # Errors
    "TestbedError",
    "ConfigurationError",
    "InsufficientCapacity",
    "ProviderOperationFailed",
    "TransientProviderError",
    "ReadinessTimeout",
    # Engine
    "StartPlan",
    "select_instances_to_start",
    "ReachabilityProber",
    "SshProber",
    "Testbed",
    "render_status",
]
