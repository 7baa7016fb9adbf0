"""
Testbed Error Types

All failures surfaced by the orchestration engine derive from TestbedError.
"""

from typing import List, Optional, Tuple


class TestbedError(Exception):
    """Base class for all testbed errors"""


class ConfigurationError(TestbedError):
    """Settings or key material could not be loaded"""


class InsufficientCapacity(TestbedError):
    """Not enough inactive instances to satisfy a start request"""

    def __init__(self, missing: List[Tuple[str, int]]):
        self.missing = list(missing)
        details = ", ".join(f"{region}: {shortfall}" for region, shortfall in self.missing)
        super().__init__(f"Not enough inactive instances ({details})")


class ProviderOperationFailed(TestbedError):
    """A call to the cloud provider failed"""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        message = f"Provider operation '{operation}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class TransientProviderError(TestbedError):
    """
    Raised by backends for failures that are expected to clear up on retry
    (rate limiting, eventual consistency). Polling loops retry these;
    everywhere else they are reported as ProviderOperationFailed.
    """


class ReadinessTimeout(TestbedError):
    """The fleet did not converge within the configured maximum wait"""

    def __init__(self, waited: float, reason: str):
        self.waited = waited
        super().__init__(f"Gave up after {waited:.0f}s: {reason}")
