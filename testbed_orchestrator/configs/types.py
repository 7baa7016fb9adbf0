from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, field_validator


class Repository(BaseModel):
    url: str
    branch: str = "main"


class Settings(BaseModel):
    # Order is only used for display
    regions: List[str]
    repository: Repository
    ssh_private_key_file: Path
    # Defaults to <ssh_private_key_file>.pub, derived from the private key if that file is missing
    ssh_public_key_file: Optional[Path] = None

    # Seconds between readiness checks
    readiness_interval: float = 5.0
    # Seconds between listings while waiting for a stop, 0 polls back to back
    stop_poll_interval: float = 1.0
    # Upper bound for any wait loop in seconds, None waits forever
    max_wait: Optional[float] = 600.0
    # Connect timeout of a single SSH probe
    probe_timeout: float = 10.0

    @field_validator("regions")
    @classmethod
    def _check_regions(cls, regions: List[str]) -> List[str]:
        if not regions:
            raise ValueError("at least one region is required")
        if len(set(regions)) != len(regions):
            raise ValueError(f"duplicate regions in {regions}")
        return regions

    @field_validator("ssh_private_key_file", "ssh_public_key_file")
    @classmethod
    def _expand_user(cls, path: Optional[Path]) -> Optional[Path]:
        return path.expanduser() if path is not None else None

    @property
    def number_of_regions(self) -> int:
        return len(self.regions)

    @property
    def public_key_path(self) -> Path:
        if self.ssh_public_key_file is not None:
            return self.ssh_public_key_file
        return self.ssh_private_key_file.with_name(self.ssh_private_key_file.name + ".pub")
