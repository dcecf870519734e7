"""Domain models for secret management."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

DEFAULT_SECRET_PREFIX = "k8s"
SEPARATOR = "-"

# Ordered field name -> payload bytes, written as the data of one cluster secret
FieldMap = Dict[str, bytes]


@dataclass(frozen=True)
class Config:
    """Resolved configuration for one invocation.

    Also maps (environment, name) pairs to Secret Manager identifiers. The
    mapping only reverses cleanly when the environment contains no '-'.
    """
    gcp_project_id: str
    secret_prefix: str = DEFAULT_SECRET_PREFIX
    service_account_path: Optional[str] = None

    def build_secret_name(self, environment: str, name: str) -> str:
        return f"{self.secret_prefix}{SEPARATOR}{environment}{SEPARATOR}{name}"

    def environment_prefix(self, environment: str) -> str:
        return f"{self.secret_prefix}{SEPARATOR}{environment}{SEPARATOR}"

    def parse_secret_name(self, full_name: str) -> Optional[Tuple[str, str]]:
        """
        Split a Secret Manager id back into (environment, name).

        The remainder after the prefix is split at the first separator, so an
        environment like 'dev-eu' cannot be recovered: 'k8s-dev-eu-token'
        parses as ('dev', 'eu-token').

        Returns:
            (environment, name) tuple, or None if the id is not ours
        """
        lead = f"{self.secret_prefix}{SEPARATOR}"
        if not full_name.startswith(lead):
            return None

        remainder = full_name[len(lead):]
        environment, sep, name = remainder.partition(SEPARATOR)
        if not sep or not environment or not name:
            return None
        return environment, name

    def project_path(self) -> str:
        return f"projects/{self.gcp_project_id}"

    def build_resource_name(self, environment: str, name: str) -> str:
        return f"{self.project_path()}/secrets/{self.build_secret_name(environment, name)}"

    def build_version_name(self, environment: str, name: str, version: str = "latest") -> str:
        return f"{self.build_resource_name(environment, name)}/versions/{version}"


@dataclass
class SecretInfo:
    """A secret listed from Secret Manager, with the environment prefix stripped."""
    name: str
    environment: str
    created_at: Optional[str] = None


class SyncOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED_DRY_RUN = "skipped-dry-run"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Summary of one sync run."""
    environment: str
    namespace: str
    dry_run: bool = False
    outcomes: List[Tuple[str, SyncOutcome]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def applied(self) -> int:
        return sum(1 for _, outcome in self.outcomes if outcome is SyncOutcome.APPLIED)

    @property
    def skipped(self) -> int:
        return sum(1 for _, outcome in self.outcomes if outcome is SyncOutcome.SKIPPED_DRY_RUN)

    @property
    def nothing_to_sync(self) -> bool:
        return not self.outcomes
