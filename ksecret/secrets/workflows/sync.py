"""Workflow for syncing an environment's secrets into a Kubernetes namespace."""
import logging
from typing import Optional

from ..domains.errors import NamespaceNotFoundError
from ..domains.gcp_client import GCPSecretClient
from ..domains.k8s_client import KubeClient
from ..domains.models import Config, SyncOutcome, SyncResult
from ..domains.value_format import detect, describe

logger = logging.getLogger(__name__)


class SyncReporter:
    """Receives progress events from a sync run. The default only logs."""

    def started(self, environment: str, namespace: str, dry_run: bool) -> None:
        logger.debug(f"Syncing environment '{environment}' to namespace '{namespace}' (dry_run={dry_run})")

    def found(self, count: int) -> None:
        logger.debug(f"Found {count} secret(s) to sync")

    def item_started(self, name: str) -> None:
        pass

    def item_finished(self, name: str, outcome: SyncOutcome) -> None:
        logger.debug(f"{name}: {outcome.value}")


def sync_secrets(
    config: Config,
    environment: str,
    namespace: Optional[str] = None,
    context: Optional[str] = None,
    dry_run: bool = False,
    remote: Optional[GCPSecretClient] = None,
    cluster: Optional[KubeClient] = None,
    reporter: Optional[SyncReporter] = None,
) -> SyncResult:
    """
    Sync all secrets of an environment from Secret Manager into a namespace.

    Args:
        config: Resolved configuration
        environment: Environment whose secrets are synced
        namespace: Target namespace (defaults to the environment name)
        context: Kubernetes context used when no cluster client is given
        dry_run: List what would be synced without reading values or writing
        remote: Secret Manager client (built from config if not given)
        cluster: Kubernetes client (built from context if not given)
        reporter: Progress receiver

    Returns:
        SyncResult with one outcome per secret, empty when nothing matched

    Raises:
        NamespaceNotFoundError: If the target namespace does not exist
        KsecretError: First failure while listing or applying; secrets applied
            before it stay applied

    Behavior:
        - Namespace is checked before anything is listed
        - Secrets are processed one at a time, in listing order
        - Each secret is applied by delete-then-recreate so its fields match
          the current value exactly
        - Stops at the first error, no rollback; re-running is safe
    """
    namespace = namespace or environment
    remote = remote or GCPSecretClient(config)
    cluster = cluster or KubeClient(context)
    reporter = reporter or SyncReporter()

    reporter.started(environment, namespace, dry_run)
    result = SyncResult(environment=environment, namespace=namespace, dry_run=dry_run)

    if not cluster.namespace_exists(namespace):
        raise NamespaceNotFoundError(namespace)

    secrets = remote.list_secrets(environment)
    if not secrets:
        logger.info(f"No secrets found for environment '{environment}'")
        return result

    reporter.found(len(secrets))

    for secret in secrets:
        reporter.item_started(secret.name)

        if dry_run:
            result.outcomes.append((secret.name, SyncOutcome.SKIPPED_DRY_RUN))
            reporter.item_finished(secret.name, SyncOutcome.SKIPPED_DRY_RUN)
            continue

        try:
            value = remote.get_secret(environment, secret.name)
            fields = detect(value)
            logger.debug(f"{secret.name}: {describe(fields)}")
            cluster.apply_secret(namespace, secret.name, fields)
        except Exception:
            logger.error(f"Sync aborted at '{secret.name}' after {result.applied} applied secret(s)")
            reporter.item_finished(secret.name, SyncOutcome.FAILED)
            raise

        result.outcomes.append((secret.name, SyncOutcome.APPLIED))
        reporter.item_finished(secret.name, SyncOutcome.APPLIED)

    logger.info(f"Synced {result.applied} secret(s) to namespace '{namespace}'")
    return result
