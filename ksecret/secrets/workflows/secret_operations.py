"""Workflow for secret operations with caching."""
import logging
from typing import List, Optional

from ..domains.cache import SecretCache
from ..domains.errors import CachePersistenceError
from ..domains.gcp_client import GCPSecretClient
from ..domains.models import Config, SecretInfo

logger = logging.getLogger(__name__)


def _load_cache(cache: Optional[SecretCache]) -> Optional[SecretCache]:
    cache = cache if cache is not None else SecretCache()
    try:
        cache.ensure_loaded()
    except CachePersistenceError as e:
        logger.warning(f"Cache unavailable, continuing without it: {e}")
        return None
    return cache


def _save_cache(cache: SecretCache) -> None:
    try:
        cache.save()
    except CachePersistenceError as e:
        logger.warning(f"Failed to update cache: {e}")


def get_secret(
    config: Config,
    environment: str,
    name: str,
    use_cache: bool = True,
    remote: Optional[GCPSecretClient] = None,
    cache: Optional[SecretCache] = None,
) -> str:
    """
    Fetch a secret value, using the local cache when possible.

    Args:
        config: Resolved configuration
        environment: Environment name
        name: Secret name within the environment
        use_cache: If False, neither read nor write the cache
        remote: Secret Manager client (built from config if not given)
        cache: Cache to use (default cache file if not given)

    Returns:
        Secret value

    Behavior:
        - A cached value younger than five minutes is returned without
          contacting Secret Manager
        - On a miss the value is fetched and cached
        - Cache read/write problems are logged and never fail the call
    """
    if use_cache:
        cache = _load_cache(cache)
        if cache is not None:
            cached = cache.get(environment, name)
            if cached is not None:
                logger.debug(f"Cache hit for {environment}:{name}")
                return cached
    else:
        cache = None

    remote = remote or GCPSecretClient(config)
    value = remote.get_secret(environment, name)

    if cache is not None:
        cache.set(environment, name, value)
        _save_cache(cache)

    return value


def _invalidate(environment: str, name: str, cache: Optional[SecretCache]) -> None:
    cache = _load_cache(cache)
    if cache is not None and cache.delete(environment, name):
        _save_cache(cache)


def set_secret(
    config: Config,
    environment: str,
    name: str,
    value: str,
    remote: Optional[GCPSecretClient] = None,
    cache: Optional[SecretCache] = None,
) -> None:
    """Store a new version of a secret and drop any cached copy."""
    remote = remote or GCPSecretClient(config)
    remote.set_secret(environment, name, value)
    _invalidate(environment, name, cache)
    logger.info(f"Secret '{name}' set for environment '{environment}'")


def delete_secret(
    config: Config,
    environment: str,
    name: str,
    remote: Optional[GCPSecretClient] = None,
    cache: Optional[SecretCache] = None,
) -> None:
    """Delete a secret from Secret Manager and drop any cached copy."""
    remote = remote or GCPSecretClient(config)
    remote.delete_secret(environment, name)
    _invalidate(environment, name, cache)
    logger.info(f"Secret '{name}' deleted from environment '{environment}'")


def list_secrets(
    config: Config,
    environment: str,
    remote: Optional[GCPSecretClient] = None,
) -> List[SecretInfo]:
    remote = remote or GCPSecretClient(config)
    return remote.list_secrets(environment)


def clear_cache(cache: Optional[SecretCache] = None) -> int:
    """
    Remove every cached secret value.

    Returns:
        Number of entries removed

    Raises:
        CachePersistenceError: If the cache file cannot be read or written
    """
    cache = cache if cache is not None else SecretCache()
    cache.load()
    count = cache.clear()
    cache.save()
    return count
