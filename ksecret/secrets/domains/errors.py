"""Error types raised by ksecret.

Collaborator failures (Google Cloud, Kubernetes) are translated into these
kinds at the client boundary, so callers only ever see KsecretError subclasses.
"""


class KsecretError(Exception):
    """Base class for all ksecret errors."""
    pass


class ConfigError(KsecretError):
    """Configuration error exception."""
    pass


class ConfigMissingError(ConfigError):
    """No usable configuration (file or project override) was found."""
    pass


class NamespaceNotFoundError(KsecretError):
    """Target Kubernetes namespace does not exist."""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__(
            f"Namespace '{namespace}' does not exist\n"
            f"Create it with 'kubectl create namespace {namespace}' or pass --namespace."
        )


class RemoteError(KsecretError):
    """Google Cloud Secret Manager failure."""
    pass


class RemoteAuthError(RemoteError):
    pass


class RemotePermissionError(RemoteError):
    pass


class RemoteNotFoundError(RemoteError):
    pass


class RemoteAlreadyExistsError(RemoteError):
    pass


class RemoteUnavailableError(RemoteError):
    pass


class RemoteOtherError(RemoteError):
    pass


class ClusterError(KsecretError):
    """Kubernetes API failure."""
    pass


class ClusterAuthError(ClusterError):
    pass


class ClusterPermissionError(ClusterError):
    pass


class ClusterNotFoundError(ClusterError):
    pass


class ClusterOtherError(ClusterError):
    pass


class ValueNotUtf8Error(KsecretError):
    """Secret payload could not be decoded as UTF-8."""

    def __init__(self, secret_name: str):
        self.secret_name = secret_name
        super().__init__(f"Secret data for '{secret_name}' is not valid UTF-8")


class CachePersistenceError(KsecretError):
    """Cache file could not be read or written."""
    pass
