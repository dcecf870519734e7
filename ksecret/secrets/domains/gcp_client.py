"""GCP Secret Manager client wrapper."""
import logging
from typing import List, Optional
from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager

from .errors import (
    RemoteError,
    RemoteAuthError,
    RemotePermissionError,
    RemoteNotFoundError,
    RemoteAlreadyExistsError,
    RemoteUnavailableError,
    RemoteOtherError,
    ValueNotUtf8Error,
)
from .models import Config, SecretInfo

logger = logging.getLogger(__name__)


def translate_gcp_error(exc: Exception) -> RemoteError:
    """
    Map a Google Cloud exception to a ksecret error with guidance text.

    Args:
        exc: Exception raised by the Secret Manager client or google-auth

    Returns:
        RemoteError subclass to raise in its place
    """
    if isinstance(exc, (gcp_exceptions.Unauthenticated, auth_exceptions.DefaultCredentialsError)):
        return RemoteAuthError(
            "Authentication failed.\n"
            "Run 'gcloud auth application-default login' to authenticate your local environment."
        )
    if isinstance(exc, gcp_exceptions.PermissionDenied):
        return RemotePermissionError(
            "Permission denied.\n"
            "Ensure your account has the 'Secret Manager Secret Accessor' "
            "(roles/secretmanager.secretAccessor) role for this project."
        )
    if isinstance(exc, gcp_exceptions.NotFound):
        return RemoteNotFoundError(
            "Resource not found.\n"
            "Check if the GCP project ID is correct and the secret exists."
        )
    if isinstance(exc, gcp_exceptions.AlreadyExists):
        return RemoteAlreadyExistsError(
            "Resource already exists.\n"
            "You are trying to create a secret that is already present."
        )
    if isinstance(exc, (gcp_exceptions.ServiceUnavailable, gcp_exceptions.DeadlineExceeded)):
        return RemoteUnavailableError(
            "Service unavailable.\n"
            "Google Cloud Secret Manager might be experiencing issues or you have connectivity problems."
        )
    if isinstance(exc, gcp_exceptions.GoogleAPICallError):
        return RemoteOtherError(f"Google Cloud Error: {exc.message}")
    return RemoteOtherError(f"Google Cloud Error: {exc}")


_TRANSLATED = (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


def _format_create_time(create_time) -> Optional[str]:
    if not create_time:
        return None
    return create_time.strftime("%Y-%m-%d %H:%M:%S UTC")


class GCPSecretClient:
    """Wrapper around GCP Secret Manager client."""

    def __init__(self, config: Config):
        self.config = config
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            try:
                if self.config.service_account_path:
                    logger.debug(f"Using service account: {self.config.service_account_path}")
                    self._client = secretmanager.SecretManagerServiceClient.from_service_account_file(
                        self.config.service_account_path
                    )
                else:
                    self._client = secretmanager.SecretManagerServiceClient()
            except _TRANSLATED as e:
                raise translate_gcp_error(e) from e
        return self._client

    def list_secrets(self, environment: str) -> List[SecretInfo]:
        """
        List all secrets for an environment.

        Pages are fetched one at a time until the continuation token runs out.
        Only ids starting with '{prefix}-{environment}-' are kept, with that
        prefix stripped.

        Args:
            environment: Environment name

        Returns:
            SecretInfo list in listing order
        """
        parent = self.config.project_path()
        prefix = self.config.environment_prefix(environment)

        secrets = []
        try:
            pager = self.client.list_secrets(request={"parent": parent})
            for page in pager.pages:
                for secret in page.secrets:
                    short_name = secret.name.rsplit("/", 1)[-1]
                    if not short_name.startswith(prefix):
                        continue
                    secrets.append(SecretInfo(
                        name=short_name[len(prefix):],
                        environment=environment,
                        created_at=_format_create_time(secret.create_time),
                    ))
        except _TRANSLATED as e:
            raise translate_gcp_error(e) from e

        logger.debug(f"Found {len(secrets)} secret(s) with prefix {prefix} in {parent}")
        return secrets

    def get_secret(self, environment: str, name: str, version: str = "latest") -> str:
        """
        Fetch a secret value.

        Raises:
            ValueNotUtf8Error: If the payload is not valid UTF-8
            RemoteError: On any Secret Manager failure
        """
        version_name = self.config.build_version_name(environment, name, version)
        try:
            response = self.client.access_secret_version(request={"name": version_name})
        except _TRANSLATED as e:
            raise translate_gcp_error(e) from e

        try:
            return response.payload.data.decode("UTF-8")
        except UnicodeDecodeError as e:
            raise ValueNotUtf8Error(name) from e

    def secret_exists(self, environment: str, name: str) -> bool:
        resource_name = self.config.build_resource_name(environment, name)
        try:
            self.client.get_secret(request={"name": resource_name})
        except gcp_exceptions.NotFound:
            return False
        except _TRANSLATED as e:
            raise translate_gcp_error(e) from e
        return True

    def create_secret(self, environment: str, name: str) -> bool:
        """
        Create the secret container with automatic replication.

        Returns:
            True if created, False if it already existed
        """
        secret_id = self.config.build_secret_name(environment, name)
        try:
            self.client.create_secret(request={
                "parent": self.config.project_path(),
                "secret_id": secret_id,
                "secret": {"replication": {"automatic": {}}},
            })
        except gcp_exceptions.AlreadyExists:
            logger.debug(f"Secret {secret_id} already exists")
            return False
        except _TRANSLATED as e:
            raise translate_gcp_error(e) from e
        logger.info(f"Created secret {secret_id}")
        return True

    def add_secret_version(self, environment: str, name: str, value: str) -> None:
        resource_name = self.config.build_resource_name(environment, name)
        try:
            self.client.add_secret_version(request={
                "parent": resource_name,
                "payload": {"data": value.encode("UTF-8")},
            })
        except _TRANSLATED as e:
            raise translate_gcp_error(e) from e

    def set_secret(self, environment: str, name: str, value: str) -> None:
        """Create the secret if needed, then add a new version holding value."""
        if not self.secret_exists(environment, name):
            self.create_secret(environment, name)
        self.add_secret_version(environment, name, value)

    def delete_secret(self, environment: str, name: str) -> None:
        """Delete a secret and all its versions."""
        resource_name = self.config.build_resource_name(environment, name)
        try:
            self.client.delete_secret(request={"name": resource_name})
        except _TRANSLATED as e:
            raise translate_gcp_error(e) from e
