"""GCP Secret Manager store gateway."""
import os
import logging
from typing import List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .models import Secret, SecretParseError, parse
from .store import RecipientFunc, StoreError

logger = logging.getLogger(__name__)

COMMIT_MESSAGE_ANNOTATION = "passkit-commit-message"
RECIPIENTS_ANNOTATION = "passkit-recipients"


def secret_id(name: str) -> str:
    """Map a hierarchical secret name (a/b/c) to a Secret Manager ID (a__b__c)."""
    return name.strip("/").replace("/", "__")


def get_project_id(configured: Optional[str] = None) -> Optional[str]:
    """
    Get GCP project ID from environment variable or config.

    Priority order:
    1. GCP_PROJECT environment variable (allows override)
    2. Config file value

    Returns:
        Project ID string, or None if not found
    """
    gcp_project_env = os.getenv("GCP_PROJECT")
    if gcp_project_env:
        logger.debug(f"Using GCP_PROJECT from environment: {gcp_project_env}")
        return gcp_project_env

    if configured:
        logger.debug(f"Using project_id from config: {configured}")
        return configured

    logger.error("Project ID not found. Please set GCP_PROJECT environment variable or configure project_id in config file")
    return None


class GCPSecretStore:
    """Secret store backed by GCP Secret Manager.

    Every write adds a new secret version; Secret Manager handles
    encryption at rest and version history.
    """

    def __init__(self, project_id: str, recipients: Optional[List[str]] = None):
        self.project_id = project_id
        self.recipients = list(recipients or [])
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def _secret_path(self, name: str) -> str:
        return f"projects/{self.project_id}/secrets/{secret_id(name)}"

    def exists(self, name: str) -> bool:
        """A secret exists once it has at least one enabled version."""
        path = self._secret_path(name)
        try:
            self.client.get_secret(request={"name": path})
            versions = self.client.list_secret_versions(
                request={"parent": path, "filter": "state:ENABLED", "page_size": 1}
            )
            return next(iter(versions), None) is not None
        except gcp_exceptions.NotFound:
            return False
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"failed to look up '{name}': {e}") from e

    def get(self, name: str) -> Secret:
        """
        Fetch the latest version of a secret.

        Raises:
            StoreError: If the secret can't be accessed
        """
        try:
            response = self.client.access_secret_version(
                request={"name": f"{self._secret_path(name)}/versions/latest"}
            )
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"failed to access '{name}': {e}") from e

        try:
            return parse(response.payload.data)
        except SecretParseError as e:
            logger.warning(f"Secret '{name}' has an invalid YAML section: {e}")
            return e.secret

    def _create(self, name: str) -> bool:
        """Create an empty secret. Returns False if it was already there."""
        try:
            self.client.create_secret(
                request={
                    "parent": f"projects/{self.project_id}",
                    "secret_id": secret_id(name),
                    "secret": {"replication": {"automatic": {}}},
                }
            )
        except gcp_exceptions.AlreadyExists:
            logger.debug(f"Secret '{name}' exists without versions, reusing it")
            return False
        logger.info(f"Created secret '{name}' in project {self.project_id}")
        return True

    def set(self, name: str, secret: Secret, message: str, recipients: RecipientFunc) -> None:
        """
        Write a new version of a secret, creating the secret if needed.

        A secret created here is deleted again if its first version can't
        be added. The commit message and resolved recipients are recorded as
        annotations on the secret; failing to record them only logs a warning
        since the version is already stored.

        Raises:
            StoreError: If the secret could not be created or written
        """
        path = self._secret_path(name)
        resolved = recipients(f"Recipients for {name}", self.recipients)

        created = False
        try:
            if not self.exists(name):
                created = self._create(name)
            self.client.add_secret_version(
                request={"parent": path, "payload": {"data": secret.to_bytes()}}
            )
        except gcp_exceptions.GoogleAPICallError as e:
            if created:
                self._discard(name)
            raise StoreError(f"failed to write '{name}': {e}") from e

        try:
            self.client.update_secret(
                request={
                    "secret": {
                        "name": path,
                        "annotations": {
                            COMMIT_MESSAGE_ANNOTATION: message,
                            RECIPIENTS_ANNOTATION: ",".join(resolved),
                        },
                    },
                    "update_mask": {"paths": ["annotations"]},
                }
            )
        except gcp_exceptions.GoogleAPICallError as e:
            logger.warning(f"Stored '{name}' but could not record its commit message: {e}")

        logger.info(f"{name}: {message}")

    def _discard(self, name: str) -> None:
        try:
            self.client.delete_secret(request={"name": self._secret_path(name)})
            logger.debug(f"Deleted empty secret '{name}' after failed write")
        except gcp_exceptions.GoogleAPICallError as e:
            logger.warning(f"Could not delete empty secret '{name}': {e}")
