import logging
from typing import Optional

from azure.core.exceptions import AzureError
from azure.identity import ClientSecretCredential

from autopilot_tenant_move.config_manager import TenantCredentials
from autopilot_tenant_move.exceptions import GraphAuthenticationError
from autopilot_tenant_move.models import AuthToken

logger = logging.getLogger(__name__)


class GraphAuthenticator:
    """
    Exchanges app registration credentials for a Microsoft Graph bearer token.

    Uses the OAuth2 client-credentials flow through azure-identity against
    https://<login_authority>/<tenant_id>. The token is requested once per run
    and never refreshed.
    """

    def __init__(
        self,
        credentials: TenantCredentials,
        resource: str = "https://graph.microsoft.com",
        login_authority: str = "login.microsoftonline.com",
        credential: Optional[ClientSecretCredential] = None,
    ):
        self.tenant_id = credentials.tenant_id
        self.resource = resource.rstrip("/")
        self._credential = credential or ClientSecretCredential(
            tenant_id=credentials.tenant_id,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            authority=login_authority,
        )

    @property
    def scope(self) -> str:
        return f"{self.resource}/.default"

    def acquire_token(self) -> AuthToken:
        """
        Request a bearer token for the configured resource.

        Raises:
            GraphAuthenticationError: If the token exchange fails
        """
        try:
            access_token = self._credential.get_token(self.scope)
        except AzureError as e:
            logger.error(f"Token exchange failed for tenant {self.tenant_id}: {e}")
            raise GraphAuthenticationError(
                "Failed to acquire Microsoft Graph token",
                tenant_id=self.tenant_id,
                cause=e,
            ) from e

        if not access_token.token:
            raise GraphAuthenticationError(
                "Identity endpoint returned an empty token", tenant_id=self.tenant_id
            )

        logger.info(f"Acquired Microsoft Graph token for tenant {self.tenant_id}")
        return AuthToken(bearer_value=access_token.token)
