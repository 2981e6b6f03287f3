"""
Graph Client - synchronous HTTP client for Microsoft Graph device management.

Philosophy:
- One httpx.Client per run, authorized with the run's bearer token
- Fail fast: any transport error or non-2xx status raises GraphRequestError
- No retries

Public API:
    GraphClient: GET/POST/DELETE against https://graph.microsoft.com
"""

import logging
from typing import Any, Dict, Optional

import httpx

from autopilot_tenant_move.exceptions import GraphRequestError
from autopilot_tenant_move.models import AuthToken
from autopilot_tenant_move.timeout_config import Timeouts

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "DELETE")


class GraphClient:
    """
    HTTP client for Microsoft Graph.

    Request bodies are serialized as JSON and responses parsed from JSON. The
    authorization header is fixed at construction time.
    """

    def __init__(
        self,
        token: AuthToken,
        base_url: str = "https://graph.microsoft.com",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize Graph client.

        Args:
            token: Bearer token for the run
            base_url: Graph base URL
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(Timeouts.HTTP_READ, connect=Timeouts.HTTP_CONNECT),
            headers={
                "Authorization": token.authorization_header,
                "Accept": "application/json",
            },
            transport=transport,
        )

    def __enter__(self) -> "GraphClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http_client.close()

    def call(
        self,
        method: str,
        uri: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Issue a Graph request and return the parsed JSON response.

        Args:
            method: GET, POST or DELETE
            uri: Path relative to the base URL (e.g. /v1.0/deviceManagement/...)
            body: Optional JSON body
            params: Optional query parameters (e.g. {"$filter": "..."})

        Returns:
            Parsed response; empty dict for responses without a body

        Raises:
            GraphRequestError: On transport errors and non-2xx statuses
        """
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        logger.debug(f"{method} {uri} params={params}")
        try:
            response = self._http_client.request(method, uri, json=body, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning(
                f"Graph {method} {uri} failed with status {status_code}: {_error_message(e.response)}"
            )
            raise GraphRequestError(
                f"Graph request failed with status {status_code}",
                method=method,
                uri=uri,
                status_code=status_code,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Graph {method} {uri} failed: {e}")
            raise GraphRequestError(
                "Graph request failed", method=method, uri=uri, cause=e
            ) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Graph {method} {uri} returned a non-JSON body")
            raise GraphRequestError(
                "Graph response is not valid JSON",
                method=method,
                uri=uri,
                status_code=response.status_code,
                cause=e,
            ) from e

    def get(self, uri: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        return self.call("GET", uri, params=params)

    def post(self, uri: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.call("POST", uri, body=body)

    def delete(self, uri: str) -> Dict[str, Any]:
        return self.call("DELETE", uri)


def _error_message(response: httpx.Response) -> str:
    """Extract the OData error message from a failed response, if any."""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "")
    return response.text[:200]


__all__ = ["GraphClient"]
