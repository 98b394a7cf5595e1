"""Microsoft Graph API client with MSAL authentication."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError

import msal

from graph_drive.graph.errors import GraphAuthError, TransportError, error_for_status

if TYPE_CHECKING:
    from graph_drive.config import AppConfig

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
AUTHORITY_BASE_URL = "https://login.microsoftonline.com"

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class GraphResponse:
    """Status code and decoded body of a successful Graph call."""

    status_code: int
    payload: Any = None


class GraphClient:
    """Authenticated client for Microsoft Graph API."""

    def __init__(self, client_id: str, client_secret: str, tenant_id: str) -> None:
        """Initialise the MSAL confidential client application.

        Args:
            client_id: Azure AD application (client) ID.
            client_secret: Azure AD application client secret.
            tenant_id: Azure AD tenant ID.
        """
        authority = f"{AUTHORITY_BASE_URL}/{tenant_id}"
        self._app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )

    def _acquire_token(self) -> str:
        """Acquire a Bearer token using client credentials flow.

        Returns:
            Access token string.

        Raises:
            GraphAuthError: If MSAL cannot acquire a token.
        """
        result: dict[str, Any] = self._app.acquire_token_for_client(scopes=GRAPH_SCOPES) or {}
        if "access_token" not in result:
            error = result.get("error", "unknown_error")
            description = result.get("error_description", "No description provided")
            logger.error("[_acquire_token] MSAL token acquisition failed; error:%s", error)
            raise GraphAuthError(f"Token acquisition failed: {error}: {description}")
        return str(result["access_token"])

    @staticmethod
    def url_for(path: str) -> str:
        """Return the absolute URL for a Graph-relative path or an absolute link."""
        if path.startswith(("https://", "http://")):
            return path
        return f"{GRAPH_BASE_URL}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        data: bytes | None = None,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
        authenticate: bool = True,
        decode: bool = True,
    ) -> GraphResponse:
        """Perform a request against the Graph API.

        Args:
            method: HTTP method.
            path: URL path relative to GRAPH_BASE_URL, or an absolute URL such as
                an ``@odata.nextLink`` or an upload session URL.
            json_body: Object serialised as the JSON request body.
            data: Raw request body; ignored when ``json_body`` is given.
            content_type: Content-Type header for ``data``.
            headers: Extra request headers.
            authenticate: Send the Bearer token. Upload session URLs must not
                receive it.
            decode: Parse JSON bodies. When False the raw bytes are returned.

        Returns:
            GraphResponse with the parsed JSON body, raw bytes for non-JSON
            responses, or None for an empty body.

        Raises:
            GraphAuthError: If token acquisition fails.
            GraphApiError: A subclass matching the non-2xx status code.
            TransportError: If the request fails before a response arrives.
        """
        request_headers: dict[str, str] = {"Accept": JSON_CONTENT_TYPE}
        if authenticate:
            request_headers["Authorization"] = f"Bearer {self._acquire_token()}"
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            content_type = JSON_CONTENT_TYPE
        if content_type is not None:
            request_headers["Content-Type"] = content_type
        if headers:
            request_headers.update(headers)

        url = self.url_for(path)
        req = urllib_request.Request(url, data=data, headers=request_headers, method=method)
        logger.debug("[request] sending; method:%s;url:%s", method, url)
        try:
            with urllib_request.urlopen(req) as resp:
                body = resp.read()
                if not decode:
                    return GraphResponse(status_code=resp.status, payload=body)
                return GraphResponse(
                    status_code=resp.status,
                    payload=_decode_body(body, resp.headers.get("Content-Type", "")),
                )
        except HTTPError as exc:
            raw = exc.read()
            try:
                detail = json.loads(raw).get("error", {}).get("message", exc.reason)
            except (ValueError, AttributeError):
                detail = exc.reason
            raise error_for_status(exc.code, str(detail)) from exc
        except URLError as exc:
            logger.error("[request] request failed; method:%s;url:%s", method, url)
            raise TransportError(0, str(exc.reason)) from exc

    def get(self, path: str) -> dict[str, Any]:
        """Perform an authenticated GET request and return the JSON body."""
        return self.request("GET", path).payload or {}

    def get_content(self, path: str) -> bytes:
        """Perform an authenticated GET request and return the raw body bytes."""
        return bytes(self.request("GET", path, decode=False).payload)

    def put_content(
        self,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        """Perform an authenticated PUT request uploading raw content.

        Args:
            path: URL path relative to GRAPH_BASE_URL.
            content: Raw bytes to upload.
            content_type: MIME type for the Content-Type header.

        Returns:
            The JSON body of the response (the written drive item).
        """
        return self.request("PUT", path, data=content, content_type=content_type).payload or {}


def _decode_body(body: bytes, content_type: str) -> Any:
    """Decode a response body: JSON when declared as such, raw bytes otherwise."""
    if not body:
        return None
    if JSON_CONTENT_TYPE in content_type:
        return json.loads(body)
    return body


def graph_client_from_config(config: AppConfig) -> GraphClient:
    """Construct a GraphClient from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured GraphClient instance.
    """
    return GraphClient(
        client_id=config.client_id,
        client_secret=config.client_secret,
        tenant_id=config.tenant_id,
    )
