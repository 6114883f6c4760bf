import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .exceptions import ConfigurationMissingError, RemoteServiceError
from .utils import log_and_wrap_error, sanitize_for_logging

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class RemoteClientConfig:
    """Deployment coordinates of the remote messaging service."""

    scrt_url: str
    org_id: str
    es_developer_name: str
    capabilities_version: str = "1"
    platform: str = "Web"
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("scrt_url", "org_id", "es_developer_name")
            if not getattr(self, name)
        ]
        if missing:
            msg = f"Missing required messaging configuration: {', '.join(missing)}"
            raise ConfigurationMissingError(
                msg,
                error_code="MESSAGING_CONFIG_MISSING",
                context={"missing": missing},
            )

    @property
    def base_url(self) -> str:
        host = self.scrt_url.removeprefix("https://").removeprefix("http://").rstrip("/")
        return f"https://{host}/iamessage/api/v2"


def _error_details(response: httpx.Response) -> dict[str, Any]:
    """Pull message/code/details out of the remote error body, whatever its shape."""
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text or response.reason_phrase}

    if isinstance(body, list) and body:
        body = body[0]
    if not isinstance(body, dict):
        return {"message": str(body)}

    error = body.get("error") if isinstance(body.get("error"), dict) else body
    return {
        "message": error.get("message") or response.reason_phrase,
        "code": error.get("code") or error.get("errorCode"),
        "details": error.get("details"),
    }


class RemoteChatClient:
    """Thin async client for the remote messaging REST API.

    The client holds no credential. Every authenticated call takes the
    session's access token explicitly, so one shared instance can serve any
    number of concurrent sessions.
    """

    def __init__(
        self, config: RemoteClientConfig, http_client: httpx.AsyncClient | None = None
    ) -> None:
        self.config = config
        self.logger = logging.getLogger(__name__)
        self._http = http_client or httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Content-Type": "application/json"},
            timeout=config.timeout,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: str | None = None,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        context = {"method": method, "path": path}

        try:
            response = await self._http.request(
                method, path, json=json, params=params, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            details = _error_details(e.response)
            self.logger.warning(
                "Remote call %s %s failed with HTTP %s: %s",
                method,
                path,
                e.response.status_code,
                sanitize_for_logging(details.get("message")),
            )
            raise RemoteServiceError(
                details.get("message") or "Remote messaging service returned an error",
                error_code="REMOTE_HTTP_ERROR",
                context={**context, **sanitize_for_logging(details)},
                cause=e,
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise log_and_wrap_error(
                e,
                RemoteServiceError,
                "Remote messaging service timed out",
                error_code="REMOTE_TIMEOUT",
                context=context,
                logger=self.logger,
            ) from e
        except httpx.HTTPError as e:
            raise log_and_wrap_error(
                e,
                RemoteServiceError,
                "Remote messaging service unreachable",
                error_code="REMOTE_UNAVAILABLE",
                context=context,
                logger=self.logger,
            ) from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {"raw": response.text}
        return data if isinstance(data, dict) else {"items": data}

    def _token_request(
        self,
        device_id: str | None,
        context: dict[str, Any] | None,
        **extra: Any,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "orgId": self.config.org_id,
            "esDeveloperName": self.config.es_developer_name,
            "capabilitiesVersion": self.config.capabilities_version,
            "platform": self.config.platform,
        }
        if device_id:
            request["deviceId"] = device_id
        if context:
            request["context"] = context
        request.update({key: value for key, value in extra.items() if value is not None})
        return request

    # === Authorization ===
    async def generate_guest_access_token(
        self,
        device_id: str | None = None,
        context: dict[str, Any] | None = None,
        captcha_token: str | None = None,
    ) -> dict[str, Any]:
        request = self._token_request(device_id, context, captchaToken=captcha_token)
        return await self._request(
            "POST", "/authorization/unauthenticated/access-token", json=request
        )

    async def generate_authenticated_access_token(
        self,
        jwt: str,
        subject: str,
        device_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        request = self._token_request(device_id, context, jwt=jwt, subject=subject)
        return await self._request(
            "POST", "/authorization/authenticated/access-token", json=request
        )

    async def generate_continuation_token(self, access_token: str) -> dict[str, Any]:
        return await self._request(
            "GET", "/authorization/continuation-token", access_token=access_token
        )

    async def revoke_token(self, access_token: str) -> None:
        await self._request("DELETE", "/authorization/token", access_token=access_token)

    # === Conversations ===
    async def create_conversation(
        self,
        access_token: str,
        conversation_id: str,
        routing_attributes: dict[str, Any] | None = None,
        capabilities: list[str] | None = None,
        prechat_details: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "conversationId": conversation_id,
            "esDeveloperName": self.config.es_developer_name,
        }
        if routing_attributes:
            request["routingAttributes"] = routing_attributes
        if capabilities:
            request["capabilities"] = capabilities
        if prechat_details:
            request["prechatDetails"] = prechat_details
        return await self._request(
            "POST", "/conversations", access_token=access_token, json=request
        )

    async def list_conversations(self, access_token: str) -> dict[str, Any]:
        return await self._request("GET", "/conversations", access_token=access_token)

    async def get_routing_status(
        self, access_token: str, conversation_id: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"/conversations/{conversation_id}/routing-status",
            access_token=access_token,
        )

    async def get_transcript(
        self, access_token: str, conversation_id: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"/conversations/{conversation_id}/transcript",
            access_token=access_token,
        )

    # === Messages and entries ===
    async def send_message(
        self,
        access_token: str,
        conversation_id: str,
        text: str,
        message_id: str,
        message_type: str = "StaticContentMessage",
        client_timestamp: int | None = None,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "message": {
                "id": message_id,
                "messageType": message_type,
                "staticContent": {"formatType": "Text", "text": text},
            },
            "esDeveloperName": self.config.es_developer_name,
        }
        if client_timestamp is not None:
            request["clientTimestamp"] = client_timestamp
        return await self._request(
            "POST",
            f"/conversations/{conversation_id}/messages",
            access_token=access_token,
            json=request,
        )

    async def send_typing_indicator(
        self, access_token: str, conversation_id: str, is_typing: bool
    ) -> None:
        await self._request(
            "POST",
            f"/conversations/{conversation_id}/typing",
            access_token=access_token,
            json={"isTyping": is_typing},
        )

    async def send_delivery_acknowledgements(
        self,
        access_token: str,
        conversation_id: str,
        acknowledgements: list[dict[str, Any]],
    ) -> None:
        await self._request(
            "POST",
            f"/conversations/{conversation_id}/acknowledgements",
            access_token=access_token,
            json={"acknowledgements": acknowledgements},
        )

    async def list_entries(
        self,
        access_token: str,
        conversation_id: str,
        continuation_token: str | None = None,
    ) -> dict[str, Any]:
        params = {"continuationToken": continuation_token} if continuation_token else None
        return await self._request(
            "GET",
            f"/conversations/{conversation_id}/entries",
            access_token=access_token,
            params=params,
        )

    async def post_entry(
        self,
        access_token: str,
        conversation_id: str,
        entry_type: str,
        entry_payload: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/conversations/{conversation_id}/entries",
            access_token=access_token,
            json={"entryType": entry_type, "entryPayload": entry_payload},
        )

    # === Teardown ===
    async def end_conversation_session(
        self, access_token: str, conversation_id: str
    ) -> None:
        await self._request(
            "DELETE",
            f"/conversations/{conversation_id}/session",
            access_token=access_token,
            params={"esDeveloperName": self.config.es_developer_name},
        )

    async def delete_conversation(self, access_token: str, conversation_id: str) -> None:
        await self._request(
            "DELETE",
            f"/conversations/{conversation_id}",
            access_token=access_token,
            params={"esDeveloperName": self.config.es_developer_name},
        )

    async def end_messaging_session(self, access_token: str) -> None:
        await self._request("DELETE", "/messaging-session", access_token=access_token)

    async def aclose(self) -> None:
        await self._http.aclose()
