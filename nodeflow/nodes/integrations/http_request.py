"""HTTP Request node - makes HTTP requests to external APIs."""

from __future__ import annotations

import json
from typing import Any, TYPE_CHECKING

import httpx

from ...core.exceptions import PermanentError, TransientError, ValidationError
from ..base import BaseNode, NodeTypeDescription, NodeProperty, NodePropertyOption

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class HttpRequestNode(BaseNode):
    """HTTP Request node - makes HTTP requests to external APIs."""

    node_description = NodeTypeDescription(
        name="http_request",
        display_name="HTTP Request",
        description="Makes HTTP requests to external APIs",
        icon="fa:globe",
        category="action",
        outputs=["main"],
        properties=[
            NodeProperty(
                display_name="Method",
                name="method",
                type="options",
                default="GET",
                required=True,
                options=[
                    NodePropertyOption(name=method, value=method)
                    for method in ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD")
                ],
            ),
            NodeProperty(
                display_name="URL",
                name="url",
                type="string",
                default="",
                required=True,
                placeholder="https://api.example.com/endpoint",
                description="The URL to make the request to. Supports expressions.",
            ),
            NodeProperty(
                display_name="Headers",
                name="headers",
                type="json",
                default={},
                description="Object of headers, or a list of {name, value}",
            ),
            NodeProperty(
                display_name="Query",
                name="query",
                type="json",
                default={},
            ),
            NodeProperty(
                display_name="Body",
                name="body",
                type="json",
                default="",
                description="Request body (for POST, PUT, PATCH); defaults to the input",
            ),
            NodeProperty(
                display_name="Response Type",
                name="responseType",
                type="options",
                default="json",
                options=[
                    NodePropertyOption(name="JSON", value="json", description="Parse response as JSON"),
                    NodePropertyOption(name="Text", value="text", description="Return raw text"),
                ],
            ),
        ],
    )

    # Response replaces the input
    pass_through = False

    @property
    def kind(self) -> str:
        return "http_request"

    @property
    def description(self) -> str:
        return "Makes HTTP requests to external APIs"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        method = str(self.get_parameter(config, "method", "GET")).upper()
        url = str(config["url"]).strip()
        if not url.startswith(("http://", "https://")):
            raise ValidationError(f'Invalid URL "{url}": must start with http:// or https://', field="url")
        response_type = self.get_parameter(config, "responseType", "json")

        headers = {"Content-Type": "application/json"}
        headers.update(self._headers(config))
        query = self.get_json(config, "query", {}) or {}
        if not isinstance(query, dict):
            raise ValidationError("Query must be a JSON object", field="query")

        body: Any = None
        if method in BODY_METHODS:
            body = self._body(config, input_data)

        client: httpx.AsyncClient | None = context.http_client
        if client is None:
            async with httpx.AsyncClient(follow_redirects=True) as own_client:
                response = await self._send(own_client, method, url, headers, query, body)
        else:
            response = await self._send(client, method, url, headers, query, body)

        if response.status_code >= 500 or response.status_code == 429:
            raise TransientError(
                f"{method} {url} returned HTTP {response.status_code}",
                context={"status": response.status_code},
            )
        if response.status_code >= 400:
            raise PermanentError(
                f"{method} {url} returned HTTP {response.status_code}",
                context={"status": response.status_code, "body": response.text[:500]},
            )

        response_data: Any
        if response_type == "text":
            response_data = response.text
        else:
            try:
                response_data = response.json()
            except ValueError:
                response_data = response.text

        return {
            "statusCode": response.status_code,
            "headers": dict(response.headers),
            "body": response_data,
        }

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        headers: dict[str, str],
        query: dict[str, Any],
        body: Any,
    ) -> httpx.Response:
        return await client.request(
            method=method,
            url=url,
            headers=headers,
            params={k: str(v) for k, v in query.items()} or None,
            json=body if isinstance(body, (dict, list)) else None,
            content=body if isinstance(body, str) else None,
        )

    def _headers(self, config: dict[str, Any]) -> dict[str, str]:
        headers_param = self.get_json(config, "headers", {}) or {}
        headers: dict[str, str] = {}
        if isinstance(headers_param, list):
            for h in headers_param:
                if isinstance(h, dict) and h.get("name"):
                    headers[str(h["name"])] = str(h.get("value", ""))
        elif isinstance(headers_param, dict):
            for name, value in headers_param.items():
                headers[str(name)] = "" if value is None else str(value)
        else:
            raise ValidationError("Headers must be a JSON object or a list of {name, value}", field="headers")
        return headers

    def _body(self, config: dict[str, Any], input_data: Any) -> Any:
        raw = config.get("body", "")
        if raw in (None, ""):
            return input_data
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
