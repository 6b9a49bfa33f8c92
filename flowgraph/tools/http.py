"""HTTP tool executor for the registry-execute endpoint.

The endpoint takes ``{"toolId": ..., "params": {...}}`` as a JSON body and
answers with the tool's JSON result. Any non-2xx answer is a failed attempt
and is eligible for retry.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from flowgraph.config import Settings, get_settings
from flowgraph.errors.exceptions import ToolExecutionError

ENV_VARS_HEADER = "x-generous-env-vars"


class RegistryToolExecutor:
    """Tool executor that calls a remote tool registry over HTTP.

    Example:
        >>> async with RegistryToolExecutor("http://localhost:3000") as tools:
        ...     engine = WorkflowEngine(definition, tools)
        ...     state = await engine.execute()
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        path: str = "/api/registry-execute",
        timeout: float = 30.0,
        env_vars: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            base_url: Registry server URL, e.g. ``http://localhost:3000``.
            path: Endpoint path on that server.
            timeout: Request timeout in seconds for an owned client.
            env_vars: Environment variables forwarded to the tools,
                JSON-encoded in the ``x-generous-env-vars`` header.
            client: Shared client. Not closed by ``aclose()``.
        """
        self._url = f"{base_url.rstrip('/')}{path}"
        self._timeout = timeout
        self._env_vars = dict(env_vars or {})
        self._client = client
        self._owns_client = client is None

    @property
    def url(self) -> str:
        return self._url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._env_vars:
            headers[ENV_VARS_HEADER] = json.dumps(self._env_vars)
        return headers

    async def __call__(self, tool_id: str, params: dict[str, Any]) -> Any:
        """Execute a tool remotely.

        Returns:
            The parsed JSON response body.

        Raises:
            ToolExecutionError: On a non-2xx response, a timeout, or a
                transport failure.
        """
        payload = {"toolId": tool_id, "params": params}
        try:
            response = await self._get_client().post(
                self._url,
                json=payload,
                headers=self._headers(),
            )
        except httpx.TimeoutException:
            raise ToolExecutionError(
                f"Tool execution timed out after {self._timeout}s",
                tool_id=tool_id,
            )
        except httpx.HTTPError as e:
            raise ToolExecutionError(
                f"Tool execution failed: could not reach {self._url}: {e}",
                tool_id=tool_id,
            )

        if not response.is_success:
            raise ToolExecutionError(
                f"Tool execution failed: {response.text}",
                tool_id=tool_id,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except json.JSONDecodeError:
            raise ToolExecutionError(
                f"Tool execution failed: invalid JSON response: {response.text[:200]}",
                tool_id=tool_id,
                status_code=response.status_code,
            )

    async def aclose(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RegistryToolExecutor:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def create_api_tool_executor(
    base_url: str = "",
    *,
    settings: Settings | None = None,
    env_vars: dict[str, str] | None = None,
) -> RegistryToolExecutor:
    """Build a registry executor from settings.

    ``base_url`` overrides ``settings.registry_base_url`` when given.
    """
    settings = settings or get_settings()
    return RegistryToolExecutor(
        base_url or settings.registry_base_url,
        path=settings.registry_path,
        timeout=settings.tool_timeout,
        env_vars=env_vars,
    )
