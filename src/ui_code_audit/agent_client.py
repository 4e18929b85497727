"""HTTP client for the security-review agent."""

import logging
import os
from typing import Any, Optional

import httpx

from .errors import ExternalToolError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
API_URL_ENV = "ORCHAGENT_API_URL"
SERVICE_KEY_ENV = "ORCHAGENT_SERVICE_KEY"


def agent_path(agent: str, endpoint: str, version: str = "v1") -> str:
    # httpx does not follow the 307 a missing trailing slash triggers on POST
    return f"/{agent}/{version}/{endpoint}/"


class AgentClient:
    """Async client for collaborating agents.

    Usage:
        async with AgentClient() as client:
            review = await client.call_security_review("https://github.com/acme/shop")

    ``base_url`` and ``service_key`` fall back to ``ORCHAGENT_API_URL`` and
    ``ORCHAGENT_SERVICE_KEY``. ``transport`` lets tests swap in an
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        service_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or os.environ.get(API_URL_ENV, DEFAULT_API_URL)
        self.timeout = timeout
        self.service_key = service_key or os.environ.get(SERVICE_KEY_ENV)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _headers(self) -> dict[str, str]:
        if not self.service_key:
            return {}
        return {"Authorization": f"Bearer {self.service_key}"}

    async def __aenter__(self) -> "AgentClient":
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def call_agent(
        self,
        agent_name: str,
        endpoint: str,
        payload: dict[str, Any],
        version: str = "v1",
    ) -> dict[str, Any]:
        """POST ``payload`` to an agent endpoint and return its JSON body.

        Raises:
            RuntimeError: If called outside ``async with``.
            ExternalToolError: On transport errors, error statuses or a non-JSON body.
        """
        if self._http is None:
            raise RuntimeError("AgentClient is not open; use it with 'async with'")

        path = agent_path(agent_name, endpoint, version)
        logger.info(f"POST {self.base_url}{path}")
        try:
            response = await self._http.post(path, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise ExternalToolError(f"{agent_name} call failed: {e}") from e
        except ValueError as e:
            raise ExternalToolError(f"{agent_name} returned invalid JSON: {e}") from e
        return body

    async def call_security_review(self, repo_url: str, scan_mode: str = "full") -> dict[str, Any]:
        """Ask security-review to scan a repository.

        The agent clones ``repo_url`` itself; it cannot see local paths.
        """
        return await self.call_agent("security-review", "review", {"repo_url": repo_url, "scan_mode": scan_mode})
