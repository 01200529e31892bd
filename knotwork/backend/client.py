"""
HTTP client for the execution backend service.

Endpoints (relative to ``base_url``):
    POST /execute_flow   {"flow": ..., "env": ...}  -> ExecutionResponse wire form
    POST /execute_node   {"node": ..., "env": ...}  -> ExecutionResult wire form
    GET  /environment                               -> {name: value}
    PUT  /environment    {name: value}
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from knotwork.errors import ExecutionFailed
from knotwork.models.factory import FlowModel
from knotwork.util.telemetry import timed_call

logger = logging.getLogger(__name__)


class FlowBackendClient:
    """
    aiohttp implementation of FlowExecutor, NodeRunner and EnvironmentBackend.

    A session is created per call unless one is passed in, so the client can
    be used from short-lived CLI runs as well as long-lived services.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        debug: bool = False,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.headers = headers or {}
        self.debug = debug
        self._session = session

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = self._url(path)
        request_kwargs: Dict[str, Any] = {
            'headers': self.headers,
            'timeout': aiohttp.ClientTimeout(total=self.timeout),
        }
        if payload is not None:
            request_kwargs['json'] = payload

        try:
            if self._session is not None:
                return await self._send(self._session, method, url, request_kwargs)
            async with aiohttp.ClientSession() as session:
                return await self._send(session, method, url, request_kwargs)
        except ExecutionFailed:
            raise
        except asyncio.TimeoutError as e:
            raise ExecutionFailed(f"{method} {url} timed out after {self.timeout}s", e) from e
        except aiohttp.ClientResponseError as e:
            raise ExecutionFailed(f"{method} {url} returned HTTP {e.status}: {e.message}", e) from e
        except aiohttp.ClientError as e:
            raise ExecutionFailed(f"{method} {url} failed: {e}", e) from e

    @staticmethod
    async def _send(session: aiohttp.ClientSession, method: str, url: str, request_kwargs: Dict[str, Any]) -> Any:
        async with session.request(method, url, **request_kwargs) as response:
            response.raise_for_status()
            text = await response.text()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ExecutionFailed(f"{method} {url} returned a body that is not JSON", e) from e

    @timed_call
    async def execute_flow(self, flow: FlowModel, env: Dict[str, str]) -> Any:
        wire = flow.to_wire() if isinstance(flow, FlowModel) else flow
        return await self._request('POST', 'execute_flow', {'flow': wire, 'env': dict(env)})

    @timed_call
    async def execute_node(self, node: Dict[str, Any], env: Dict[str, str]) -> Any:
        return await self._request('POST', 'execute_node', {'node': node, 'env': dict(env)})

    @timed_call
    async def load_environment(self) -> Dict[str, str]:
        env = await self._request('GET', 'environment')
        if env is None:
            return {}
        if not isinstance(env, dict):
            raise ExecutionFailed(f"Environment must be a JSON object, got {type(env).__name__}")
        return {str(k): str(v) for k, v in env.items()}

    @timed_call
    async def save_environment(self, env: Dict[str, str]) -> None:
        await self._request('PUT', 'environment', dict(env))
