from __future__ import annotations

import itertools
from typing import Any, Sequence

import httpx
import structlog
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()


class RetryableRPCError(Exception):
    """Transport-level failures that should be retried."""


class RpcError(Exception):
    """JSON-RPC error object returned by the node. Never retried."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in (408, 429, 500, 502, 503, 504)


def _should_retry(exc: BaseException, retry: bool) -> bool:
    if not isinstance(exc, RetryableRPCError):
        return False
    return retry or isinstance(exc.__cause__, (httpx.ConnectError, httpx.ConnectTimeout))


class RpcClient:
    """JSON-RPC 2.0 client with retry logic and circuit breaker."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        circuit_failure_threshold: int = 5,
        circuit_recovery_timeout: int = 60,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_factor = backoff_factor
        self._ids = itertools.count(1)
        # One breaker per endpoint so a dead endpoint never trips its siblings.
        self._breaker = CircuitBreaker(
            failure_threshold=circuit_failure_threshold,
            recovery_timeout=circuit_recovery_timeout,
            expected_exception=RetryableRPCError,
            name=f"rpc:{url}",
        )
        self._guarded_send = self._breaker(self._send)

    @property
    def url(self) -> str:
        return self._url

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    async def request(
        self, method: str, params: Sequence[Any] | None = None, *, retry: bool = True
    ) -> Any:
        """Execute a JSON-RPC call, returning its ``result`` member.

        With ``retry=False`` only failures to connect are retried, so a call
        the node may already have received is never sent twice.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(lambda exc: _should_retry(exc, retry)),
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(multiplier=self._backoff_factor, min=0, max=30),
                reraise=True,
            ):
                with attempt:
                    body = await self._guarded_send(payload)
        except CircuitBreakerError as exc:
            raise RetryableRPCError(f"circuit open for {self._url}") from exc

        error = body.get("error")
        if error:
            raise RpcError(error.get("code", -32000), error.get("message", ""), error.get("data"))
        return body.get("result")

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        method = payload["method"]
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=payload, headers=self._headers())

                if is_retryable_status(response.status_code):
                    logger.warning(
                        "rpc_retryable_error",
                        status=response.status_code,
                        method=method,
                        url=self._url,
                    )
                    raise RetryableRPCError(f"HTTP {response.status_code}: {response.text}")

                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as exc:
            logger.error(
                "rpc_permanent_error",
                status=exc.response.status_code,
                method=method,
                url=self._url,
                error=str(exc),
            )
            raise RpcError(exc.response.status_code, str(exc)) from exc
        except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as exc:
            logger.warning("rpc_network_error", method=method, url=self._url, error=str(exc))
            raise RetryableRPCError(str(exc)) from exc

    async def chain_id(self) -> int:
        return int(await self.request("eth_chainId"), 16)

    async def accounts(self) -> list[str]:
        return list(await self.request("eth_accounts") or [])
