"""Remote-first tree client.

Prefers the authoritative server and mirrors its answers into the local
cache. Watering falls back to the local mirror on any transport or protocol
failure. Harvesting never falls back on an explicit rejection, and on a
transport failure only when a locally-known admin secret matches.
"""

import hmac
import logging
from dataclasses import replace
from typing import Any

import httpx

from ..errors import TransportError
from ..tree.state import (
    HARVEST_THRESHOLD,
    NEED_HARVEST,
    HarvestResult,
    TreeState,
    WaterResult,
)
from .mirror import LocalTreeMirror

logger = logging.getLogger(__name__)

ADMIN_HEADER = "x-admin-pw"


class TreeClient:
    """Client for the tree HTTP API backed by a local mirror.

    No retries are attempted: one failed request immediately falls back or
    surfaces the failure.
    """

    def __init__(
        self,
        mirror: LocalTreeMirror,
        server_url: str,
        timeout: float = 10.0,
        admin_secret: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            mirror: Local mirror used for caching and offline fallback.
            server_url: Base URL of the tree server (e.g. "http://localhost:3000").
            timeout: Request timeout in seconds.
            admin_secret: Locally-known admin secret. When None, harvest never
                runs offline.
            transport: Optional httpx transport, used by tests.
        """
        self.mirror = mirror
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.admin_secret = admin_secret
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
        json_data: Any = None,
    ) -> httpx.Response:
        """Send one request. Raises TransportError if no response arrives."""
        url = f"{self.server_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                return await client.request(method, url, headers=headers, json=json_data)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {url} timed out") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        except UnicodeEncodeError as e:
            raise TransportError(f"Request to {url} not sent, non-ASCII header: {e}") from e

    @staticmethod
    def _json_object(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from server: {e}") from e
        if not isinstance(data, dict):
            raise TransportError("Expected a JSON object from server")
        return data

    @staticmethod
    def _parse_water(data: dict[str, Any]) -> WaterResult:
        allowed = data.get("allowed")
        count = data.get("waterCount")
        if not isinstance(allowed, bool):
            raise TransportError(f"Malformed water response: allowed={allowed!r}")
        if isinstance(count, bool) or not isinstance(count, int):
            raise TransportError(f"Malformed water response: waterCount={count!r}")
        if not 0 <= count <= HARVEST_THRESHOLD:
            raise TransportError(f"waterCount out of range: {count}")

        reason = data.get("reason")
        ready = data.get("readyForHarvest", reason == NEED_HARVEST)
        if not isinstance(ready, bool):
            raise TransportError(f"Malformed water response: readyForHarvest={ready!r}")
        if ready and count != HARVEST_THRESHOLD:
            raise TransportError(
                f"readyForHarvest with waterCount {count}, expected {HARVEST_THRESHOLD}"
            )
        return WaterResult(
            allowed=allowed,
            water_count=count,
            ready_for_harvest=ready,
            reason=reason if isinstance(reason, str) else None,
        )

    async def water_remote_first(self) -> WaterResult:
        """Water via the server, falling back to the local mirror."""
        try:
            response = await self._request("POST", "/api/water")
            if not response.is_success:
                raise TransportError(f"Server returned HTTP {response.status_code}")
            result = self._parse_water(self._json_object(response))
        except TransportError as e:
            logger.warning(f"Remote water failed, using local mirror: {e}")
            return self.mirror.water()

        local = self.mirror.read()
        last_watered = local.last_watered
        if result.allowed and not result.ready_for_harvest:
            last_watered = self.mirror.clock()

        self.mirror.write(
            replace(
                local,
                watered_count=result.water_count,
                ready_for_harvest=result.ready_for_harvest,
                last_watered=last_watered,
            )
        )
        return result

    async def harvest_remote_first(self, credential: str) -> HarvestResult:
        """Harvest via the server.

        An explicit rejection from the server is returned as-is. Only a
        request that got no response at all may fall back to the mirror.
        """
        if credential.isascii():
            request_kwargs: dict[str, Any] = {"headers": {ADMIN_HEADER: credential}}
        else:
            # Header values must be ASCII; the server also reads "pw" from the body.
            request_kwargs = {"json_data": {"pw": credential}}

        try:
            response = await self._request("POST", "/api/harvest", **request_kwargs)
        except TransportError as e:
            return self._harvest_offline(credential, e)

        cached_count = self.mirror.read().harvest_count

        if not response.is_success:
            message = self._rejection_reason(response)
            logger.warning(f"Harvest rejected by server: {message}")
            return HarvestResult(ok=False, harvest_count=cached_count, message=message)

        try:
            data = self._json_object(response)
        except TransportError as e:
            logger.error(f"Unreadable harvest response: {e}")
            return HarvestResult(ok=False, harvest_count=cached_count, message="server")

        ok = data.get("ok") is True
        harvest_count = data.get("harvestCount")
        if isinstance(harvest_count, bool) or not isinstance(harvest_count, int):
            harvest_count = cached_count + 1 if ok else cached_count
        message = data.get("message") if isinstance(data.get("message"), str) else None

        if ok:
            self.mirror.write(TreeState(harvest_count=harvest_count))

        return HarvestResult(ok=ok, harvest_count=harvest_count, message=message)

    @classmethod
    def _rejection_reason(cls, response: httpx.Response) -> str:
        """The server's "error" field, or "server" when there is none."""
        try:
            error = cls._json_object(response).get("error")
        except TransportError:
            return "server"
        return error if isinstance(error, str) and error else "server"

    def _harvest_offline(self, credential: str, error: TransportError) -> HarvestResult:
        if self.admin_secret is not None and hmac.compare_digest(
            credential.encode(), self.admin_secret.encode()
        ):
            logger.warning(f"Remote harvest failed, using local mirror: {error}")
            return self.mirror.complete_harvest()

        logger.warning(f"Remote harvest failed: {error}")
        return HarvestResult(
            ok=False,
            harvest_count=self.mirror.read().harvest_count,
            message="network",
        )

    async def sync_from_server(self) -> bool:
        """Overwrite the local cache with the server's state.

        Returns:
            True if the server state was fetched and stored.
        """
        try:
            response = await self._request("GET", "/api/tree")
            if not response.is_success:
                raise TransportError(f"Server returned HTTP {response.status_code}")
            state = TreeState.from_dict(self._json_object(response))
        except (TransportError, ValueError) as e:
            logger.warning(f"Sync from server failed: {e}")
            return False

        self.mirror.write(state)
        logger.info(
            f"Synced tree state: count={state.watered_count}, "
            f"harvests={state.harvest_count}"
        )
        return True
