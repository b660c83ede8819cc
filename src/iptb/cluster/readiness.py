"""
Readiness prober for testbed nodes

Polls a node's control API until it answers with the expected identity
and, optionally, until it reports at least one connected swarm peer.
Connection failures count as "not ready yet" and are retried; a response
that cannot be decoded or names the wrong peer fails immediately.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ..errors import IdentityMismatch, ProtocolError, Timeout
from ..utils.config import ProbeSettings
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Liveness:
    """Result of a successful probe"""
    address: str
    peer_id: Optional[str] = None
    peer_count: Optional[int] = None


class ReadinessProber:
    """
    Bounded-retry liveness checks against the control API

    The retry budget is `attempts` requests spaced `interval` seconds apart.
    """

    def __init__(self, settings: Optional[ProbeSettings] = None):
        self.settings = settings or ProbeSettings()

    def _url(self, address: str, endpoint: str) -> str:
        prefix = self.settings.api_prefix.rstrip('/')
        return f"http://{address}{prefix}/{endpoint}"

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout)
        )

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> Optional[bytes]:
        """Response body, or None if the endpoint was not reachable"""
        try:
            async with session.request(self.settings.method, url) as response:
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("endpoint not reachable", url=url, error=str(e))
            return None

    @staticmethod
    def _decode(body: bytes) -> Dict[str, Any]:
        try:
            doc = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolError(f"liveness check failed: {e}") from e
        if not isinstance(doc, dict):
            raise ProtocolError("liveness check failed: response is not an object")
        return doc

    async def wait_for_identity(self, peer_id: str, address: str) -> Liveness:
        """
        Wait until the node at `address` reports identity `peer_id`
        
        Raises:
            IdentityMismatch: endpoint answered with another or no identity
            ProtocolError: endpoint answered with an undecodable document
            Timeout: endpoint never answered within the retry budget
        """
        url = self._url(address, "id")

        async with self._session() as session:
            for _ in range(self.settings.attempts):
                body = await self._fetch(session, url)
                if body is None:
                    await asyncio.sleep(self.settings.interval)
                    continue

                doc = self._decode(body)
                reported = doc.get("ID")
                if not isinstance(reported, str):
                    raise IdentityMismatch(
                        "liveness check failed: ID field not present in output"
                    )
                if reported != peer_id:
                    raise IdentityMismatch(
                        f"liveness check failed: unexpected peer at endpoint "
                        f"(expected {peer_id}, got {reported})"
                    )

                logger.debug("node online", addr=address, peer=peer_id)
                return Liveness(address=address, peer_id=reported)

        raise Timeout(f"node at {address} failed to come online in given time period")

    async def wait_for_peers(self, address: str) -> Liveness:
        """
        Wait until the node at `address` reports at least one swarm peer
        
        Raises:
            ProtocolError: endpoint answered with an undecodable document
            Timeout: no peers were reported within the retry budget
        """
        url = self._url(address, "swarm/peers")

        async with self._session() as session:
            for _ in range(self.settings.attempts):
                body = await self._fetch(session, url)
                if body is not None:
                    peers = self._decode(body).get("Strings")
                    if peers is not None and not isinstance(peers, list):
                        raise ProtocolError(
                            "liveness check failed: Strings field is not a list"
                        )
                    if peers:
                        logger.debug("node bootstrapped", addr=address, peers=len(peers))
                        return Liveness(address=address, peer_count=len(peers))

                await asyncio.sleep(self.settings.interval)

        raise Timeout(f"node at {address} failed to bootstrap in given time period")
