"""Best-effort caller IP and geolocation resolution.

Nothing in here may fail a request: every lookup error is logged, counted
and turned into a missing value.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from idx_ai_gateway.telemetry.logger import get_logger
from idx_ai_gateway.telemetry.metrics import metrics

logger = get_logger(__name__)

UNRESOLVED_ADDRESSES = frozenset({"127.0.0.1", "::1", "localhost", "unknown", ""})


@dataclass
class GeoLocation:
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    countryCode: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def client_ip_from_headers(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """First forwarded address, then X-Real-IP, then the socket peer."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return peer or "Unknown"


def is_unresolved(ip: str) -> bool:
    lowered = ip.lower()
    return lowered in UNRESOLVED_ADDRESSES or lowered.startswith("localhost")


class Geolocator:
    """Resolves the public IP and location of a caller over HTTP."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        public_ip_url: str = "https://api.ipify.org?format=json",
        geolocation_url: str = "http://ip-api.com/json/{ip}",
        timeout: float = 3.0,
        enabled: bool = True,
    ):
        self.http_client = http_client
        self.public_ip_url = public_ip_url
        self.geolocation_url = geolocation_url
        self.timeout = timeout
        self.enabled = enabled

    async def public_ip(self) -> Optional[str]:
        try:
            response = await self.http_client.get(self.public_ip_url, timeout=self.timeout)
            response.raise_for_status()
            return response.json().get("ip")
        except (httpx.HTTPError, ValueError) as exc:
            metrics.enrichment_failures.labels(stage="public_ip").inc()
            logger.warning("public_ip_lookup_failed", error=str(exc))
            return None

    async def lookup(self, ip: str) -> Optional[GeoLocation]:
        try:
            response = await self.http_client.get(self.geolocation_url.format(ip=ip), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            metrics.enrichment_failures.labels(stage="geolocation").inc()
            logger.warning("geolocation_lookup_failed", ip=ip, error=str(exc))
            return None

        if not isinstance(data, dict) or data.get("status") != "success":
            metrics.enrichment_failures.labels(stage="geolocation").inc()
            status = data.get("status") if isinstance(data, dict) else None
            logger.warning("geolocation_lookup_unsuccessful", ip=ip, status=status)
            return None

        return GeoLocation(
            city=data.get("city"),
            region=data.get("regionName"),
            country=data.get("country"),
            countryCode=data.get("countryCode"),
            lat=data.get("lat"),
            lon=data.get("lon"),
        )

    async def locate(self, headers: Mapping[str, str], peer: Optional[str] = None) -> Tuple[str, Optional[Dict[str, Any]]]:
        """Return the caller IP and, when resolvable, its location."""
        ip = client_ip_from_headers(headers, peer)
        if not self.enabled:
            return ip, None

        if is_unresolved(ip):
            ip = await self.public_ip() or ip
            if is_unresolved(ip):
                return ip, None

        location = await self.lookup(ip)
        return ip, location.to_dict() if location else None
