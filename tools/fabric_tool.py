"""Fabric Tool - list lounge fabrics."""

from typing import Any, Optional

from models.customer import Fabric
from tools.api_client import TailorApiClient, parse_record


class FabricTool:
    """FabricService implementation over the REST API."""

    def __init__(self, client: Optional[TailorApiClient] = None):
        self.client = client or TailorApiClient()

    async def list(self, filter: Optional[dict[str, Any]] = None) -> list[Fabric]:
        """List fabrics, optionally filtered (e.g. ``{"type": "cotton"}``)."""
        params = {key: value for key, value in (filter or {}).items() if value not in (None, "")}
        data = await self.client.request("fabrics.list", "GET", "fabrics", params=params or None)
        if isinstance(data, dict):
            data = data.get("fabrics") or data.get("items") or []
        return [parse_record("fabrics.list", Fabric, item) for item in data or [] if isinstance(item, dict)]
