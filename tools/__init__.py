"""Tools package - clients for the tailoring backend."""

from tools.api_client import TailorApiClient
from tools.customer_tool import CustomerTool
from tools.errors import ServiceError
from tools.fabric_tool import FabricTool
from tools.measurement_tool import MeasurementTool
from tools.order_tool import OrderTool

__all__ = [
    "TailorApiClient",
    "CustomerTool",
    "FabricTool",
    "MeasurementTool",
    "OrderTool",
    "ServiceError",
]
