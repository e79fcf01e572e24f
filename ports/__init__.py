from .gateway import ScrapeGatewayPort
from .repos import JobStorePort

__all__ = [
    "ScrapeGatewayPort",
    "JobStorePort",
]
