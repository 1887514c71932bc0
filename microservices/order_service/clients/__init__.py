"""
Order Service Clients Module

HTTP clients for synchronous communication with other services
"""

from .account_client import AccountClient
from .tax_client import FlatTaxRateProvider, TaxServiceClient

__all__ = [
    "AccountClient",
    "FlatTaxRateProvider",
    "TaxServiceClient",
]
