#!/usr/bin/env python3
"""Modular configuration system

Configuration hierarchy:
- infra_config: Infrastructure services (PostgreSQL, NATS)
- pricing_config: Order pricing policy (tax, shipping, currency)
- logging_config: Logging configuration
"""
from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .pricing_config import OrderPricingConfig

__all__ = [
    'LoggingConfig',
    'InfraConfig',
    'OrderPricingConfig',
]
