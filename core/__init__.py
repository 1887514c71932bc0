#!/usr/bin/env python3
"""
Core Module for Microservices Architecture

Shared infrastructure for the marketplace microservices.

COMPONENTS:
    - config_manager.py: Centralized configuration management
    - config/: Typed configuration sections (infra, pricing, logging)
    - logger.py: Service logger setup
    - auth_dependencies.py: FastAPI dependencies for the gateway-forwarded user
    - service_client_base.py: Base class of peer service HTTP clients
    - nats_client.py: NATS JetStream event bus

USAGE:
    from core.config_manager import ConfigManager

    config = ConfigManager("order_service").get_service_config()
"""

from .config_manager import ConfigManager, Environment, ServiceConfig, create_config

__all__ = [
    "ConfigManager",
    "Environment",
    "ServiceConfig",
    "create_config",
]

__version__ = "2.0.0"
