#!/usr/bin/env python3
"""
Centralized Configuration Manager

Loads the environment file for the current ENV, then exposes a typed
ServiceConfig for one microservice.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("order_service")
    config = config_manager.get_service_config()
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from dotenv import load_dotenv

from .config import InfraConfig, LoggingConfig, OrderPricingConfig

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Deployment environment"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


ENV_FILES = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}

# Default ports of the services the order service talks to
SERVICE_PORTS = {
    "account_service": 8202,
    "order_service": 8210,
    "tax_service": 8253,
}


def _bool(val: str) -> bool:
    return val.lower() == "true"


def _int(val: Optional[str], default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class ServiceConfig:
    """Runtime configuration of a single microservice"""
    service_name: str
    service_host: str = "0.0.0.0"
    service_port: int = 8210
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: str = "INFO"

    account_service_url: str = "http://localhost:8202"
    tax_service_url: str = "http://localhost:8253"

    infra: InfraConfig = field(default_factory=InfraConfig)
    pricing: OrderPricingConfig = field(default_factory=OrderPricingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigManager:
    """Configuration manager for one microservice"""

    def __init__(self, service_name: str, env: Optional[str] = None):
        self.service_name = service_name
        env_name = env or os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        env_file = ENV_FILES.get(env_name, ENV_FILES["development"])
        if os.path.exists(env_file):
            load_dotenv(env_file, override=False)
            logger.debug(f"Loaded environment file {env_file}")

        try:
            self.environment = Environment(env_name)
        except ValueError:
            self.environment = {
                "dev": Environment.DEVELOPMENT,
                "test": Environment.TESTING,
            }.get(env_name, Environment.DEVELOPMENT)

        self._service_config: Optional[ServiceConfig] = None

    def get_service_config(self) -> ServiceConfig:
        """Build (once) and return the service configuration"""
        if self._service_config is None:
            prefix = self.service_name.upper()
            default_port = SERVICE_PORTS.get(self.service_name, 8000)
            logging_config = LoggingConfig.from_env()
            self._service_config = ServiceConfig(
                service_name=self.service_name,
                service_host=os.getenv(f"{prefix}_HOST") or os.getenv("SERVICE_HOST", "0.0.0.0"),
                service_port=_int(os.getenv(f"{prefix}_PORT") or os.getenv("SERVICE_PORT"), default_port),
                environment=self.environment,
                debug=_bool(os.getenv("DEBUG", "false")),
                log_level=logging_config.log_level,
                account_service_url=self.get_service_url("account_service"),
                tax_service_url=self.get_service_url("tax_service"),
                infra=InfraConfig.from_env(),
                pricing=OrderPricingConfig.from_env(),
                logging=logging_config,
            )
        return self._service_config

    def discover_service(
        self,
        service_name: str,
        default_host: str = "localhost",
        default_port: int = 8000,
        env_host_key: Optional[str] = None,
        env_port_key: Optional[str] = None,
    ) -> Tuple[str, int]:
        """
        Resolve host and port of a peer service.

        Priority: explicit env keys -> <SERVICE>_HOST / <SERVICE>_PORT -> defaults
        """
        prefix = service_name.upper()
        host = (
            (os.getenv(env_host_key) if env_host_key else None)
            or os.getenv(f"{prefix}_HOST")
            or default_host
        )
        port = _int(
            (os.getenv(env_port_key) if env_port_key else None) or os.getenv(f"{prefix}_PORT"),
            default_port,
        )
        return host, port

    def get_service_url(self, service_name: str) -> str:
        """Base URL of a peer HTTP service"""
        explicit = os.getenv(f"{service_name.upper()}_URL")
        if explicit:
            return explicit.rstrip("/")
        host, port = self.discover_service(
            service_name,
            default_host="localhost",
            default_port=SERVICE_PORTS.get(service_name, 8000),
        )
        return f"http://{host}:{port}"

    def print_config_summary(self, show_secrets: bool = False):
        """Log a summary of the effective configuration"""
        config = self.get_service_config()
        password = config.infra.postgres_password if show_secrets else "***"
        logger.info(f"=== {config.service_name} configuration ({config.environment.value}) ===")
        logger.info(f"  listen: {config.service_host}:{config.service_port}  debug={config.debug}")
        logger.info(
            f"  postgres: {config.infra.postgres_user}:{password}@"
            f"{config.infra.postgres_host}:{config.infra.postgres_port}/{config.infra.postgres_db}"
        )
        logger.info(f"  nats: {config.infra.nats_server_url} (enabled={config.infra.nats_enabled})")
        logger.info(f"  account_service: {config.account_service_url}")
        logger.info(f"  tax_service: {config.tax_service_url} (tax_source={config.pricing.tax_source})")
        logger.info(
            f"  pricing: tax_rate={config.pricing.tax_rate} "
            f"free_shipping_over={config.pricing.free_shipping_threshold} "
            f"shipping_fee={config.pricing.flat_shipping_fee} {config.pricing.currency}"
        )


def create_config(service_name: str) -> ServiceConfig:
    """Shortcut for ConfigManager(service_name).get_service_config()"""
    return ConfigManager(service_name).get_service_config()


__all__ = ["ConfigManager", "ServiceConfig", "Environment", "create_config"]
