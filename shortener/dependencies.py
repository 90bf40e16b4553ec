"""Dependency injection with a singleton service manager.

This module wires the shared resources (settings, logger, redis client,
repository, cache, service, sweeper) once per process and hands a
lightweight per-request context to every endpoint.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request

from shortener.cache import RedisURLCache
from shortener.clicks import ClickRecorder
from shortener.config import Settings, get_settings
from shortener.database import async_session
from shortener.redis import get_redis
from shortener.repository import SQLAlchemyURLRepository
from shortener.sweeper import ExpirySweeper
from shortener.url_service import URLShorteningService

__all__ = [
    "RequestContext",
    "RequestLoggerAdapter",
    "ServiceManager",
    "get_request_context",
    "get_service_manager",
    "get_url_service",
]


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Everything held here is safe for concurrent use, so one instance serves
    all requests.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings = get_settings()
            self.logger = self._setup_logger(self.settings)
            self.cache_client = await get_redis()
            self.repository = SQLAlchemyURLRepository(
                async_session,
                timeout=self.settings.STORE_TIMEOUT_SECONDS,
                sweep_timeout=self.settings.SWEEPER_TIMEOUT_SECONDS,
            )
            self.cache = RedisURLCache(
                self.cache_client,
                ttl=self.settings.CACHE_TTL_SECONDS,
                prefix=self.settings.CACHE_KEY_PREFIX,
                timeout=self.settings.CACHE_TIMEOUT_SECONDS,
            )
            self.clicks = ClickRecorder(self.repository, self.logger, max_pending=self.settings.CLICK_MAX_PENDING)
            self.url_service = URLShorteningService(
                self.repository, self.cache, self.clicks, settings=self.settings, logger=self.logger
            )
            self.sweeper = ExpirySweeper(self.repository, grace=self.settings.expiry_grace, logger=self.logger)
            self._initialized = True

    def _setup_logger(self, settings: Settings) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Flush pending click increments; connections are closed by the lifespan."""
        if self._initialized:
            await self.clicks.drain()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Adds request fields to every record, keeping any per-call ``extra``."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


@dataclass
class RequestContext:
    """Per-request tracking data plus access to the shared resources.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def cache_client(self) -> redis.Redis:
        return self.service_manager.cache_client

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> "RequestLoggerAdapter":
        """Shared logger with request context attached."""
        return RequestLoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

    return RequestContext(
        service_manager=manager,
        request_id=request_id,
        user_agent=user_agent,
        client_ip=client_ip,
    )


def get_url_service(manager: ServiceManager = Depends(get_service_manager)) -> URLShorteningService:
    return manager.url_service
