"""Dependency injection with a singleton service manager.

The service manager owns everything that lives for the whole process: the
settings, the configured ``golinks`` logger, the link registry and the click
recorder (with its set of in-flight tasks). Route handlers receive these
through the dependency functions at the bottom of the module, which tests
replace via ``app.dependency_overrides``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request

from golinks.config import Settings, get_settings
from golinks.database import async_session
from golinks.recorder import ClickMetadata, ClickRecorder
from golinks.redis import get_redis
from golinks.registry import LinkRegistry
from golinks.resolver import RedirectResolver


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources."""

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
            self.logger = self._setup_logger()
            self.registry = LinkRegistry(async_session)
            self.recorder = ClickRecorder(
                registry=self.registry,
                cache=await get_redis(),
                logger=self.logger,
                settings=self.settings,
            )
            self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("golinks")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.settings.LOG_LEVEL)
        return logger

    async def cleanup(self) -> None:
        """Let in-flight click recording finish before shutdown."""
        if self._initialized:
            await self.recorder.drain()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request tracking information.

    Attributes:
        settings: Shared settings
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        click: Client details forwarded to the click recorder
        start_time: Request start timestamp
    """

    settings: Settings
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    click: ClickMetadata = field(default_factory=ClickMetadata)
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Logger that stamps every message with the request context."""
        return logging.LoggerAdapter(
            logging.getLogger("golinks"),
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.click.ip_address,
                "user_agent": self.click.user_agent,
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


async def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        settings=get_settings(),
        trace_id=request.headers.get("x-trace-id"),
        click=ClickMetadata.from_headers(request.headers),
    )


def get_registry(manager: ServiceManager = Depends(get_service_manager)) -> LinkRegistry:
    return manager.registry


def get_redirect_resolver(manager: ServiceManager = Depends(get_service_manager)) -> RedirectResolver:
    return RedirectResolver(
        registry=manager.registry,
        recorder=manager.recorder,
        logger=manager.logger,
        settings=manager.settings,
    )
