import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from warehouse_assistant.configuration.config import Settings, get_settings
from warehouse_assistant.domain.ports.services import CompletionServicePort
from warehouse_assistant.infrastructure.adapters.primary.web.middleware import (
    configure_exception_handlers,
)
from warehouse_assistant.infrastructure.adapters.primary.web.routers import assistant
from warehouse_assistant.infrastructure.adapters.secondary.persistence.database import (
    async_session_factory,
    initialize_database,
)
from warehouse_assistant.infrastructure.llm import LiteLLMCompletionClient

logger = logging.getLogger(__name__)

# LiteLLM adds its own handler AND allows propagation by default, causing duplicate logs
_litellm_loggers = ["LiteLLM", "LiteLLM Router", "LiteLLM Proxy"]
for _logger_name in _litellm_loggers:
    logging.getLogger(_logger_name).propagate = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting warehouse assistant...")
    if app.state.initialize_schema:
        await initialize_database()
    yield
    logger.info("Warehouse assistant stopped")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)


def create_app(
    settings: Optional[Settings] = None,
    completion_client: Optional[CompletionServicePort] = None,
    session_factory: Optional[Any] = None,
    initialize_schema: bool = True,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Warehouse Assistant API",
        description="""
## Warehouse Assistant API

Conversational assistant for warehouse clients: find stored items, check
shipments, and request will calls, repair quotes, reallocations and disposals.
Every change is proposed as a draft and only carried out after the user
confirms it.

### Authentication

Send an API key (`wa_sk_...`) in the `Authorization` header:
```
Authorization: Bearer wa_sk_abc123...
```

### SSE Streaming

`POST /api/v1/assistant/chat` streams `data: {"choices":[{"delta":{"content":"..."}}]}`
frames and ends with `data: [DONE]`.
        """,
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.completion_client = completion_client or LiteLLMCompletionClient.from_settings(
        settings
    )
    app.state.session_factory = session_factory or async_session_factory
    app.state.initialize_schema = initialize_schema

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    configure_exception_handlers(app)
    app.include_router(assistant.router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "warehouse-assistant"}

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
