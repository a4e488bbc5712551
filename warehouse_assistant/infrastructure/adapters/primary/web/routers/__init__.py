from warehouse_assistant.infrastructure.adapters.primary.web.routers import assistant

__all__ = ["assistant"]
