from . import ai, health, notifications, processing, uploads

__all__ = ["ai", "health", "notifications", "processing", "uploads"]
