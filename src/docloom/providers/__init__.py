"""Model provider adapters."""

from docloom.providers.base import BaseProvider, collect_reply
from docloom.providers.registry import create_provider, infer_provider, resolve_model

__all__ = ["BaseProvider", "collect_reply", "create_provider", "infer_provider", "resolve_model"]
