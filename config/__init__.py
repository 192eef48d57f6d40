"""Configuration package for the interview engine."""
from .llm import LlmRoute, load_route, route_from_settings
from .registry import COMPLETION_KEY, RESUME_PARSER_KEY, bind_model, get_model, is_bound, unbind_model
from .settings import Settings, settings

__all__ = [
    "LlmRoute",
    "load_route",
    "route_from_settings",
    "COMPLETION_KEY",
    "RESUME_PARSER_KEY",
    "bind_model",
    "get_model",
    "is_bound",
    "unbind_model",
    "Settings",
    "settings",
]
