"""Baseline stand-in implementations."""

from .env_utils import getenv_any, getenv_bool, load_dotenv
from .http_utils import get_json
from .random_agent import DEFAULT_QUESTIONS, RandomStandIn
from .scripted_agent import ScriptedStandIn

__all__ = [
    "DEFAULT_QUESTIONS",
    "RandomStandIn",
    "ScriptedStandIn",
    "get_json",
    "getenv_any",
    "getenv_bool",
    "load_dotenv",
]
