"""Tenant (client) management and request authorization."""

from .client_manager import ClientManager, generate_api_key
from .gate import AuthorizationGate, check_capability, check_quota

__all__ = ["ClientManager", "generate_api_key", "AuthorizationGate", "check_capability", "check_quota"]
