from .models import Principal
from .provider import AuthError, get_auth_provider
from .rbac import enforce_required_role

__all__ = ["AuthError", "Principal", "get_auth_provider", "enforce_required_role"]
