from .base import Base
from .models import account, refresh_token

__all__ = ["Base", "account", "refresh_token"]
