from .base import SecureStore
from .file import FileSecureStore
from .memory import InMemorySecureStore

__all__ = ["SecureStore", "InMemorySecureStore", "FileSecureStore"]
