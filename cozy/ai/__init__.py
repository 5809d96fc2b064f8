"""AI functions. Importing the package registers every function."""

from cozy.ai import assistant, compatibility, conversation, suggestions
from cozy.ai.registry import function_registry

__all__ = ["assistant", "compatibility", "conversation", "function_registry", "suggestions"]
