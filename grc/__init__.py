from .report import AgentError, ConfigError, ModelProviderError
from .session import Result, Session

__all__ = ["Session", "Result", "AgentError", "ConfigError", "ModelProviderError"]
