"""LLM infrastructure package."""

from quizforge.infrastructure.llm.clients import FalClient, OpenRouterClient
from quizforge.infrastructure.llm.config import (
    LLMRouterConfig,
    TaskRoute,
    default_router_config,
)
from quizforge.infrastructure.llm.factory import (
    create_default_key_store,
    create_default_llm_router,
)
from quizforge.infrastructure.llm.question_generator import LlmQuestionGenerator
from quizforge.infrastructure.llm.router import LLMRouter
from quizforge.infrastructure.llm.summarizer import LlmSummarizer

__all__ = [
    "FalClient",
    "LLMRouter",
    "LLMRouterConfig",
    "LlmQuestionGenerator",
    "LlmSummarizer",
    "OpenRouterClient",
    "TaskRoute",
    "create_default_key_store",
    "create_default_llm_router",
    "default_router_config",
]
