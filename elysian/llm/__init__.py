from elysian.llm.blueprint import BlueprintSynthesizer, parse_blueprint
from elysian.llm.client import GeminiClient
from elysian.llm.completion import CompletionClient, CompletionResult
from elysian.llm.speech import SpeechSynthesizer

__all__ = [
    "BlueprintSynthesizer",
    "CompletionClient",
    "CompletionResult",
    "GeminiClient",
    "SpeechSynthesizer",
    "parse_blueprint",
]
