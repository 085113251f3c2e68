from foreman.ai.closer import AICloser, CompletionResult

__all__ = ["AICloser", "CompletionResult"]
