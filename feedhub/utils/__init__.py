from feedhub.utils.retry import RetryConfig, call_with_retry

__all__ = [
    "RetryConfig",
    "call_with_retry",
]
