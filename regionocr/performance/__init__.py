"""
Performance Package

Retry helpers for operations that touch the network.
"""

from .retry import RetryPolicy, RetryAttempt, execute_with_retry

__all__ = [
    'RetryPolicy',
    'RetryAttempt',
    'execute_with_retry',
]
