"""API Resilience Implementations.

Admission control (concurrency + sliding window), retries with exponential
backoff and jitter, and classification of gateway failures.
Bounded Context: API Resilience
"""
