"""Executor interfaces plus asyncio-based and shared-background-loop implementations."""

__version__ = "2.1.2"
__all__ = ["base", "asyncio_executor", "global_executor"]