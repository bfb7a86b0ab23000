"""HTTP Job Scheduler: cron-driven HTTP invocations with retries and alerts."""

__version__ = "0.1.0"

__all__ = ["__version__"]
