"""HTTP service that queues long-running tasks and runs them on a worker pool."""

__version__ = "0.1.0"

__all__ = ["__version__"]