"""Timer queues, thread pools, a ring buffer, TCP echo servers, a reactor and a metrics exporter."""

__version__ = "0.1.0"