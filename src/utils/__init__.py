"""
Shared infrastructure for rowid-bisect

Provides:
- logging: Console/JSON logging setup and context-aware loggers
- retry: Backoff retries for transient database errors
- sql_safety: Identifier validation and MySQL quoting
- tracing: OpenTelemetry spans around probes and connections
- db_pool: Thread-safe MySQL/TiDB connection pool
- metrics: Prometheus metric helpers and HTTP publisher
"""

__version__ = "1.0.0"
__all__ = ["logging", "retry", "sql_safety", "tracing", "db_pool", "metrics"]
