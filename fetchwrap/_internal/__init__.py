"""Internal modules for fetchwrap.

WARNING: This package contains the execution engine behind `Service`.
These modules are not intended for direct use in application code.

Modules:
    abort - Cancellation tokens and the per-call coordinator
    pending - In-flight request registry for deduplication
    interceptors - Request/response interceptor chains
    resolver - Configuration precedence and URL/body resolution
    serialization - Query and body formatters
    execution - Timeout/retry state machine
    context - Per-service shared state
    http - Default httpx exchange primitive
    join - all/race helpers
    redaction - Header redaction for debug logging
"""
