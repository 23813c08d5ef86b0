"""gRPC transport layer for the application.

This package hosts:
- Protocol buffers (in `protos/`) and generated Python stubs (in `generated/`).
- Server bootstrap and interceptors.
- Thin service adapters that map gRPC requests to application services.
"""

