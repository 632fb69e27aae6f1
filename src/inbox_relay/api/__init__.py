"""
HTTP surface.

- dependencies.py: settings and service container singletons
- routes_webhook.py: inbound webhook and command dispatch
- routes_ops.py: on-demand tick, registration, queue/audit views, health
- middleware.py: request tracing
- error_handlers.py: exception to JSON response mapping
"""
