"""HTTP server for the autofill gateway."""

from autofill.server.app import AutofillServer, create_app, http_status_for

__all__ = [
    "AutofillServer",
    "create_app",
    "http_status_for",
]
