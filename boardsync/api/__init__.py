"""boardsync HTTP API layer.

Provides the Falcon Asynchronous Server Gateway Interface (ASGI)
application that receives GitHub webhook deliveries.

Public API
----------
create_app
    Application factory registering health endpoints and, when dependencies
    are provided, the ``POST /webhook`` endpoint.
"""

from boardsync.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
