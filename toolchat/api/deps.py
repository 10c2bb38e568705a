# Request dependencies shared by the API endpoints.

from fastapi import Request

from toolchat.core.bootstrap import Runtime


def get_runtime(request: Request) -> Runtime:
    """Returns the runtime built by the application lifespan."""
    return request.app.state.runtime
