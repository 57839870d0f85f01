"""FastAPI dependencies: service lookup and the unlock gate."""

from typing import Optional

from fastapi import Request

from ..licensing import Identity, Operation, extract_bearer_token
from ..logging import RequestContext
from ..services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_request_context(request: Request) -> RequestContext:
    """The request's log context, created on first use."""
    context = getattr(request.state, "context", None)
    if context is None:
        context = RequestContext.new()
        request.state.context = context
    return context


def get_credential(request: Request, services: Services) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token:
        return token
    return request.cookies.get(services.settings.cookie_name) or None


def gated(operation: Operation, exempt: bool = False):
    """
    Build a dependency that runs the gate and yields the caller's identity.

    Args:
        operation: Operation.READ for handlers that never change data
        exempt: Skip the unlock check for this WRITE handler
    """
    async def dependency(request: Request) -> Identity:
        services = get_services(request)
        context = get_request_context(request)
        identity = await services.gate.evaluate(
            get_credential(request, services),
            operation,
            exempt=exempt,
            context=context,
        )
        request.state.context = context.with_user(identity.user_id, identity.username)
        return identity

    return dependency
