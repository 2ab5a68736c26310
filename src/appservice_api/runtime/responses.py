"""
Response classification shared by the handler builder and the OpenAPI describer.

Both sides call ``plan_response`` so the documented status codes can never
drift from what the handlers actually return.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from appservice_api.specs.descriptors import HandlerShape, ReturnShape


@dataclass(frozen=True)
class ResponsePlan:
    """How a successful invocation turns into an HTTP response."""

    status_code: int
    empty_body: bool = False
    not_found_on_none: bool = False
    created: bool = False
    reads_body: bool = False
    error_statuses: tuple[int, ...] = (500,)


@lru_cache(maxsize=None)
def plan_response(
    shape: HandlerShape,
    return_shape: ReturnShape,
    method_name: str,
    *,
    authenticated: bool = True,
    permission: bool = False,
) -> ResponsePlan:
    """Classify (shape, return shape, method name) into a ResponsePlan.

    Args:
        shape: Handler shape selected at startup.
        return_shape: Shape of the service method's return value.
        method_name: Service method name. Void id-only methods whose name
            starts with "delete" (any case) answer 204, whatever the verb.
        authenticated: Whether the route sits behind authentication.
        permission: Whether the route carries a permission requirement.
    """
    returns_nothing = return_shape == ReturnShape.NONE
    reads_body = shape in (HandlerShape.BODY_ONLY, HandlerShape.ID_AND_BODY)
    not_found = False
    created = False

    if shape == HandlerShape.ID_ONLY:
        if returns_nothing:
            status = 204 if method_name.lower().startswith("delete") else 200
        else:
            status = 200
            not_found = True
    elif shape == HandlerShape.BODY_ONLY and return_shape == ReturnShape.IDENTIFIER:
        status = 201
        created = True
    elif shape == HandlerShape.ID_AND_BODY:
        status = 204
        returns_nothing = True
    else:
        status = 200

    errors: list[int] = []
    if reads_body:
        errors.append(400)
    if authenticated or permission:
        errors.append(401)
    if permission:
        errors.append(403)
    if not_found:
        errors.append(404)
    errors.append(500)

    return ResponsePlan(
        status_code=status,
        empty_body=returns_nothing,
        not_found_on_none=not_found,
        created=created,
        reads_body=reads_body,
        error_statuses=tuple(errors),
    )
