"""
Handler builder - turns a MethodDescriptor into a FastAPI route handler.

One factory per HandlerShape. The shape is chosen once at startup; each
factory returns an ``async def`` whose signature FastAPI can inspect
(``request`` plus an ``id`` query parameter for id-keyed shapes).

Per request the handler runs strictly in order:
deserialize body -> resolve service -> invoke -> translate result.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

from fastapi import HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError

from appservice_api.core.cancellation import CancellationToken
from appservice_api.core.errors import RegistrationError, RequestBodyError
from appservice_api.runtime.container import ServiceContainer, resolve_service
from appservice_api.runtime.responses import ResponsePlan
from appservice_api.specs.descriptors import (
    HandlerShape,
    MethodDescriptor,
    ParameterKind,
    RouteDescriptor,
    ServiceDescriptor,
)

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


# =============================================================================
# Request body
# =============================================================================


def _clean_errors(exc: ValidationError) -> list[dict[str, Any]]:
    """Pydantic errors made JSON-safe: ctx values stringified, raw body input dropped."""
    errors: list[dict[str, Any]] = []
    for err in exc.errors():
        clean: dict[str, Any] = {}
        for k, v in err.items():
            if k == "ctx" and isinstance(v, dict):
                clean[k] = {ck: str(cv) for ck, cv in v.items()}
            elif k == "url":
                continue
            elif k == "input" and isinstance(v, bytes | bytearray):
                # json_invalid errors carry the undecoded request body
                continue
            else:
                clean[k] = jsonable_encoder(v) if k == "input" else v
        errors.append(clean)
    return errors


async def parse_payload(request: Request, payload_type: type[BaseModel]) -> BaseModel:
    """Read the JSON body and validate it into *payload_type*.

    Raises:
        RequestBodyError: empty body, malformed JSON, or schema mismatch.
    """
    raw = await request.body()
    if not raw.strip():
        raise RequestBodyError("Request body is required")
    try:
        return payload_type.model_validate_json(raw)
    except ValidationError as e:
        errors = _clean_errors(e)
        if any(err.get("type") == "json_invalid" for err in errors):
            raise RequestBodyError("Malformed JSON body", errors) from e
        raise RequestBodyError(f"Invalid {payload_type.__name__} payload", errors) from e


# =============================================================================
# Invocation
# =============================================================================


class ServiceInvoker:
    """Resolves the service for one request and calls the bound method."""

    def __init__(
        self,
        service: ServiceDescriptor,
        method: MethodDescriptor,
        container: ServiceContainer,
    ):
        self.service = service
        self.method = method
        self.container = container
        ct_param = method.parameter(ParameterKind.CANCELLATION)
        id_param = method.parameter(ParameterKind.IDENTIFIER)
        payload_param = method.parameter(ParameterKind.PAYLOAD)
        self._ct_name = ct_param.name if ct_param else None
        self._id_name = id_param.name if id_param else None
        self._payload_name = payload_param.name if payload_param else None

    async def __call__(
        self,
        request: Request,
        *,
        id: UUID | None = None,
        payload: BaseModel | None = None,
    ) -> Any:
        ct = CancellationToken(request)
        kwargs: dict[str, Any] = {}
        if self._ct_name:
            kwargs[self._ct_name] = ct
        # The fallback shape passes the cancellation token only
        if self.method.shape != HandlerShape.FALLBACK:
            if self._id_name:
                kwargs[self._id_name] = id
            if self._payload_name:
                kwargs[self._payload_name] = payload

        with self.container.scope():
            instance = resolve_service(self.container, self.service.service_type)
            bound = getattr(instance, self.method.name)
            logger.debug("Invoking %s.%s", self.service.name, self.method.name)
            try:
                result = bound(**kwargs)
                if inspect.isawaitable(result):
                    result = await result
            except asyncio.CancelledError:
                ct.cancel("request task cancelled")
                raise
        return result


# =============================================================================
# Result translation
# =============================================================================


def translate_result(
    plan: ResponsePlan,
    result: Any,
    *,
    location_prefix: str,
) -> Response:
    """Turn a service result into a response according to *plan*."""
    if plan.not_found_on_none and result is None:
        raise HTTPException(status_code=404, detail="Not found")
    if plan.empty_body:
        return Response(status_code=plan.status_code)
    if plan.created:
        return JSONResponse(
            status_code=plan.status_code,
            content={"id": str(result)},
            headers={"Location": f"{location_prefix}/{result}"},
        )
    return JSONResponse(status_code=plan.status_code, content=jsonable_encoder(result))


# =============================================================================
# Per-shape factories
# =============================================================================


def _no_args_handler(invoker: ServiceInvoker, respond: Callable[[Any], Response]) -> Handler:
    async def handle_no_args(request: Request) -> Response:
        return respond(await invoker(request))

    return handle_no_args


def _id_only_handler(invoker: ServiceInvoker, respond: Callable[[Any], Response]) -> Handler:
    async def handle_id_only(request: Request, id: UUID = Query(..., description="Resource id")) -> Response:
        return respond(await invoker(request, id=id))

    return handle_id_only


def _body_only_handler(invoker: ServiceInvoker, respond: Callable[[Any], Response]) -> Handler:
    payload_type = invoker.method.payload_type
    assert payload_type is not None

    async def handle_body_only(request: Request) -> Response:
        payload = await parse_payload(request, payload_type)
        return respond(await invoker(request, payload=payload))

    return handle_body_only


def _id_and_body_handler(invoker: ServiceInvoker, respond: Callable[[Any], Response]) -> Handler:
    payload_type = invoker.method.payload_type
    assert payload_type is not None

    async def handle_id_and_body(
        request: Request, id: UUID = Query(..., description="Resource id")
    ) -> Response:
        payload = await parse_payload(request, payload_type)
        return respond(await invoker(request, id=id, payload=payload))

    return handle_id_and_body


def _fallback_handler(invoker: ServiceInvoker, respond: Callable[[Any], Response]) -> Handler:
    async def handle_fallback(request: Request) -> Response:
        return respond(await invoker(request))

    return handle_fallback


HANDLER_FACTORIES: dict[HandlerShape, Callable[[ServiceInvoker, Callable[[Any], Response]], Handler]] = {
    HandlerShape.NO_ARGS: _no_args_handler,
    HandlerShape.ID_ONLY: _id_only_handler,
    HandlerShape.BODY_ONLY: _body_only_handler,
    HandlerShape.ID_AND_BODY: _id_and_body_handler,
    HandlerShape.FALLBACK: _fallback_handler,
}


def build_handler(
    service: ServiceDescriptor,
    method: MethodDescriptor,
    route: RouteDescriptor,
    plan: ResponsePlan,
    container: ServiceContainer,
    *,
    api_prefix: str = "/api",
) -> Handler:
    """Create the request handler for *method* of *service*.

    Args:
        service: Service the method belongs to.
        method: Method descriptor (its shape selects the factory).
        route: Route descriptor, used for the handler name.
        plan: Response plan shared with the OpenAPI describer.
        container: Container used to resolve the service per request.
        api_prefix: Prefix for Location headers of created resources.
    """
    factory = HANDLER_FACTORIES.get(method.shape)
    if factory is None:
        raise RegistrationError(
            f"no handler for shape {method.shape}", service=service.name, method=method.name
        )

    location_prefix = f"{api_prefix.rstrip('/')}/{service.route_group}"

    def respond(result: Any) -> Response:
        return translate_result(plan, result, location_prefix=location_prefix)

    handler = factory(ServiceInvoker(service, method, container), respond)
    handler.__name__ = route.operation_id
    handler.__qualname__ = f"{service.name}.{method.name}"
    return handler
