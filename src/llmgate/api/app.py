"""FastAPI application exposing the LLMGate gateway."""

from __future__ import annotations

import asyncio
import math
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, TypeVar
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from llmgate.api.schemas import (
    AnalysisResponse,
    ErrorResponse,
    HealthResponse,
    ProviderSummary,
    ProvidersResponse,
    utc_timestamp,
)
from llmgate.config import Settings, get_settings
from llmgate.errors import (
    ClientDisconnectedError,
    ConfigurationError,
    GatewayError,
    InternalError,
    OriginDeniedError,
    PayloadTooLargeError,
    RateLimitedError,
)
from llmgate.guards import FixedWindowRateLimiter, OriginGuard
from llmgate.metrics.observability import (
    GatewayMetrics,
    bind_correlation_id,
    clear_correlation_id,
    configure_logging,
    get_logger,
)
from llmgate.models import RateDecision
from llmgate.providers.registry import CredentialSource, ProviderRegistry, build_registry
from llmgate.services import (
    AnalysisService,
    CostMeter,
    DispatchConfig,
    Dispatcher,
    HttpDispatcher,
    RequestValidator,
)

T = TypeVar("T")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-site",
}


@dataclass(frozen=True)
class AppDependencies:
    registry: ProviderRegistry
    origin_guard: OriginGuard
    rate_limiter: FixedWindowRateLimiter
    dispatcher: Dispatcher
    analysis_service: AnalysisService


def build_dependencies(
    settings: Settings,
    *,
    credentials: CredentialSource | None = None,
    dispatcher: Dispatcher | None = None,
    clock: Callable[[], float] | None = None,
) -> AppDependencies:
    registry = build_registry(settings, credentials)
    dispatcher = dispatcher or HttpDispatcher(
        registry,
        config=DispatchConfig(
            max_output_tokens=settings.max_output_tokens,
            timeout_seconds=settings.upstream_timeout_seconds,
        ),
    )
    limiter_kwargs: dict[str, Any] = {"max_clients": settings.rate_limit_max_clients}
    if clock is not None:
        limiter_kwargs["clock"] = clock
    rate_limiter = FixedWindowRateLimiter(
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
        **limiter_kwargs,
    )
    validator = RequestValidator(registry, max_body_bytes=settings.max_body_bytes)
    service = AnalysisService(registry, validator, dispatcher, CostMeter(settings.cost_currency))
    return AppDependencies(
        registry=registry,
        origin_guard=OriginGuard(settings.allowed_origins),
        rate_limiter=rate_limiter,
        dispatcher=dispatcher,
        analysis_service=service,
    )


def client_identity(request: Request, *, trust_forwarded_for: bool = False) -> str:
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


async def run_unless_disconnected(request: Request, work: Awaitable[T], poll_seconds: float) -> T:
    """Await ``work``, cancelling it if the inbound client disconnects first."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_seconds)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                raise ClientDisconnectedError()
    finally:
        if not task.done():
            task.cancel()


def error_response(exc: GatewayError, correlation_id: str | None = None) -> JSONResponse:
    headers: dict[str, str] = {}
    retry_after: int | None = None
    if isinstance(exc, RateLimitedError):
        retry_after = max(1, math.ceil(exc.retry_after))
        headers["Retry-After"] = str(retry_after)
    body = ErrorResponse(
        error=exc.kind,
        message=exc.message,
        correlation_id=correlation_id,
        retry_after=retry_after,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def rate_limit_headers(decision: RateDecision) -> dict[str, str]:
    return {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(max(0, math.ceil(decision.reset_after))),
    }


def _declared_provider(payload: Any, registry: ProviderRegistry) -> str:
    # Only registered ids become metric labels; anything else collapses to "unknown".
    if isinstance(payload, Mapping):
        provider_id = payload.get("providerId")
        if provider_id is None:
            return registry.default_id()
        if isinstance(provider_id, str) and provider_id.strip() in registry.ids():
            return provider_id.strip()
        return "unknown"
    return "-"


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    deps = dependencies or build_dependencies(settings)

    logger = get_logger("api")

    if deps.registry.degraded:
        default_id = deps.registry.default_id()
        if settings.require_default_credential:
            raise ConfigurationError(f"Default provider {default_id!r} has no credential configured")
        logger.warning("registry.degraded", default_provider=default_id)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        try:
            yield
        finally:
            aclose = getattr(deps.dispatcher, "aclose", None)
            if aclose is not None:
                await aclose()

    app = FastAPI(title="LLMGate API", version="0.1.0", lifespan=lifespan)
    app.state.dependencies = deps
    app.state.started_at = time.monotonic()

    # Middleware added later wraps earlier ones: correlation id, then origin guard, then CORS.
    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.allowed_origins),
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def enforce_origin(request: Request, call_next):  # type: ignore[override]
        try:
            deps.origin_guard.enforce(request.headers.get("origin"))
        except OriginDeniedError as exc:
            GatewayMetrics.origin_denials.inc()
            logger.warning(
                "origin.denied",
                origin=request.headers.get("origin"),
                path=request.url.path,
                client=client_identity(request, trust_forwarded_for=settings.trust_forwarded_for),
            )
            return error_response(exc, getattr(request.state, "correlation_id", None))
        return await call_next(request)

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(GatewayError)
    async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        if isinstance(exc, InternalError):
            logger.error("internal.error", correlation_id=correlation_id, detail=repr(exc.__cause__))
        response = error_response(exc, correlation_id)
        response.headers.update(getattr(request.state, "rate_limit_headers", {}))
        return response

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", None)
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            kind, message = "not_found", f"Endpoint {request.method} {request.url.path} not found"
        else:
            kind, message = "http_error", str(exc.detail)
        body = ErrorResponse(error=kind, message=message, correlation_id=correlation_id)
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(by_alias=True, exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request, dep: AppDependencies = Depends(get_dependencies)) -> HealthResponse:
        from llmgate import __version__

        return HealthResponse(
            status="degraded" if dep.registry.degraded else "healthy",
            uptime_seconds=round(time.monotonic() - request.app.state.started_at, 3),
            timestamp=utc_timestamp(),
            version=__version__,
            environment=settings.environment,
        )

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/providers", response_model=ProvidersResponse)
    async def list_providers(dep: AppDependencies = Depends(get_dependencies)) -> ProvidersResponse:
        registry = dep.registry
        providers = [
            ProviderSummary.from_descriptor(descriptor, available=registry.credential_for(descriptor) is not None)
            for descriptor in registry.all()
        ]
        return ProvidersResponse(providers=providers, default_id=registry.default_id())

    @app.post(
        "/analyze",
        response_model=AnalysisResponse,
        responses={
            400: {"model": ErrorResponse},
            413: {"model": ErrorResponse},
            429: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
            502: {"model": ErrorResponse},
        },
    )
    async def analyze(
        request: Request,
        response: Response,
        dep: AppDependencies = Depends(get_dependencies),
    ) -> AnalysisResponse:
        identity = client_identity(request, trust_forwarded_for=settings.trust_forwarded_for)
        started = time.perf_counter()
        provider_id = "-"
        outcome = InternalError.kind
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        extra: dict[str, Any] = {}
        try:
            decision = dep.rate_limiter.admit(identity)
            request.state.rate_limit_headers = rate_limit_headers(decision)
            response.headers.update(request.state.rate_limit_headers)
            if not decision.allowed:
                raise RateLimitedError(decision.retry_after)
            declared_length = request.headers.get("content-length", "")
            if declared_length.isdigit() and int(declared_length) > settings.max_body_bytes:
                raise PayloadTooLargeError()
            validator = dep.analysis_service.validator
            payload = validator.parse_body(await request.body())
            provider_id = _declared_provider(payload, dep.registry)
            result = await run_unless_disconnected(
                request,
                dep.analysis_service.analyze(payload),
                settings.disconnect_poll_seconds,
            )
            outcome, status_code = "success", status.HTTP_200_OK
            extra = {
                "input_tokens": result.result.input_tokens,
                "output_tokens": result.result.output_tokens,
                "cost": float(result.cost.total_cost),
                "currency": result.cost.currency,
                "analysis_ms": round(result.duration_ms, 3),
            }
            return AnalysisResponse.from_outcome(result)
        except GatewayError as exc:
            outcome, status_code = exc.kind, exc.status_code
            if isinstance(exc, RateLimitedError):
                extra = {"retry_after": exc.retry_after}
            raise
        except Exception as exc:
            raise InternalError() from exc
        finally:
            GatewayMetrics.observe_outcome(provider_id, outcome)
            logger.info(
                "analyze.complete",
                client=identity,
                provider_id=provider_id,
                outcome=outcome,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
                **extra,
            )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
