import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Callable, Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

from messagewall import __version__
from messagewall.config import Settings, get_settings
from messagewall.errors import InvalidJson, PayloadTooLarge, TooFrequent, register_error_handlers
from messagewall.identity import Identity, IdentityMiddleware, get_identity
from messagewall.logging_utils import RequestLoggingMiddleware, log_create_data, setup_logging
from messagewall.metrics import get_metrics, get_metrics_content_type, record_create_outcome
from messagewall.rate_limit import CooldownRateLimiter, get_rate_limiter
from messagewall.schemas import (
    HealthResponse,
    MessageCreateRequest,
    MessageCreatedResponse,
    MessageListResponse,
    MessageRecord,
)
from messagewall.storage import (
    check_db_health,
    create_engine_for,
    create_message,
    create_session_factory,
    get_db,
    init_db,
    list_messages,
)
from messagewall.utils import clamp, now_ms, parse_int
from messagewall.validation import MISSING, validate_new_message

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# Keeps (page - 1) * pageSize inside SQLite's signed 64-bit INTEGER
MAX_PAGE = (2**63 - 1) // MAX_PAGE_SIZE


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - Startup: open the process-wide engine and create the schema
    - Shutdown: dispose of the engine
    """
    settings: Settings = app.state.settings
    engine = create_engine_for(settings.DATABASE_URL)
    await init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    logger.info(f"API listening on port {settings.PORT}, CORS origin {settings.CORS_ORIGIN}")
    yield
    await engine.dispose()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clock(request: Request) -> Callable[[], int]:
    return request.app.state.clock


def _pagination(page: Optional[str], page_size: Optional[str]) -> tuple[int, int]:
    """Return (limit, offset) from raw page/pageSize query values."""
    page_number = clamp(parse_int(page, 1), 1, MAX_PAGE)
    size = clamp(parse_int(page_size, DEFAULT_PAGE_SIZE), 1, MAX_PAGE_SIZE)
    return size, (page_number - 1) * size


def _is_json(request: Request) -> bool:
    media_type = request.headers.get("content-type", "").split(";")[0]
    return media_type.strip().lower() == "application/json"


async def _read_body(request: Request, limit: int) -> bytes:
    """
    Read the request body, giving up as soon as it is known to exceed ``limit``.

    Raises:
        PayloadTooLarge: declared Content-Length or bytes received are over the limit
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge()

    received = bytearray()
    async for chunk in request.stream():
        received.extend(chunk)
        if len(received) > limit:
            raise PayloadTooLarge()
    return bytes(received)


def _kind_filter(raw: Optional[str], default: str) -> Optional[str]:
    """Lower-cased kind filter; None means every kind."""
    kind = (raw or default).lower()
    return None if kind == "all" else kind


def create_app(settings: Optional[Settings] = None, clock: Optional[Callable[[], int]] = None) -> FastAPI:
    """
    Build the API.

    Args:
        settings: Configuration; read from the environment when omitted
        clock: Millisecond clock shared by the rate limiter and created_at
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Message Wall API",
        description="Anonymous wall messages and small notes",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.clock = clock or now_ms
    app.state.rate_limiter = CooldownRateLimiter(interval_ms=settings.POST_INTERVAL_MS)

    # Last added runs first: CORS -> request logging -> identity
    app.add_middleware(
        IdentityMiddleware,
        cookie_name=settings.COOKIE_NAME,
        max_age=settings.COOKIE_MAX_AGE_SECONDS,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CORS_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:

    # =========================================================================
    # Health Check Routes
    # =========================================================================

    @app.get("/api/health", response_model=HealthResponse, response_model_exclude_none=True)
    async def health() -> HealthResponse:
        """Liveness check - always ok once the app is running."""
        return HealthResponse(ok=True)

    @app.get("/api/health/ready", response_model=HealthResponse, response_model_exclude_none=True)
    async def health_ready(request: Request, response: Response) -> HealthResponse:
        """
        Readiness check - 200 only if the database is reachable and the
        messages table exists, 503 otherwise.
        """
        if not await check_db_health(request.app.state.session_factory):
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return HealthResponse(ok=False, reason="Database not reachable or schema not applied")
        return HealthResponse(ok=True)

    # =========================================================================
    # Listing Routes
    # =========================================================================

    @app.get("/api/messages", response_model=MessageListResponse)
    async def list_public_messages(
        kind: Annotated[Optional[str], Query(alias="type", description="wall (default), note or all")] = None,
        page: Annotated[Optional[str], Query(description="1-based page number")] = None,
        page_size: Annotated[Optional[str], Query(alias="pageSize", description="1-100, default 20")] = None,
        db: AsyncSession = Depends(get_db),
    ) -> MessageListResponse:
        """
        Recent messages from everyone, newest first.

        Query Parameters:
            - type: wall (default), note, or all for both kinds
            - page: page number, at least 1 (default 1)
            - pageSize: clamped into 1-100 (default 20)
        """
        limit, offset = _pagination(page, page_size)
        kind_filter = _kind_filter(kind, "wall")

        messages = await list_messages(db, limit=limit, offset=offset, kind=kind_filter)

        logger.info(f"GET /api/messages: returned {len(messages)} (kind={kind_filter}, limit={limit}, offset={offset})")
        return MessageListResponse(items=[MessageRecord.model_validate(m) for m in messages])

    @app.get("/api/my-messages", response_model=MessageListResponse)
    async def list_my_messages(
        kind: Annotated[Optional[str], Query(alias="type", description="all (default), wall or note")] = None,
        page: Annotated[Optional[str], Query(description="1-based page number")] = None,
        page_size: Annotated[Optional[str], Query(alias="pageSize", description="1-100, default 20")] = None,
        identity: Identity = Depends(get_identity),
        db: AsyncSession = Depends(get_db),
    ) -> MessageListResponse:
        """
        The caller's own messages, newest first. Same parameters as
        GET /api/messages except that type defaults to all.
        """
        limit, offset = _pagination(page, page_size)
        kind_filter = _kind_filter(kind, "all")

        messages = await list_messages(
            db, limit=limit, offset=offset, kind=kind_filter, identity=identity.token
        )

        logger.info(f"GET /api/my-messages: returned {len(messages)} (kind={kind_filter}, limit={limit}, offset={offset})")
        return MessageListResponse(items=[MessageRecord.model_validate(m) for m in messages])

    # =========================================================================
    # Create Route
    # =========================================================================

    @app.post(
        "/api/messages",
        response_model=MessageCreatedResponse,
        responses={
            400: {"description": "bad_content, bad_type, too_long or invalid_json"},
            413: {"description": "payload_too_large"},
            429: {"description": "too_frequent"},
            500: {"description": "db_error"},
        },
    )
    async def post_message(
        request: Request,
        identity: Identity = Depends(get_identity),
        rate_limiter: CooldownRateLimiter = Depends(get_rate_limiter),
        settings: Settings = Depends(get_app_settings),
        clock: Callable[[], int] = Depends(get_clock),
        db: AsyncSession = Depends(get_db),
    ) -> MessageCreatedResponse:
        """
        Post a wall message or a note.

        Body: {"content": str, "type": "wall" | "note", "nickname": str}

        Only application/json bodies are read; any other body counts as {}.
        Checks run in a fixed order and stop at the first failure:
        rate limit, content, type, length. The rate-limit slot is taken
        as soon as the rate-limit check passes.
        """
        body_dict = {}
        raw_body = b""
        if _is_json(request):
            raw_body = await _read_body(request, settings.MAX_BODY_BYTES)
        if raw_body.strip():
            try:
                body_dict = json.loads(raw_body)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Invalid JSON: {e}")
                raise InvalidJson()
        if not isinstance(body_dict, dict):
            body_dict = {}
        payload = MessageCreateRequest.model_validate(body_dict)

        now = clock()
        if not rate_limiter.check(identity.token, now):
            raise TooFrequent()

        new_message = validate_new_message(
            payload.content,
            payload.kind if "kind" in payload.model_fields_set else MISSING,
            payload.nickname,
            default_nickname=settings.DEFAULT_NICKNAME,
        )

        message = await create_message(
            db,
            identity=identity.token,
            nickname=new_message.nickname,
            content=new_message.content,
            kind=new_message.kind.value,
            created_at=now,
        )

        record_create_outcome("created")
        log_create_data(request, result="created", message_id=message.id)
        return MessageCreatedResponse(id=message.id, created_at=message.created_at)

    # =========================================================================
    # Metrics Route
    # =========================================================================

    @app.get("/metrics")
    async def metrics() -> Response:
        """Expose Prometheus-style metrics."""
        return Response(
            content=get_metrics(),
            media_type=get_metrics_content_type()
        )


app = create_app()
