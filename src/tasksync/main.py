"""FastAPI application entry point for GitHub webhook synchronization.

Receives signed GitHub webhook deliveries, applies them to tasks, and
pushes task changes caused by commits back to GitHub after the delivery
has been acknowledged.

Endpoints:
- POST /webhooks/github: Signed webhook receiver
- GET /health: Liveness probe
- GET /ready: Readiness probe (store connectivity, GitHub reachability)
- GET /metrics: Prometheus metrics
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from tasksync.config import SyncSettings, get_settings
from tasksync.errors import BadRequestError, SyncError, UnauthorizedError
from tasksync.events.metrics import SyncMetrics, get_metrics
from tasksync.github.client import GitHubClient
from tasksync.github.notifier import GitHubTaskPublisher, TaskNotifier
from tasksync.store.memory import InMemorySyncStore
from tasksync.store.postgres import PostgresSyncStore
from tasksync.store.repository import DatabaseError, SyncStore
from tasksync.sync.installations import InstallationLifecycleManager
from tasksync.sync.issues import IssueSyncHandler
from tasksync.sync.pulls import PullRequestSyncHandler
from tasksync.sync.push import PushSyncHandler
from tasksync.webhook.dispatcher import EventDispatcher
from tasksync.webhook.signature import parse_payload, verify_signature

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if not value:
        return "<unset>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: SyncSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Sync configuration:")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  GitHub Token: {_redact_secret(settings.github_token)}")
    logger.info(
        f"  GitHub Webhook Secret: {_redact_secret(settings.github_webhook_secret)}"
    )
    logger.info(f"  Database URL: {_redact_secret(settings.database_url, 13)}")
    logger.info(f"  System User ID: {settings.system_user_id}")
    logger.info(f"  Notify Timeout Seconds: {settings.notify_timeout_seconds}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def build_dispatcher(
    store: SyncStore,
    settings: SyncSettings,
    metrics: Optional[SyncMetrics] = None,
) -> EventDispatcher:
    """Wire the sync handlers around one store.

    The store doubles as the project membership capability; both store
    implementations answer is_project_member.
    """
    installations = InstallationLifecycleManager(store)
    return EventDispatcher(
        issues=IssueSyncHandler(
            store, store, installations, system_user_id=settings.system_user_id
        ),
        pulls=PullRequestSyncHandler(store, store, installations),
        push=PushSyncHandler(store),
        installations=installations,
        metrics=metrics,
    )


def _wire(
    app: FastAPI,
    settings: SyncSettings,
    store: SyncStore,
    notifier: Optional[TaskNotifier],
    metrics: SyncMetrics,
) -> None:
    app.state.settings = settings
    app.state.store = store
    app.state.metrics = metrics
    app.state.github_client = None
    if notifier is None:
        app.state.github_client = GitHubClient(
            token=settings.github_token,
            base_url=settings.github_base_url,
        )
        notifier = TaskNotifier(
            GitHubTaskPublisher(store, app.state.github_client),
            timeout=settings.notify_timeout_seconds,
            metrics=metrics,
        )
    app.state.notifier = notifier
    app.state.dispatcher = build_dispatcher(store, settings, metrics)


def create_app(
    settings: Optional[SyncSettings] = None,
    store: Optional[SyncStore] = None,
    notifier: Optional[TaskNotifier] = None,
    metrics: Optional[SyncMetrics] = None,
) -> FastAPI:
    """Create the FastAPI application.

    When settings and store are both given the app is wired immediately,
    which is how tests drive it. Otherwise wiring happens at startup from
    the environment: PostgresSyncStore when a database URL is configured,
    InMemorySyncStore otherwise.

    Args:
        settings: Service configuration; read from the environment if None.
        store: Persistence backend.
        notifier: Outbound notifier; built around a GitHubClient if None.
        metrics: Prometheus metrics; the process-wide instance if None.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Task sync starting up...")
        owned_store: Optional[PostgresSyncStore] = None

        if getattr(app.state, "dispatcher", None) is None:
            cfg = settings or get_settings()
            _log_configuration(cfg)

            backend = store
            if backend is None:
                if cfg.database_url:
                    owned_store = PostgresSyncStore(
                        cfg.database_url,
                        min_pool_size=cfg.db_min_pool_size,
                        max_pool_size=cfg.db_max_pool_size,
                    )
                    await owned_store.connect()
                    backend = owned_store
                else:
                    logger.warning(
                        "No database configured, using in-memory store"
                    )
                    backend = InMemorySyncStore()
            _wire(app, cfg, backend, notifier, metrics or get_metrics())

        logger.info("Task sync started successfully")

        yield

        logger.info("Task sync shutting down...")
        if app.state.github_client is not None:
            await app.state.github_client.close()
        if owned_store is not None:
            await owned_store.disconnect()
        logger.info("Task sync shutdown complete")

    app = FastAPI(
        title="Task Sync",
        description="Keeps project tasks in sync with GitHub issues and pull requests",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.dispatcher = None

    if settings is not None and store is not None:
        _wire(app, settings, store, notifier, metrics or get_metrics())

    @app.exception_handler(SyncError)
    async def sync_error_handler(request: Request, exc: SyncError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "detail": exc.message},
        )

    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError):
        logger.error(
            "Database error while handling request",
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=503,
            content={"status": "error", "detail": "storage unavailable"},
        )

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request):
        """Readiness probe endpoint.

        Returns 503 until the app is wired and its store answers a health
        check. GitHub reachability is reported when the app owns a GitHub
        client, but does not gate readiness: outbound notifications never
        fail a delivery.
        """
        state_store = getattr(request.app.state, "store", None)
        healthy = state_store is not None and await state_store.health_check()
        dependencies = {"database": "healthy" if healthy else "unhealthy"}

        github_client: Optional[GitHubClient] = getattr(
            request.app.state, "github_client", None
        )
        if github_client is not None:
            reachable = await github_client.health_check()
            dependencies["github"] = "healthy" if reachable else "unhealthy"

        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "ready" if healthy else "not_ready",
                "dependencies": dependencies,
            },
        )

    @app.get("/metrics")
    async def metrics_endpoint(request: Request):
        """Prometheus metrics endpoint."""
        state_metrics: Optional[SyncMetrics] = getattr(request.app.state, "metrics", None)
        output = (state_metrics or get_metrics()).generate()
        return PlainTextResponse(output, media_type=CONTENT_TYPE_LATEST)

    @app.post("/webhooks/github")
    async def github_webhook(request: Request, background_tasks: BackgroundTasks):
        """GitHub webhook receiver endpoint.

        Verifies the signature over the raw body before parsing it, then
        dispatches the event. Every authenticated delivery is answered with
        200, including deliveries that change nothing. Tasks updated by a
        push are published to GitHub after the response is sent.
        """
        state = request.app.state
        if state.dispatcher is None:
            logger.error("Task sync not initialized")
            return JSONResponse(
                status_code=503,
                content={"status": "error", "detail": "not initialized"},
            )

        body = await request.body()
        event = request.headers.get(EVENT_HEADER, "")

        try:
            verify_signature(
                body,
                request.headers.get(SIGNATURE_HEADER),
                state.settings.github_webhook_secret,
            )
        except UnauthorizedError:
            state.metrics.record_rejection("signature")
            raise

        try:
            payload = parse_payload(body)
            result = await state.dispatcher.dispatch(event, payload)
        except BadRequestError as e:
            logger.warning(
                "Rejected webhook payload",
                extra={"event": event, "error": e.message},
            )
            state.metrics.record_rejection("payload")
            raise

        if result.tasks:
            background_tasks.add_task(state.notifier.notify, result.tasks)

        return {
            "status": result.outcome.value,
            "event": event,
            "detail": result.detail,
        }

    return app


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    logging.getLogger().setLevel(dev_settings.log_level)
    uvicorn.run(
        "tasksync.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
