from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from unionvote.config.settings import VotingConfigs
from unionvote.logging.utils import initialize_logging, get_app_logger
from unionvote.integrations import SMSTransport, create_sms_transport
from unionvote.middlewares.handlers import register_exception_handlers
from unionvote.middlewares.logging_middleware import AuditMiddleware
from unionvote.middlewares.session_auth import SessionAuthMiddleware
from unionvote.repository import VotingRepository, create_repository
from unionvote.services.session_slot import SessionSlotFactory

# Initialize Sentry (must be done early, before the app is built)
from unionvote.config.sentry import init_sentry
init_sentry()

# Initialize structured logging
initialize_logging()
logger = get_app_logger('unionvote.main')


def create_app(
    configs: Optional[VotingConfigs] = None,
    repository: Optional[VotingRepository] = None,
    transport: Optional[SMSTransport] = None,
) -> FastAPI:
    """
    Build the application. Store, transport and session slots are created at
    startup and closed at shutdown; injected ones are used as given.
    """
    configs = configs or VotingConfigs()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {configs.APP_NAME} | store={configs.STORE_BACKEND} sessions={configs.SESSION_BACKEND} debug={configs.DEBUG}")
        app.state.configs = configs
        app.state.repository = repository or create_repository(configs)
        app.state.transport = transport or create_sms_transport(configs)
        app.state.slot_factory = SessionSlotFactory(configs)
        app.state.slot_factory.purge_expired()
        try:
            yield
        finally:
            logger.info(f"Shutting down {configs.APP_NAME}")
            await app.state.transport.close()
            app.state.slot_factory.close()
            app.state.repository.close()

    # Disable docs in production (when DEBUG=false)
    app = FastAPI(
        title="Union Vote",
        version=configs.APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if configs.DEBUG else None,
        redoc_url="/redoc" if configs.DEBUG else None,
    )

    if configs.ALLOWED_ORIGINS:
        origins = [origin.strip() for origin in configs.ALLOWED_ORIGINS.split(",")]
    else:
        origins = ["*"]

    # Outermost last: CORS -> audit -> session auth
    app.add_middleware(SessionAuthMiddleware)
    app.add_middleware(AuditMiddleware)
    logger.info(f"Configuring CORS with allowed origins: {origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    from unionvote.routes.auth_otp import router as auth_otp_router
    from unionvote.routes.ballots import router as ballots_router
    from unionvote.routes.health import router as health_router
    from unionvote.routes.members import router as members_router
    from unionvote.routes.session import router as session_router

    app.include_router(auth_otp_router, prefix="/auth")
    app.include_router(session_router, prefix="/session")
    app.include_router(ballots_router, prefix="/votes")
    app.include_router(members_router, prefix="/members")
    app.include_router(health_router, tags=["health"])
    return app


app = create_app()
