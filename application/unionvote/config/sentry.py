import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

# Logger
from unionvote.logging.utils import get_app_logger
logger = get_app_logger("sentry")

# Settings
from unionvote.config.settings import VotingConfigs


def init_sentry() -> bool:
    """Initialize Sentry SDK when SENTRY_ENABLED and a DSN are configured."""
    configs = VotingConfigs()

    if not configs.SENTRY_ENABLED:
        logger.info("Sentry monitoring is disabled")
        return False

    if not configs.SENTRY_DSN:
        logger.warning("SENTRY_ENABLED is true but SENTRY_DSN is not configured")
        return False

    sentry_sdk.init(
        dsn=configs.SENTRY_DSN,
        environment=configs.ENVIRONMENT,
        release=configs.SENTRY_RELEASE,
        traces_sample_rate=float(configs.SENTRY_TRACES_SAMPLE_RATE),
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR
            ),
        ],
        # Phone numbers are personal data
        send_default_pii=False,
        attach_stacktrace=True,
    )
    logger.info(f"sentry_initialized | environment={configs.ENVIRONMENT} release={configs.SENTRY_RELEASE}")
    return True


def capture_exception(exc: Exception) -> None:
    """Report an exception; a no-op when Sentry was never initialised."""
    sentry_sdk.capture_exception(exc)


def add_breadcrumb(message: str, category: str, level: str = "info", data: dict | None = None) -> None:
    sentry_sdk.add_breadcrumb(message=message, category=category, level=level, data=data or {})
