"""
Audit and request logging middleware, one audit record per request.
Authorization headers and one-time codes are masked before they are logged.
"""
import json
import socket
import time
from datetime import datetime

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from unionvote.config.settings import VotingConfigs
from unionvote.logging.config import LoggingConfig
from unionvote.logging.filters import mask_phone_number
from unionvote.logging.utils import get_app_logger, init_audit_logger
from unionvote.middlewares.request_context import clear_request_context, create_request_id, request_context

MASKED_BODY_FIELDS = ('otp_code', 'otp', 'code')


class AuditMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, exclude_paths: list[str] | None = None):
        super().__init__(app)
        configs = VotingConfigs()
        self.logger = get_app_logger('unionvote.requests')
        self.exclude_audit_paths = exclude_paths or ['/health', '/docs', '/redoc', '/openapi.json']
        self.hostname = socket.gethostname()
        self.app_name = configs.APP_NAME
        self.version = configs.APP_VERSION

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = create_request_id()
        start_time = time.time()
        timestamp = datetime.now().isoformat()
        body_bytes = await request.body()

        request_context.request_method = request.method
        request_context.request_path = request.url.path

        should_audit = LoggingConfig.AUDIT_LOGGING_ENABLED and not any(
            request.url.path.startswith(p) for p in self.exclude_audit_paths
        )

        try:
            response = await call_next(request)
            duration = (time.time() - start_time) * 1000
            if should_audit:
                init_audit_logger().info(
                    "Audit log", extra=self._build_audit_data(request, response.status_code, body_bytes, duration, request_id, timestamp)
                )
            response.headers['X-Request-ID'] = request_id
            return response
        except Exception as exc:
            duration = (time.time() - start_time) * 1000
            self.logger.error(
                f"request_failed | method={request.method} path={request.url.path} error={exc.__class__.__name__} duration_ms={duration:.0f}",
                exc_info=True,
            )
            if should_audit:
                audit_data = self._build_audit_data(request, 500, body_bytes, duration, request_id, timestamp)
                audit_data['exception'] = exc.__class__.__name__
                init_audit_logger().info("Audit log (exception)", extra=audit_data)
            raise
        finally:
            clear_request_context()

    @staticmethod
    def _mask_headers(headers) -> dict:
        return {k: ('****' if k.lower() == 'authorization' else v) for k, v in headers.items()}

    @staticmethod
    def _mask_body(body):
        if not isinstance(body, dict):
            return body
        masked = {}
        for key, value in body.items():
            if key in MASKED_BODY_FIELDS:
                masked[key] = '****'
            elif key == 'phone_number' and isinstance(value, str):
                masked[key] = mask_phone_number(value)
            else:
                masked[key] = value
        return masked

    def _parse_body(self, request: Request, body_bytes: bytes):
        if not body_bytes:
            return {}
        if 'application/json' not in request.headers.get('content-type', ''):
            return '<non-json body omitted>'
        try:
            return self._mask_body(json.loads(body_bytes.decode('utf-8')))
        except (UnicodeDecodeError, ValueError):
            return '<unparseable body omitted>'

    def _build_audit_data(self, request: Request, status_code: int, body_bytes: bytes, duration: float, request_id: str, timestamp: str) -> dict:
        return {
            'duration': round(duration, 2),
            'hostname': self.hostname,
            'app_name': self.app_name,
            'request': {
                'GET': dict(request.query_params),
                'BODY': self._parse_body(request, body_bytes),
                'HEADERS': self._mask_headers(dict(request.headers)),
            },
            'request_id': request_id,
            'request_method': request.method,
            'request_path': request.url.path,
            'status_code': status_code,
            'timestamp': timestamp,
            'user_id': request_context.user_id,
            'version': self.version,
        }
