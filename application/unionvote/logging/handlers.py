"""
Logging handlers: buffered Kinesis Firehose delivery with a local-file fallback.
"""
import logging
import os
import time
from logging.handlers import MemoryHandler

import boto3
from botocore.config import Config

from unionvote.logging.config import LoggingConfig
from unionvote.logging.formatters import AppLogsJSONFormatter, AuditLogsJSONFormatter


def dbg(msg: str) -> None:
    """Print handler internals when LOG_DEBUG_PRINTS is set"""
    if LoggingConfig.LOG_DEBUG_PRINTS:
        print(msg)


class FireHoseHandler(logging.Handler):
    """Kinesis Firehose sink with exponential-backoff retries"""

    def __init__(self, stream_name: str):
        super().__init__()
        self.stream_name = stream_name
        self.client = boto3.client(
            "firehose",
            region_name=LoggingConfig.FIREHOSE_REGION_NAME,
            aws_access_key_id=LoggingConfig.FIREHOSE_ACCESS_KEY_ID,
            aws_secret_access_key=LoggingConfig.FIREHOSE_SECRET_ACCESS_KEY,
            config=Config(connect_timeout=10, read_timeout=30, retries={"max_attempts": 2}),
        )
        self.retry_count = LoggingConfig.FIREHOSE_RETRY_COUNT
        self.retry_delay = LoggingConfig.FIREHOSE_RETRY_DELAY

    def emit(self, record):
        self.bulk_insert([{"Data": self.format(record)}])

    def bulk_insert(self, records) -> bool:
        if not records:
            return True

        for attempt in range(self.retry_count):
            try:
                response = self.client.put_record_batch(DeliveryStreamName=self.stream_name, Records=records)
                failed = response.get("FailedPutCount", 0)
                dbg(f"[Firehose:{self.stream_name}] attempt={attempt + 1} total={len(records)} failed={failed}")
                if failed == 0:
                    return True
            except Exception as e:  # noqa: BLE001
                dbg(f"[Firehose:{self.stream_name}] attempt={attempt + 1} error={e}")
            if attempt < self.retry_count - 1:
                time.sleep(self.retry_delay * (2 ** attempt))
        return False


class BufferedFirehoseHandler(MemoryHandler):
    """Flushes to Firehose on capacity or when the buffer gets older than LOG_BUFFER_TIMEOUT"""

    def __init__(self, stream_name: str, capacity: int, formatter: logging.Formatter):
        target = FireHoseHandler(stream_name)
        target.setFormatter(formatter)
        super().__init__(capacity=capacity, target=target)
        self.setFormatter(formatter)
        self.stream_name = stream_name
        self.last_flush = time.time()

    def shouldFlush(self, record):
        expired = time.time() - self.last_flush >= LoggingConfig.LOG_BUFFER_TIMEOUT
        return expired or len(self.buffer) >= self.capacity

    def flush(self):
        self.acquire()
        try:
            if self.target and self.buffer:
                records = [{"Data": self.format(record)} for record in self.buffer]
                ok = self.target.bulk_insert(records)
                dbg(f"[Buffer:{self.stream_name}] flushed count={len(records)} ok={ok}")
                self.buffer.clear()
                self.last_flush = time.time()
        finally:
            self.release()


_handlers = {}


def get_local_file_handler(name: str = 'app'):
    os.makedirs(LoggingConfig.LOG_DIR, exist_ok=True)
    handler = logging.FileHandler(os.path.join(LoggingConfig.LOG_DIR, f'{name}.log'))
    formatter = AuditLogsJSONFormatter() if name.startswith('audit') else AppLogsJSONFormatter()
    handler.setFormatter(formatter)
    return handler


def get_app_handler():
    if not LoggingConfig.FIREHOSE_ENABLED:
        return get_local_file_handler('app')
    if 'app' not in _handlers:
        stream = LoggingConfig.APP_LOGS_STREAM_NAME or 'union-vote-app-logs'
        _handlers['app'] = BufferedFirehoseHandler(stream, LoggingConfig.APP_LOGS_CAPACITY, AppLogsJSONFormatter())
    return _handlers['app']


def get_audit_handler():
    if not LoggingConfig.FIREHOSE_ENABLED:
        return get_local_file_handler('audit_logs')
    if 'audit' not in _handlers:
        stream = LoggingConfig.AUDIT_LOGS_STREAM_NAME or 'union-vote-audit-logs'
        _handlers['audit'] = BufferedFirehoseHandler(stream, LoggingConfig.AUDIT_LOGS_CAPACITY, AuditLogsJSONFormatter())
    return _handlers['audit']


def flush_handlers():
    for handler in _handlers.values():
        handler.flush()
