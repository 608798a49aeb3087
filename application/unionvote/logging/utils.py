"""
Logger factories for the union vote service
"""
import atexit
import logging

from unionvote.logging.config import LoggingConfig
from unionvote.logging.handlers import get_app_handler, get_audit_handler, get_local_file_handler, flush_handlers
from unionvote.logging.filters import RequestContextFilter, VotingContextFilter


def get_app_logger(name: str = 'unionvote'):
    logger = logging.getLogger(name)
    if not logger.handlers:
        # shared Firehose buffer, or one local file per module
        handler = get_app_handler() if LoggingConfig.FIREHOSE_ENABLED else get_local_file_handler(name.replace('.', '_'))
        handler.addFilter(RequestContextFilter())
        handler.addFilter(VotingContextFilter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def init_audit_logger():
    logger = logging.getLogger('unionvote.audit')
    if not logger.handlers:
        handler = get_audit_handler()
        handler.addFilter(RequestContextFilter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def initialize_logging():
    is_valid, message = LoggingConfig.is_valid_config()
    if not is_valid:
        print(f"Warning: {message}")
    atexit.register(flush_handlers)
    print("Logging system initialized (union vote)")
