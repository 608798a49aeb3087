"""
Store selection.

The concrete adapter is chosen from configuration once, at startup; business
code only ever sees ``VotingRepository``.
"""
from unionvote.config.settings import VotingConfigs
from unionvote.connections.database import Database
from unionvote.connections.redis_wrapper import RedisJSONWrapper
from unionvote.repository.base import VotingRepository
from unionvote.repository.redis_repository import RedisVotingRepository
from unionvote.repository.sql_repository import SQLVotingRepository


def create_repository(configs: VotingConfigs) -> VotingRepository:
    backend = configs.STORE_BACKEND
    if backend == "database":
        return SQLVotingRepository(Database(configs.DATABASE_URL, auto_create=configs.DB_AUTO_CREATE))
    if backend == "redis":
        return RedisVotingRepository(RedisJSONWrapper(configs.REDIS_URL, database=configs.REDIS_DB))
    raise ValueError(f"Unsupported STORE_BACKEND: {backend}")


__all__ = ["VotingRepository", "SQLVotingRepository", "RedisVotingRepository", "create_repository"]
