import redis

from trainer.core.config import Settings


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.Redis.from_url(settings.get_redis_url(), decode_responses=True)
