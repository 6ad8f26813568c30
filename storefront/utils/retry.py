# storefront/utils/retry.py
import logging

import redis
import requests
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# an HTTP status is an answer, not a flake: only failures to get one are retried
TRANSIENT_HTTP_ERRORS = (requests.ConnectionError, requests.Timeout)


def http_retry(attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(TRANSIENT_HTTP_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def redis_retry(attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
