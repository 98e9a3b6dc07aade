import functools
import re
import time
import unicodedata
from typing import Callable, Iterator, Tuple

from nisync.logging_config import create_logger

# Norwegian letters without an NFKD decomposition
_TRANSLITERATION = str.maketrans(
    {"æ": "ae", "Æ": "Ae", "ø": "o", "Ø": "O", "å": "aa", "Å": "Aa"}
)


def _backoff_delays(delay: float, backoff: float, count: int) -> Iterator[float]:
    for _ in range(count):
        yield delay
        delay *= backoff


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[type, ...] = (Exception,),
) -> Callable:
    """
    Retry decorator with exponential backoff.

    Only for reads: an overwrite is never retried automatically.

    :param max_attempts: Total number of calls before giving up
    :param delay: Wait before the first retry, in seconds
    :param backoff: Factor applied to the wait after each retry
    :param exceptions: Exception types that trigger a retry
    :return: Decorated function
    """

    def decorator(func: Callable) -> Callable:
        logger = create_logger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            waits = _backoff_delays(delay, backoff, max_attempts - 1)
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    wait = next(waits, None)
                    if wait is None:
                        logger.error(f"{func.__name__} gave up after {attempt} attempts: {e}")
                        raise
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_attempts} failed ({e}), "
                        f"retrying in {wait:g}s"
                    )
                    time.sleep(wait)
                    attempt += 1

        return wrapper

    return decorator


def standardize_name(name: str) -> str:
    """Standardize an indicator name for use as a storage key.

    Æ, ø and å are transliterated and other accents dropped before every
    remaining character outside [a-zA-Z0-9_] becomes an underscore, so
    "Rødrev" and "Rådrev" map to different keys.

    Args:
        name: Indicator name

    Returns:
        Lowercase ASCII storage key
    """
    ascii_name = (
        unicodedata.normalize("NFKD", name.strip().translate(_TRANSLITERATION))
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    return re.sub(r"[^a-zA-Z0-9_]", "_", ascii_name).lower()
