"""Deadline + error mapping for blocking calls to the model server"""
import asyncio
import logging
from typing import Any, Callable

import requests

from config import settings
from core.exceptions import UpstreamFailure, UpstreamTimeout

logger = logging.getLogger(settings.LOGGER_NAME)


async def call_upstream(func: Callable[..., Any], *args: Any, timeout: float, operation: str) -> Any:
    """
    Run a blocking HTTP call in a worker thread under an asyncio deadline.

    Raises:
        UpstreamTimeout: deadline expired (asyncio or requests timeout)
        UpstreamFailure: connection refused, HTTP error status, other request errors
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"{operation} exceeded the {timeout}s deadline.")
        raise UpstreamTimeout(f"{operation} timed out after {timeout}s") from e
    except requests.exceptions.Timeout as e:
        logger.error(f"{operation} request timed out after {timeout}s.")
        raise UpstreamTimeout(f"{operation} timed out after {timeout}s") from e
    except requests.exceptions.ConnectionError as e:
        logger.error(f"{operation}: cannot connect to model server. Is the service running?")
        raise UpstreamFailure(f"{operation}: cannot connect to model server") from e
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "?"
        logger.error(f"{operation}: model server returned HTTP {status}")
        raise UpstreamFailure(f"{operation}: model server error {status}") from e
    except requests.exceptions.RequestException as e:
        logger.error(f"{operation} failed: {e}")
        raise UpstreamFailure(f"{operation} failed: {e}") from e
