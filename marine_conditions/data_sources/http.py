"""Shared HTTP session and translation of transport failures into FetchErrors."""
from __future__ import annotations

import re
from typing import Any, Mapping

import requests
from retry_requests import retry

from marine_conditions.errors import (
    DecodingError,
    FetchError,
    InvalidLocationError,
    NetworkError,
    NoDataAvailableError,
    ServerError,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/http")

RETRY_STATUS_CODES = (500, 502, 504)

_RETRY_STATUS_RE = re.compile(r"too many (\d{3}) error responses")


def build_session(retries: int = 3, backoff_factor: float = 0.2) -> requests.Session:
    """Session that retries transient failures and hands the final response back.

    With `raise_on_status=False` the last 5xx response after the retries run
    out reaches `raise_for_status()`, so its status code is kept.
    """
    return retry(
        requests.Session(),
        retries=retries,
        backoff_factor=backoff_factor,
        status_to_retry=RETRY_STATUS_CODES,
        raise_on_status=False,
    )


session = build_session()

DEFAULT_TIMEOUT_SECONDS = 10.0


def error_for_status(status_code: int, message: str | None = None) -> FetchError:
    """Map an API status code to the matching FetchError."""
    if status_code == 400:
        return InvalidLocationError(message or "Invalid location provided")
    if status_code == 404:
        return NoDataAvailableError(message or "No data available for this location")
    return ServerError(status_code, message)


def get_json(
    url: str,
    params: Mapping[str, Any],
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    context: str = "",
) -> Any:
    """GET `url` and decode the JSON body, raising FetchError subclasses on failure."""
    try:
        resp = session.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else 0
        logger.warning("HTTP error from remote API", extra={"context": context, "status": status})
        raise error_for_status(status) from exc
    except requests.exceptions.RetryError as exc:
        # status retries exhausted inside the adapter
        match = _RETRY_STATUS_RE.search(str(exc))
        status = int(match.group(1)) if match else 500
        logger.warning("Retries exhausted on remote API", extra={"context": context, "status": status})
        raise ServerError(status) from exc
    except (requests.ConnectionError, requests.Timeout) as exc:
        logger.warning("Network error calling remote API", extra={"context": context, "error": str(exc)})
        raise NetworkError(str(exc)) from exc
    except ValueError as exc:
        logger.warning("Could not decode remote API response", extra={"context": context, "error": str(exc)})
        raise DecodingError(str(exc)) from exc
    except requests.RequestException as exc:
        raise NetworkError(str(exc)) from exc
