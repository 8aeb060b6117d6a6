"""
Vision service HTTP client

Handles communication with the vision analysis endpoint including:
- Retry logic for timeouts and transient HTTP errors
- Passing the service's error message through unmodified
"""

import time
from typing import Any, Callable, Dict, Optional

import requests
from loguru import logger

from ..config import VisionServiceConfig, get_config
from ..errors import MalformedResponse, ServiceError
from ..models import VisionRequest

RETRY_STATUS_CODES = (429, 502, 503, 504)


class VisionServiceClient:
    """Client for the vision analysis service"""

    def __init__(
        self,
        service_config: Optional[VisionServiceConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.config = service_config or get_config().vision
        self.session = session or requests.Session()
        self._sleep = sleep

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def analyze(self, request: VisionRequest) -> Dict[str, Any]:
        """
        Post an analysis request with retry logic

        Args:
            request: Request body (serialized with camelCase keys)

        Returns:
            Decoded JSON body of a successful response

        Raises:
            ServiceError: on non-2xx status, an `error` field, or when all
                retries fail
            MalformedResponse: if a 2xx body is not a JSON object
        """
        url = self.config.analyze_url
        max_retries = self.config.max_retries
        headers = {
            "User-Agent": self.config.user_agent,
            "Content-Type": "application/json",
        }
        body = request.to_wire()

        logger.info(f"Requesting {request.type} analysis from {url}")
        for attempt in range(max_retries):
            wait_time = self.config.retry_delay * (attempt + 1)
            last_attempt = attempt >= max_retries - 1
            try:
                response = self.session.post(
                    url, json=body, headers=headers, timeout=self.config.request_timeout
                )
            except requests.exceptions.Timeout as e:
                if last_attempt:
                    logger.error(f"Vision service timed out after {max_retries} attempts")
                    raise ServiceError(f"Vision service timed out after {max_retries} attempts") from e
                logger.warning(f"Vision service timeout (attempt {attempt + 1}/{max_retries}). Retrying in {wait_time}s...")
                self._sleep(wait_time)
                continue
            except requests.exceptions.RequestException as e:
                if last_attempt:
                    logger.error(f"Vision service request failed after {max_retries} attempts: {e}")
                    raise ServiceError(f"Vision service request failed: {e}") from e
                logger.warning(f"Vision service request failed (attempt {attempt + 1}): {e}")
                self._sleep(wait_time)
                continue

            if response.status_code in RETRY_STATUS_CODES and not last_attempt:
                logger.warning(f"Vision service {response.status_code} (attempt {attempt + 1}/{max_retries}). Retrying in {wait_time}s...")
                self._sleep(wait_time)
                continue

            return self._handle_response(response)

        raise ServiceError(f"Vision service request failed after {max_retries} attempts")

    @staticmethod
    def _handle_response(response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not 200 <= response.status_code < 300:
            message = None
            if isinstance(payload, dict) and payload.get("error"):
                message = str(payload["error"])
            message = message or f"Vision service returned HTTP {response.status_code}"
            logger.error(f"Vision analysis failed: {message}")
            raise ServiceError(message, response.status_code)

        if not isinstance(payload, dict):
            raise MalformedResponse("Vision service response is not a JSON object")

        if payload.get("error"):
            message = str(payload["error"])
            logger.error(f"Vision analysis failed: {message}")
            raise ServiceError(message, response.status_code)

        return payload
