"""
RecipeHub Backend — Cloudinary Media Backend
==============================================

What:  Uploads and destroys recipe images on Cloudinary.
How:   Signed calls to Cloudinary's REST upload API through httpx, wrapped in
       tenacity retries (transient errors only) and a circuit breaker.

API calls:
    POST {api_base}/{cloud_name}/image/upload
        file, api_key, timestamp, folder, public_id, signature
    POST {api_base}/{cloud_name}/image/destroy
        public_id, api_key, timestamp, signature

Signature:
    cloudinary.utils.api_sign_request over every parameter except
    file/api_key/resource_type/cloud_name (SHA-1 of the sorted query + secret).

Public reference:
    https://res.cloudinary.com/<cloud>/image/upload/v171/recipehub/abc.jpg
    → "recipehub/abc" (folder + basename without extension)

Error Handling Chain:
    Transport error or 5xx → tenacity retries with exponential backoff
    → retries exhausted → record circuit breaker failure → MediaServiceError
    4xx → no retry → MediaServiceError
    Circuit breaker OPEN → CircuitBreakerOpenError without a network call
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
from cloudinary.utils import api_sign_request
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from recipehub.config import settings
from recipehub.exceptions import CircuitBreakerOpenError, MediaServiceError
from recipehub.services.circuit_breaker import CircuitBreaker
from recipehub.services.media_base import MediaBackend

logger = logging.getLogger(__name__)

_UNSIGNED_PARAMS = {"file", "api_key", "resource_type", "cloud_name"}


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 or exc.response.status_code == 429
    return False


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Cloudinary request signature for `params`."""
    to_sign = {
        key: value
        for key, value in params.items()
        if key not in _UNSIGNED_PARAMS and value not in (None, "")
    }
    return api_sign_request(to_sign, api_secret)


class CloudinaryMediaBackend(MediaBackend):

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        folder: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.cloud_name = cloud_name or settings.cloudinary_cloud_name
        self.api_key = api_key or settings.cloudinary_api_key
        self.api_secret = api_secret or settings.cloudinary_api_secret
        self.folder = folder or settings.media_folder
        self.base_url = f"{settings.cloudinary_api_base.rstrip('/')}/{self.cloud_name}/image"
        self._transport = transport

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "CloudinaryMediaBackend initialized for cloud=%s folder=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.cloud_name,
            self.folder,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    def public_ref(self, url: str) -> str:
        basename = urlparse(url).path.rsplit("/", 1)[-1]
        stem = basename.split(".", 1)[0]
        return f"{self.folder}/{stem}"

    def is_available(self) -> bool:
        return self.circuit_breaker.state != CircuitBreaker.OPEN

    async def upload(self, content: bytes, extension: str, content_type: str) -> str:
        self.circuit_breaker.can_execute()

        params = self._signed({"folder": self.folder, "public_id": uuid.uuid4().hex})
        try:
            body = await self._post_with_retry(
                "upload",
                data=params,
                files={"file": (f"{params['public_id']}{extension}", content, content_type)},
            )
        except CircuitBreakerOpenError:
            raise
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error("Cloudinary upload failed: %s", str(e))
            raise MediaServiceError(
                message="Image upload failed. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        url = body.get("secure_url") or body.get("url")
        if not url:
            raise MediaServiceError(
                message="Image host returned no URL for the uploaded image.",
                context={"public_id": body.get("public_id")},
            )
        logger.info("Image uploaded to Cloudinary: %s", body.get("public_id"))
        return url

    async def destroy(self, url: str) -> None:
        self.circuit_breaker.can_execute()
        public_id = self.public_ref(url)
        try:
            body = await self._post_with_retry("destroy", data=self._signed({"public_id": public_id}))
        except Exception:
            self.circuit_breaker.record_failure()
            raise
        self.circuit_breaker.record_success()
        logger.info("Deleted image from Cloudinary: %s (%s)", public_id, body.get("result"))

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=(
            wait_exponential(multiplier=settings.retry_min_wait, max=settings.retry_max_wait)
            + wait_random(0, settings.retry_min_wait)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, action: str, **kwargs: Any) -> Dict[str, Any]:
        start_time = time.time()
        async with httpx.AsyncClient(
            timeout=settings.media_timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(f"{self.base_url}/{action}", **kwargs)
        duration_ms = (time.time() - start_time) * 1000
        logger.debug("Cloudinary %s -> %d in %.0fms", action, response.status_code, duration_ms)
        response.raise_for_status()
        return response.json()
