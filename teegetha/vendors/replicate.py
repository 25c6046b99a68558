"""
Replicate background removal (rembg) adapter.

Creates a prediction and polls it at a fixed interval until it succeeds,
fails, or the timeout elapses. There is no retry: a failed or timed-out
prediction is reported to the caller.
"""

import time
from typing import Any, Callable, Dict, Optional

import httpx
from loguru import logger

from teegetha.errors import BackgroundRemovalError, ConfigurationError, VendorAuthorizationError


class ReplicateBackgroundRemover:
    """Client for the Replicate predictions API running a rembg model version."""

    BASE_URL = "https://api.replicate.com/v1"

    def __init__(self, api_key: Optional[str], model_version: Optional[str],
                 poll_interval: float = 1.5, timeout: float = 60.0,
                 transport: Optional[httpx.BaseTransport] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.api_key = api_key
        self.model_version = model_version
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self._session = httpx.Client(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Token {api_key or ''}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(30.0),
            transport=transport,
        )

    def close(self) -> None:
        self._session.close()

    def _check_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("BACKGROUND_REMOVAL_API_KEY is not set")
        if not self.model_version:
            raise ConfigurationError("BACKGROUND_REMOVAL_MODEL_VERSION is not set")

    def _create_prediction(self, image: str) -> Dict[str, Any]:
        try:
            response = self._session.post(
                "/predictions",
                json={"version": self.model_version, "input": {"image": image}},
            )
        except httpx.HTTPError as e:
            raise BackgroundRemovalError(f"Replicate create failed: {e}")

        if response.status_code in (401, 403):
            raise VendorAuthorizationError('replicate', f"Replicate rejected credentials: {response.status_code}")
        if response.is_error:
            raise BackgroundRemovalError(f"Replicate create failed: {response.status_code} {response.text}")

        try:
            prediction = response.json()
        except ValueError:
            raise BackgroundRemovalError(f"Replicate create returned non-JSON body: {response.text[:200]}")
        if not isinstance(prediction, dict):
            raise BackgroundRemovalError(f"Unexpected Replicate create response: {prediction!r}")
        return prediction

    def _poll(self, status_url: str) -> Any:
        started = self._clock()
        while True:
            try:
                response = self._session.get(status_url)
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise BackgroundRemovalError(f"Replicate poll failed: {e}")
            if not isinstance(data, dict):
                raise BackgroundRemovalError(f"Unexpected Replicate poll response: {data!r}")

            status = data.get("status")
            if status == "succeeded":
                return data.get("output")
            if status in ("failed", "canceled"):
                raise BackgroundRemovalError(f"Replicate prediction failed with status {status}", status=status)

            if self._clock() - started > self.timeout:
                raise BackgroundRemovalError("Replicate prediction timeout", status=status)

            self._sleep(self.poll_interval)

    def remove_background(self, image: str) -> str:
        """
        Remove the background of ``image`` (data URL or http URL).

        Returns the URL of the cleaned PNG.
        """
        self._check_configured()
        prediction = self._create_prediction(image)

        urls = prediction.get("urls")
        status_url = urls.get("get") if isinstance(urls, dict) else None
        if not status_url:
            raise BackgroundRemovalError("Replicate response missing status URL")

        output = self._poll(status_url)
        # Model outputs a single URL string or [url]
        if isinstance(output, list):
            output = output[0] if output else None
        if not output:
            raise BackgroundRemovalError("Replicate prediction returned no output")

        logger.info(f"Background removed via Replicate prediction {prediction.get('id')}")
        return output

    def __enter__(self) -> "ReplicateBackgroundRemover":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()
