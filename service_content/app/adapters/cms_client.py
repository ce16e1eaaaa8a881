"""
Headless-CMS client acting as the content fetch collaborator.
"""

from typing import Any, Dict, Mapping, Optional

import httpx

from shared.errors import ContentFetchError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, call_with_retry


class _RetryableStatus(Exception):
    """A 5xx/429 answer worth another attempt."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Unexpected status {status_code}")
        self.status_code = status_code
        self.body = body


class CMSContentClient:
    """Fetches localized bundles from the CMS REST API.

    ``GET {base_url}/api/{namespace}?locale={language}&fallback-locale=none``.
    The CMS's own locale fallback is disabled so that fallback stays a
    decision of the resolver. Collection responses (``{"docs": [...]}``)
    yield their first document; anything else must be a JSON object.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig(max_attempts=3, base_delay=0.25, max_delay=5.0)
        self.logger = get_logger("content.cms_client")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def fetch_content(self, namespace: str, language: str) -> Optional[Dict[str, Any]]:
        """Return the bundle, or None when the CMS has nothing for this pair."""
        try:
            return await call_with_retry(
                self._request,
                namespace,
                language,
                config=self.retry_config,
                exceptions=(httpx.TransportError, _RetryableStatus),
                operation="cms_fetch_content",
            )
        except RetryError as exc:
            cause = exc.last_exception
            details: Dict[str, Any] = {"attempts": exc.attempts, "error": str(cause)}
            if isinstance(cause, _RetryableStatus):
                details["status_code"] = cause.status_code
            raise ContentFetchError(namespace, language, "CMS unavailable", details) from cause
        except httpx.HTTPError as exc:
            raise ContentFetchError(namespace, language, "CMS request failed", {"error": str(exc)}) from exc

    async def _request(self, namespace: str, language: str) -> Optional[Dict[str, Any]]:
        path = f"/api/{namespace}"
        params = {"locale": language, "fallback-locale": "none"}
        response = await self._get_client().get(path, params=params)

        if response.status_code == 200:
            try:
                payload = response.json()
            except ValueError as exc:
                raise ContentFetchError(
                    namespace, language, "CMS returned invalid JSON", {"error": str(exc)}
                ) from exc
            bundle = self._extract_bundle(payload)
            if bundle is None and not isinstance(payload, Mapping):
                raise ContentFetchError(
                    namespace, language, "CMS returned a non-object payload",
                    {"payload_type": type(payload).__name__},
                )
            self.logger.debug("CMS content retrieved", namespace=namespace, language=language, found=bundle is not None)
            return bundle

        if response.status_code == 404:
            self.logger.info("CMS content not found", namespace=namespace, language=language)
            return None

        if response.status_code == 429 or response.status_code >= 500:
            self.logger.warning(
                "CMS request failed, will retry",
                namespace=namespace,
                language=language,
                status_code=response.status_code,
            )
            raise _RetryableStatus(response.status_code, response.text)

        self.logger.error(
            "CMS request rejected",
            namespace=namespace,
            language=language,
            status_code=response.status_code,
            response=response.text,
        )
        raise ContentFetchError(
            namespace,
            language,
            f"Unexpected status {response.status_code}",
            {"status_code": response.status_code, "body": response.text},
        )

    @staticmethod
    def _extract_bundle(payload: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(payload, Mapping):
            return None
        docs = payload.get("docs")
        if isinstance(docs, list):
            first = docs[0] if docs else None
            return dict(first) if isinstance(first, Mapping) else None
        return dict(payload)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
