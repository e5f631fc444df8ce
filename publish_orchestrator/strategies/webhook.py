"""Webhook strategy publishing content to an HTTP endpoint using httpx."""

from typing import Any

import httpx

from publish_orchestrator.models import PublishOptions, PublishResult
from publish_orchestrator.storage.session import SessionStore
from publish_orchestrator.strategies.base import PublishStrategy


class WebhookStrategy(PublishStrategy):
    """Publish by sending the content as JSON to a configured URL.

    The httpx.AsyncClient created in prepare() is the shared resource
    handle; it is safe for concurrent requests. Cookies set by the
    endpoint are persisted as session state across runs.

    Usage:
        strategy = WebhookStrategy("blog", url="https://blog.example.com/api/posts")
        await strategy.prepare()
        result = await strategy.publish("# Hello", "Hello", PublishOptions())
        await strategy.cleanup()
    """

    def __init__(
        self,
        kind: str,
        url: str,
        *,
        name: str | None = None,
        method: str = "POST",
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        session_store: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize webhook strategy.

        Args:
            kind: Target kind
            url: Endpoint receiving the content
            name: Human readable name
            method: HTTP method (POST or PUT)
            headers: Extra request headers
            timeout: Request timeout in seconds
            session_store: Session state persistence
            transport: Custom httpx transport (used by tests)
        """
        super().__init__(kind, name=name, session_store=session_store)
        self.url = url
        self.method = method.upper()
        self.headers = headers or {}
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def prepare(self) -> None:
        cookies = httpx.Cookies()
        session = await self.load_session()
        if session:
            for name, value in session.get("cookies", {}).items():
                cookies.set(name, value, domain=httpx.URL(self.url).host)
            self.logger.info(f"Restored session state for {self.name}")

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={"Content-Type": "application/json", **self.headers},
            cookies=cookies,
            transport=self._transport,
        )
        await super().prepare()

    def _build_payload(
        self,
        content: str,
        title: str,
        options: PublishOptions,
    ) -> dict[str, Any]:
        return {
            "title": title,
            "content": content,
            "options": options.model_dump(mode="json"),
        }

    @staticmethod
    def _extract_locator(response: httpx.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("url"):
            return str(data["url"])
        return response.headers.get("Location")

    async def publish(
        self,
        content: str,
        title: str,
        options: PublishOptions,
    ) -> PublishResult:
        if self._client is None:
            raise RuntimeError("Strategy not prepared. Call prepare() first.")

        self.logger.debug(f"{self.method} {self.url} title={title!r}")
        response = await self._client.request(
            self.method,
            self.url,
            json=self._build_payload(content, title, options),
        )

        if response.is_success:
            return PublishResult.succeeded(
                message=f"published to {self.name} (HTTP {response.status_code})",
                locator=self._extract_locator(response),
            )

        self.logger.warning(
            f"{self.name} rejected publish: HTTP {response.status_code} - {response.text[:200]}"
        )
        return PublishResult.failed(f"{self.name} responded with HTTP {response.status_code}")

    async def cleanup(self) -> None:
        if self._client is not None:
            cookies = {cookie.name: cookie.value for cookie in self._client.cookies.jar}
            if cookies:
                await self.save_session({"cookies": cookies})
            await self._client.aclose()
            self._client = None
        await super().cleanup()
