"""Action dispatch: performs the side effect an action describes.

The kernel never performs side effects itself. It calls an injected
``ActionExecutor``; ``DispatchingActionExecutor`` is the stock one,
sending API actions over HTTP and handing UI actions to a caller
supplied dispatcher.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol
from urllib.parse import urljoin, urlparse

import aiohttp

from cellengine.core.action import Action, ActionType

logger = logging.getLogger(__name__)

UIDispatcher = Callable[[str, str], Awaitable[None]]

_ALLOWED_SCHEMES = ("http", "https")


class ActionExecutionError(RuntimeError):
    """Raised when an action cannot be performed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ActionExecutor(Protocol):
    """Performs an action, raising on failure."""

    async def __call__(self, action: Action) -> None: ...


def resolve_url(url: str, base_url: str | None = None) -> str:
    """Return an absolute http(s) URL for *url*.

    Raises:
        ActionExecutionError: If no scheme can be established
    """
    if base_url and not urlparse(url).scheme:
        url = urljoin(base_url, url)
    if urlparse(url).scheme not in _ALLOWED_SCHEMES:
        raise ActionExecutionError(f"Invalid URL for action: {url!r}")
    return url


class DispatchingActionExecutor:
    """Routes actions by type.

    ``api`` actions are sent with aiohttp; ``ui`` actions go to the
    injected dispatcher as ``(selector, event_name)``. ``workflow``
    actions are expanded by the workflow executor and never reach here.

    Usage:
        async with DispatchingActionExecutor(base_url="https://app.example") as run:
            await run(action)
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        ui_dispatcher: UIDispatcher | None = None,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url
        self._ui_dispatcher = ui_dispatcher
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> DispatchingActionExecutor:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def __call__(self, action: Action) -> None:
        if action.type is ActionType.API and action.url:
            await self._send_request(action)
        elif action.type is ActionType.UI and action.selector and action.event_name:
            if self._ui_dispatcher is None:
                raise ActionExecutionError(f"No UI dispatcher for action {action.id}")
            await self._ui_dispatcher(action.selector, action.event_name)
        else:
            raise ActionExecutionError(f"Invalid action configuration: {action.to_dict()}")

    async def _send_request(self, action: Action) -> None:
        url = resolve_url(action.url or "", self._base_url)
        options = action.options
        method = str(options.get("method") or "GET").upper()
        body = options.get("body")

        request_kwargs: dict[str, Any] = {"headers": options.get("headers") or None}
        if isinstance(body, (dict, list)):
            request_kwargs["json"] = body
        elif body is not None:
            request_kwargs["data"] = body

        session = self._ensure_session()
        try:
            async with session.request(method, url, **request_kwargs) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise ActionExecutionError(
                        f"{method} {url} failed: {text[:200]}",
                        status_code=response.status,
                    )
        except aiohttp.ClientError as e:
            raise ActionExecutionError(f"Connection error: {e}") from e
        logger.debug("Executed %s %s", method, url)
