"""REST client — generic GET/POST/PUT/DELETE helpers keyed by path.

Learn: Every resource on the server follows the same shape
(/api/<plural> and /api/<plural>/<id>), so one generic request() covers
everything. Typed per-resource helpers live in api.resources.

Error contract:
- 401       → token is cleared, UnauthorizedError is raised
- other 4xx/5xx → ApiError("<status>: <body or reason>")
- transport failure → ApiError with status_code 0
- 2xx with a non-JSON body → ApiError("<status>: Invalid JSON response: ...")

Nothing here retries. A failed mutation is surfaced once (see
RealtimeSession.mutate) and the user resubmits if they want to.
"""

from typing import Any, Awaitable, Callable, Literal, Optional

import httpx
import structlog

logger = structlog.get_logger()

UnauthorizedBehavior = Literal["throw", "return_none"]


class ApiError(Exception):
    """Raised when a REST call fails."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}" if status_code else message)
        self.status_code = status_code
        self.message = message


class UnauthorizedError(ApiError):
    """Raised on 401. The stored token has already been cleared."""

    def __init__(self, message: str = "Unauthorized: Please log in to continue"):
        super().__init__(401, message)


class ApiClient:
    """Async HTTP client for the project-management REST API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token or None
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─── Core request ─────────────────────────────────────

    def _headers(self, has_body: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        if has_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        data: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None if empty)."""
        has_body = data is not None
        try:
            resp = await self._http.request(
                method.upper(),
                path,
                json=data if has_body else None,
                params=_clean_params(params),
                headers=self._headers(has_body),
            )
        except httpx.HTTPError as e:
            logger.warning("api.transport_error", method=method, path=path, error=str(e))
            raise ApiError(0, f"{method.upper()} {path} failed: {e}") from e

        if resp.status_code == 401:
            self.token = None
            logger.info("api.unauthorized", method=method, path=path)
            raise UnauthorizedError()

        if resp.is_error:
            message = resp.text or resp.reason_phrase
            logger.warning(
                "api.error", method=method, path=path, status=resp.status_code
            )
            raise ApiError(resp.status_code, message)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            # e.g. a dev server answering unknown paths with index.html
            logger.warning(
                "api.invalid_json",
                method=method,
                path=path,
                status=resp.status_code,
                content_type=resp.headers.get("content-type"),
            )
            raise ApiError(resp.status_code, f"Invalid JSON response: {e}") from e

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Any = None) -> Any:
        return await self.request("POST", path, data=data)

    async def put(self, path: str, data: Any = None) -> Any:
        return await self.request("PUT", path, data=data)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    # ─── Query cache integration ──────────────────────────

    def query_fn(
        self, on_401: UnauthorizedBehavior = "throw"
    ) -> Callable[[tuple], Awaitable[Any]]:
        """Fetcher for QueryCache.fetch: GET key[0] with key[1] as params.

        on_401="return_none" turns an expired session into an empty read
        instead of an error (for optional widgets like "current user").
        """

        async def fetch(key: tuple) -> Any:
            path = key[0]
            params = dict(key[1]) if len(key) > 1 and key[1] else None
            try:
                return await self.get(path, params=params)
            except UnauthorizedError:
                if on_401 == "return_none":
                    return None
                raise

        return fetch


def _clean_params(params: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None}
