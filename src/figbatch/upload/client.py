"""Async client for the repository's REST API (Figshare v2 shape).

Only the calls figbatch needs: account details, the enumerations that
drive field building, record search and creation, and the four-step
file upload protocol (initiate, fetch manifest, PUT parts, complete).

There is no automatic retry; every failure surfaces as a
:class:`RepositoryError` for the caller to record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from figbatch.constants import DEFAULT_API_BASE

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class RepositoryError(Exception):
    """Raised for an HTTP error status or a transport failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Upload manifest
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilePart:
    """One part of a multi-part upload; offsets are inclusive."""

    part_no: int
    start_offset: int
    end_offset: int

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset + 1


@dataclass(frozen=True)
class UploadManifest:
    """Server-side description of a pending file upload."""

    file_id: int | str
    upload_url: str
    status: str
    parts: tuple[FilePart, ...] = ()

    @classmethod
    def from_response(cls, location: str, data: dict[str, Any]) -> UploadManifest:
        parts = sorted(
            (
                FilePart(int(p["partNo"]), int(p["startOffset"]), int(p["endOffset"]))
                for p in data.get("parts") or []
            ),
            key=lambda p: p.part_no,
        )
        file_id = data.get("id") or location.rstrip("/").rsplit("/", 1)[-1]
        return cls(
            file_id=file_id,
            upload_url=(data.get("upload_url") or location).rstrip("/"),
            status=data.get("status", "PENDING"),
            parts=tuple(parts),
        )

    def part_url(self, part: FilePart) -> str:
        return f"{self.upload_url}/{part.part_no}"


@dataclass
class RepositoryContext:
    """Everything fetched up front for validating a batch."""

    account: dict[str, Any]
    categories: list[dict[str, Any]] = field(default_factory=list)
    licenses: list[dict[str, Any]] = field(default_factory=list)
    item_types: list[dict[str, Any]] = field(default_factory=list)
    custom_fields: list[dict[str, Any]] = field(default_factory=list)
    existing_titles: list[str] = field(default_factory=list)

    @property
    def quota_remaining(self) -> int:
        return int(self.account.get("quota") or 0) - int(self.account.get("used_quota") or 0)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RepositoryClient:
    """Thin async wrapper over ``httpx.AsyncClient``.

    Usage::

        async with RepositoryClient(token) as client:
            account = await client.get_account()

    Args:
        token: Personal API token, sent as ``Authorization: token <token>``.
        api_base: Base URL of the API.
        timeout: Per-request timeout in seconds.
        page_size: ``limit`` used when paging list endpoints.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        token: str,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 60.0,
        page_size: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._page_size = page_size
        self._http = httpx.AsyncClient(
            base_url=api_base.rstrip("/") + "/",
            headers={"Authorization": f"token {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> RepositoryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RepositoryError(f"{method} {url} failed: {exc}") from exc
        if response.is_error:
            raise RepositoryError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    async def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._request(method, url, **kwargs)
        if not response.content:
            return None
        return response.json()

    async def _paged(
        self,
        url: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Collect every page of a ``limit``/``offset`` list endpoint."""
        results: list[dict[str, Any]] = []
        offset = 0
        while True:
            paging = {"limit": self._page_size, "offset": offset}
            if method == "GET":
                page = await self._json(method, url, params={**(params or {}), **paging})
            else:
                page = await self._json(
                    method, url, params=params, json={**(body or {}), **paging}
                )
            page = page or []
            results.extend(page)
            if len(page) < self._page_size:
                return results
            offset += self._page_size

    # ------------------------------------------------------------------
    # Enumerations
    # ------------------------------------------------------------------

    async def get_account(self) -> dict[str, Any]:
        return await self._json("GET", "account")

    async def list_categories(self) -> list[dict[str, Any]]:
        return await self._json("GET", "account/categories") or []

    async def list_licenses(self) -> list[dict[str, Any]]:
        return await self._json("GET", "account/licenses") or []

    async def list_item_types(self, group_id: int | None = None) -> list[dict[str, Any]]:
        params = {"group_id": group_id} if group_id is not None else None
        return await self._json("GET", "item_types", params=params) or []

    async def list_groups(self) -> list[dict[str, Any]]:
        return await self._json("GET", "account/institution/groups") or []

    async def list_custom_fields(self, group_id: int | None = None) -> list[dict[str, Any]]:
        params = {"group_id": group_id} if group_id is not None else None
        return await self._json("GET", "account/institution/custom_fields", params=params) or []

    async def search_articles(self, group_id: int | None = None) -> list[dict[str, Any]]:
        body = {"group": group_id} if group_id is not None else {}
        return await self._paged("account/articles/search", method="POST", body=body)

    async def fetch_context(self, group_id: int | None = None) -> RepositoryContext:
        """Fetch the account and every enumeration needed to validate a batch."""
        account = await self.get_account()
        context = RepositoryContext(
            account=account,
            categories=await self.list_categories(),
            licenses=await self.list_licenses(),
            item_types=await self.list_item_types(group_id),
            custom_fields=await self.list_custom_fields(group_id),
            existing_titles=[a["title"] for a in await self.search_articles(group_id)],
        )
        logger.info(
            "Fetched %d categories, %d licenses, %d custom fields, %d existing records",
            len(context.categories), len(context.licenses),
            len(context.custom_fields), len(context.existing_titles),
        )
        return context

    # ------------------------------------------------------------------
    # Records and files
    # ------------------------------------------------------------------

    async def create_article(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a record; returns ``{entity_id, location, warnings}``."""
        return await self._json("POST", "account/articles", json=payload)

    async def initiate_file_upload(
        self, article_id: int | str, name: str, size: int, md5: str
    ) -> str:
        """Register a file on a record and return its ``location`` URL."""
        data = await self._json(
            "POST",
            f"account/articles/{article_id}/files",
            json={"name": name, "size": size, "md5": md5},
        )
        return data["location"]

    async def get_upload_manifest(self, location: str) -> UploadManifest:
        """Read the part layout of a pending upload.

        The ``location`` response may only point at ``upload_url``; the
        parts are then read from there. The file id always comes from the
        ``location`` response.
        """
        data = await self._json("GET", location) or {}
        upload_url = (data.get("upload_url") or location).rstrip("/")
        if not data.get("parts") and upload_url != location.rstrip("/"):
            upload = await self._json("GET", upload_url) or {}
            data = {
                **data,
                "parts": upload.get("parts"),
                "status": upload.get("status") or data.get("status") or "PENDING",
            }
        return UploadManifest.from_response(location, data)

    async def upload_part(self, url: str, content: bytes) -> None:
        await self._request("PUT", url, content=content)

    async def complete_file_upload(self, article_id: int | str, file_id: int | str) -> None:
        await self._request("POST", f"account/articles/{article_id}/files/{file_id}")
