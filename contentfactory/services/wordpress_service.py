"""
WordPressService - Publishing adapter over the WordPress REST API.

Authenticates with an application password (HTTP basic auth). Posts are
returned as the REST API's JSON dicts ({"id", "link", "status", "title":
{"rendered"}, "content": {"rendered"}, "meta", "date"}).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.config import Config
from .http_retry import http_retry

logger = logging.getLogger(__name__)


class WordPressService:
    """
    Service for creating and updating posts on WordPress.

    Example:
        >>> wp = WordPressService()
        >>> post = await wp.create_post({"title": "Hello", "content": "...", "status": "draft"})
        >>> await wp.update_post(post["id"], {"status": "publish"})
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        username: Optional[str] = None,
        app_password: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize WordPressService.

        Args:
            api_url: wp/v2 base URL (defaults to Config.WORDPRESS_API_URL)
            username: WordPress user (defaults to Config.WORDPRESS_USERNAME)
            app_password: Application password (defaults to Config.WORDPRESS_APP_PASSWORD)
            http_client: Optional preconfigured client (tests inject a MockTransport)
        """
        self.api_url = (api_url or Config.WORDPRESS_API_URL).rstrip("/")
        self.username = username or Config.WORDPRESS_USERNAME
        self.app_password = app_password or Config.WORDPRESS_APP_PASSWORD
        self._client = http_client

        if not self.api_url:
            logger.warning("WORDPRESS_API_URL not configured")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                auth=(self.username, self.app_password),
                timeout=60.0,
            )
        return self._client

    @http_retry
    async def _request(self, method: str, path: str, **kwargs) -> Any:
        client = await self._get_client()
        response = await client.request(method, f"{self.api_url}/{path.lstrip('/')}", **kwargs)
        response.raise_for_status()
        return response.json()

    # =========================================================================
    # POSTS
    # =========================================================================

    async def create_post(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create a post. Returns the created post including its id."""
        post = await self._request("POST", "posts", json=fields)
        logger.info(f"Created WordPress post {post.get('id')} (status={post.get('status')})")
        return post

    async def update_post(
        self,
        post_id: int,
        patch: Dict[str, Any],
        query: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Update a post.

        Args:
            post_id: WordPress post id
            patch: Fields to change
            query: Extra query parameters (e.g., Polylang's lang / translations[he])
        """
        post = await self._request("POST", f"posts/{post_id}", json=patch, params=query or None)
        logger.info(f"Updated WordPress post {post_id}")
        return post

    async def get_post(self, post_id: int) -> Optional[Dict[str, Any]]:
        """Fetch a post, or None if it does not exist."""
        try:
            return await self._request("GET", f"posts/{post_id}", params={"context": "edit"})
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise

    async def get_posts(
        self,
        status: str = "publish",
        per_page: int = 20,
        after: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List posts, newest first."""
        params: Dict[str, Any] = {"status": status, "per_page": per_page, "orderby": "date", "order": "desc"}
        if after:
            params["after"] = after
        return await self._request("GET", "posts", params=params)

    # =========================================================================
    # MEDIA AND TAXONOMIES
    # =========================================================================

    async def upload_media(self, data: bytes, filename: str, mime_type: str) -> Dict[str, Any]:
        """Upload a media file. Returns {"id", "source_url", ...}."""
        media = await self._request(
            "POST",
            "media",
            content=data,
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "Content-Type": mime_type,
            },
        )
        logger.info(f"Uploaded media {media.get('id')} ({filename})")
        return media

    async def resolve_categories(self, names: List[str]) -> List[int]:
        """Map category names to ids, creating missing categories."""
        return await self._resolve_terms("categories", names)

    async def resolve_tags(self, names: List[str]) -> List[int]:
        """Map tag names to ids, creating missing tags."""
        return await self._resolve_terms("tags", names)

    async def _resolve_terms(self, taxonomy: str, names: List[str]) -> List[int]:
        ids: List[int] = []
        for name in names:
            name = name.strip()
            if not name:
                continue
            existing = await self._request("GET", taxonomy, params={"search": name, "per_page": 10})
            match = next((t for t in existing if t.get("name", "").lower() == name.lower()), None)
            if match is None:
                match = await self._request("POST", taxonomy, json={"name": name})
                logger.info(f"Created {taxonomy[:-1] if taxonomy == 'tags' else 'category'} '{name}'")
            ids.append(match["id"])
        return ids
