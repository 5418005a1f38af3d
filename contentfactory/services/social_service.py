"""
SocialService - Publishes article promotions through the Upload-Post API.
"""

import logging
from typing import Dict, List, Optional

import httpx

from ..core.config import Config
from ..core.models import PostRef
from .http_retry import http_retry

logger = logging.getLogger(__name__)

DEFAULT_PLATFORMS = ["facebook", "linkedin"]


class SocialService:
    """Service for posting text + link (+ optional image) to social platforms."""

    BASE_URL = "https://api.upload-post.com/api"

    def __init__(
        self,
        token: Optional[str] = None,
        user: str = "tax4us",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token or Config.UPLOAD_POST_TOKEN
        if not self.token:
            raise ValueError("UPLOAD_POST_TOKEN not configured")
        self.user = user
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Apikey {self.token}"},
                timeout=60.0,
            )
        return self._client

    @http_retry
    async def _upload_text(self, platform: str, text: str) -> Dict:
        client = await self._get_client()
        response = await client.post(
            f"{self.BASE_URL}/upload_text",
            data={"user": self.user, "platform[]": platform, "title": text},
        )
        response.raise_for_status()
        return response.json()

    async def publish(
        self,
        posts: Dict[str, str],
        link: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> List[PostRef]:
        """
        Publish one post per platform.

        Args:
            posts: Platform name -> post text
            link: Article URL appended to each post
            image_url: Optional image URL appended to each post

        Returns:
            PostRef per platform; a platform that errors is returned with status "failed"
        """
        refs: List[PostRef] = []
        for platform, text in posts.items():
            body = text
            if link:
                body = f"{body}\n\nRead more: {link}"
            if image_url:
                body = f"{body}\n{image_url}"

            try:
                data = await self._upload_text(platform, body)
            except httpx.HTTPError as e:
                logger.error(f"Upload-Post {platform} failed: {e}")
                refs.append(PostRef(platform=platform, status="failed"))
                continue

            result = (data.get("results") or {}).get(platform) or {}
            refs.append(PostRef(
                platform=platform,
                post_id=str(result.get("post_id") or result.get("id") or "") or None,
                url=result.get("url"),
                status="published" if data.get("success", True) else "failed",
            ))
            logger.info(f"Published {platform} post")

        return refs
