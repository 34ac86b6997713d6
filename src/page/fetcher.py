"""
HTTP page fetcher for clipping
"""

from urllib.parse import urlparse

import aiohttp

from src.config import Settings, get_settings
from src.utils.mixins import LoggerMixin

from .snapshot import PageSnapshot

SUPPORTED_CONTENT_TYPES = ("text/html", "application/xhtml")


class PageFetcher(LoggerMixin):
    """ページ取得システム"""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.headers = {
            "User-Agent": settings.http_user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.7,ja;q=0.3",
            "Accept-Encoding": "gzip, deflate",
        }

        # タイムアウト設定
        self.timeout = aiohttp.ClientTimeout(
            total=settings.http_timeout_seconds,
            connect=settings.http_connect_timeout_seconds,
        )
        self.max_page_bytes = settings.max_page_bytes

    async def fetch(self, url: str) -> PageSnapshot | None:
        """
        ページを取得してスナップショットを作る

        Args:
            url: 対象URL

        Returns:
            PageSnapshot（失敗時はNone）
        """
        if not self.is_valid_url(url):
            self.logger.warning("Refusing to fetch non-HTTP URL", url=url)
            return None

        try:
            self.logger.debug("Fetching page", url=url)

            async with (
                aiohttp.ClientSession(
                    timeout=self.timeout, headers=self.headers
                ) as session,
                session.get(url) as response,
            ):
                if response.status != 200:
                    self.logger.warning(
                        "HTTP error when fetching page",
                        url=url,
                        status=response.status,
                    )
                    return None

                # Content-Typeをチェック
                content_type = response.headers.get("content-type", "").lower()
                if not any(kind in content_type for kind in SUPPORTED_CONTENT_TYPES):
                    self.logger.warning(
                        "Unsupported content type",
                        url=url,
                        content_type=content_type,
                    )
                    return None

                # 内容を読み込み（サイズ制限あり）
                raw_content = await response.read()
                if len(raw_content) > self.max_page_bytes:
                    self.logger.warning(
                        "Page too large, truncating",
                        url=url,
                        size=len(raw_content),
                        limit=self.max_page_bytes,
                    )
                    raw_content = raw_content[: self.max_page_bytes]

                html = raw_content.decode(response.charset or "utf-8", errors="replace")
                snapshot = PageSnapshot(str(response.url), html)

                self.logger.info(
                    "Page fetched",
                    url=url,
                    final_url=snapshot.url,
                    size=len(raw_content),
                )
                return snapshot

        except TimeoutError:
            self.logger.warning("Timeout when fetching page", url=url)
            return None

        except aiohttp.ClientError as e:
            self.logger.warning("Client error when fetching page", url=url, error=str(e))
            return None

        except LookupError as e:
            # unknown charset
            self.logger.warning("Could not decode page", url=url, error=str(e))
            return None

    @staticmethod
    def is_valid_url(url: str) -> bool:
        """URLの妥当性をチェック"""
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
