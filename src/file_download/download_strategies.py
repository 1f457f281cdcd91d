"""
Filter file download strategies
Fetch filter rule files either from a remote URL or from the local filesystem.

The two environments have separate entry points: the caller decides which
one applies, the location string is never sniffed.
"""
import asyncio
import os
import re
import logging
from enum import Enum
from typing import Dict
from typing import Any
from typing import List
from typing import Optional
from typing import Union
from urllib.parse import quote
import aiofiles
import aiohttp
from yarl import URL

from ..core.config_manager import DownloadConfig
from ..core.config_manager import get_config_manager
from ..core.error_handler import EmptyResponseError
from ..core.error_handler import FilesystemError
from ..core.error_handler import InvalidContentTypeError
from ..core.error_handler import InvalidStatusError
from ..core.error_handler import InvalidURLError
from ..core.error_handler import TransportError
from ..core.error_handler import ValidationError
from ..core.url_validator import url_validator

logger = logging.getLogger(__name__)

# Characters encodeURI leaves alone on top of letters, digits and "_.-~"
_URI_SAFE = ";,/?:@&=+$!*'()#"
_LINE_BREAKS = re.compile(r"[\r\n]+")


class SourceKind(Enum):
    REMOTE = "remote"
    LOCAL = "local"


def encode_uri(url: str) -> str:
    """Percent-encode a full URL, keeping its reserved characters intact"""
    return quote(url, safe=_URI_SAFE)


def split_rules(text: str) -> List[str]:
    """Trim the payload and split it on every run of CR/LF characters"""
    stripped = text.strip()
    if not stripped:
        return []
    return _LINE_BREAKS.split(stripped)


def check_response_headers(status: int, content_type: Optional[str],
                           config: DownloadConfig) -> None:
    """Raise for the first violated rule: status first, then content type"""
    if status not in config.accepted_statuses:
        raise InvalidStatusError(status, details={"status": status})

    expected = config.expected_content_type
    if not content_type or expected.lower() not in content_type.lower():
        raise InvalidContentTypeError(expected, details={"content_type": content_type})


def check_response_body(text: Optional[str]) -> None:
    if not text or not text.strip():
        raise EmptyResponseError()


def resolve_local_path(path: str, origin: Optional[str] = None) -> str:
    """
    Resolve path against origin.

    Without an origin the current working directory is the base. An absolute
    path is returned as is, whatever the origin.
    """
    base = origin or os.getcwd()
    return os.path.abspath(os.path.join(base, path))


class DownloadStrategy:
    """Base class: resource lifecycle plus a single download(location) call"""

    def __init__(self, config: Optional[DownloadConfig] = None):
        self.config = config

    async def initialize(self):
        pass

    async def cleanup(self):
        pass

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.cleanup()

    async def download(self, location: str) -> List[str]:
        raise NotImplementedError


class ExternalFileStrategy(DownloadStrategy):
    """HTTP(S) download of a plain-text filter list"""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None,
                 config: Optional[DownloadConfig] = None):
        super().__init__(config or get_config_manager().get_download_config())
        self.session = session
        self._owns_session = False

    async def initialize(self):
        if self.session is not None:
            return
        session_kwargs: Dict[str, Any] = {"raise_for_status": False}
        if self.config.timeout is not None:
            session_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(**session_kwargs)
        self._owns_session = True

    async def cleanup(self):
        """Close the session if this strategy opened it"""
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None
            self._owns_session = False

    async def download(self, location: str) -> List[str]:
        ok, reason = url_validator.validate_url(location)
        if not ok:
            raise InvalidURLError(f"Invalid filter URL {location!r}: {reason}",
                                  details={"url": location})

        if self.session is None:
            await self.initialize()

        request_url = URL(encode_uri(location), encoded=True)
        logger.debug(f"GET {request_url}")

        try:
            # Status is validated by hand below, never by the transport
            async with self.session.get(
                request_url,
                headers=self.config.request_headers,
                raise_for_status=False,
            ) as response:
                check_response_headers(
                    response.status,
                    response.headers.get("Content-Type"),
                    self.config,
                )
                text = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"Failed to download {location}: {e!r}",
                details={"url": location},
            ) from e

        check_response_body(text)
        return split_rules(text)


class LocalFileStrategy(DownloadStrategy):
    """Read a filter list from disk"""

    def __init__(self, origin: Optional[str] = None):
        super().__init__()
        self.origin = origin

    async def download(self, location: str) -> List[str]:
        file_path = resolve_local_path(location, self.origin)
        logger.debug(f"Reading {file_path}")
        try:
            async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
                text = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FilesystemError(
                f"Failed to read {file_path}: {e}",
                details={"path": file_path},
            ) from e
        return split_rules(text)


async def get_external_file(url: str,
                            session: Optional[aiohttp.ClientSession] = None,
                            config: Optional[DownloadConfig] = None) -> List[str]:
    """
    Download filter rules from an external URL.

    Raises InvalidStatusError, InvalidContentTypeError or EmptyResponseError
    for a response that is not a non-empty text/plain 200, TransportError for
    network failures and InvalidURLError for a malformed URL.
    """
    async with ExternalFileStrategy(session=session, config=config) as strategy:
        return await strategy.download(url)


async def get_local_file(path: str, origin: Optional[str] = None) -> List[str]:
    """Read filter rules from path resolved against origin; FilesystemError on failure"""
    async with LocalFileStrategy(origin=origin) as strategy:
        return await strategy.download(path)


async def get_filter_file(location: str,
                          kind: Union[SourceKind, str],
                          origin: Optional[str] = None,
                          session: Optional[aiohttp.ClientSession] = None) -> List[str]:
    """Retrieve filter rules from a location of an explicitly given kind"""
    try:
        kind = SourceKind(kind)
    except ValueError as e:
        raise ValidationError(f"Unknown source kind: {kind!r}", details={"kind": str(kind)}) from e

    if kind is SourceKind.REMOTE:
        return await get_external_file(location, session=session)
    return await get_local_file(location, origin)
