import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_LINE_BREAKS = re.compile(r"[\r\n]+")


@dataclass(frozen=True)
class DecodeResult:
    """Tagged outcome of one decode attempt."""
    ok: bool
    text: Optional[str] = None

    @classmethod
    def success(cls, text: str) -> "DecodeResult":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls) -> "DecodeResult":
        return cls(ok=False)


def decode_line_folded(content: str) -> DecodeResult:
    """MIME-style base64: line breaks are ignored, bytes are read as UTF-8 (invalid sequences replaced)."""
    try:
        data = base64.b64decode(_LINE_BREAKS.sub("", content).encode("ascii"), validate=True)
        return DecodeResult.success(data.decode("utf-8", errors="replace"))
    except (binascii.Error, ValueError):
        return DecodeResult.failure()


def decode_strict(content: str) -> DecodeResult:
    """Strict base64 after stripping every whitespace character."""
    try:
        data = base64.b64decode(_WHITESPACE.sub("", content).encode("ascii"), validate=True)
        return DecodeResult.success(data.decode("utf-8", errors="replace"))
    except (binascii.Error, ValueError):
        return DecodeResult.failure()


class ReadmeDecoder:
    """
    Turns the `content` field of a README document into text.

    Attempts, first success wins:
      1. line-folded base64 (only for encoding "base64" with content present)
      2. strict base64 with whitespace removed (same precondition)
      3. raw download of `download_url`, when one is given
    Otherwise there is no text.
    """

    def __init__(self, github_client):
        self.github_client = github_client

    async def decode(
        self,
        session: aiohttp.ClientSession,
        content: Optional[str],
        encoding: Optional[str],
        download_url: Optional[str] = None,
    ) -> Optional[str]:
        if content is not None and (encoding or "").lower() == "base64":
            for attempt in (decode_line_folded, decode_strict):
                result = attempt(content)
                if result.ok:
                    return result.text
                logger.debug(f"README decode attempt {attempt.__name__} failed.")

        if not download_url:
            return None

        logger.info(f"Falling back to raw README download: {download_url}")
        return await self.github_client.get_raw(session, download_url)
