"""Email attachments.

Queued emails store attachment specs (``filename`` plus a URL or local
``path``). The files are fetched when the mail flush job sends the message,
so a slow download never blocks the API request that queued it.
"""

import asyncio
import logging
import mimetypes
import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import httpx

from wayfarer.config import settings

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
GENERIC_PREFIX = "download-"

_DRIVE_FILE_ID = re.compile(r"/file/d/([a-zA-Z0-9_-]+)")
_DISPOSITION_FILENAME = re.compile(r"filename[^;=\n]*=((['\"]).*?\2|[^;\n]*)")


class AttachmentError(Exception):
    pass


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str


def is_url(value: str) -> bool:
    return urlparse(value).scheme in ("http", "https")


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


def filename_from_path(file_path: str) -> str:
    """Filename for a URL or local path; ``download-<ms>`` when a URL has none."""
    if is_url(file_path):
        name = PurePosixPath(urlparse(file_path).path).name
        if not name or not PurePosixPath(name).suffix:
            return f"{GENERIC_PREFIX}{int(time.time() * 1000)}"
        return name
    return Path(file_path).name


def build_attachment_specs(file_paths: list[str]) -> list[dict]:
    return [{"filename": filename_from_path(p), "path": p} for p in file_paths]


def google_drive_download_url(url: str) -> str | None:
    """Direct download URL for a Drive sharing link (``/file/d/<id>/view``)."""
    match = _DRIVE_FILE_ID.search(url)
    if not match:
        return None
    return f"https://drive.google.com/uc?export=download&id={match.group(1)}"


def _filename_from_disposition(header: str | None) -> str | None:
    if not header:
        return None
    match = _DISPOSITION_FILENAME.search(header)
    if not match or not match.group(1):
        return None
    return match.group(1).replace('"', "").replace("'", "").strip() or None


def _final_filename(requested: str, downloaded: str | None, url: str) -> str:
    if downloaded and requested.startswith(GENERIC_PREFIX):
        return downloaded
    if PurePosixPath(requested).suffix:
        return requested
    ext = PurePosixPath(downloaded).suffix if downloaded else ""
    if not ext:
        ext = PurePosixPath(urlparse(url).path).suffix
    if not ext:
        logger.warning(f"Could not determine file extension for {requested!r}, using as-is")
    return f"{requested}{ext}"


class AttachmentLoader:
    """Turns stored attachment specs into file contents."""

    def __init__(
        self,
        timeout: float | None = None,
        max_bytes: int | None = None,
        local_dir: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout or settings.attachment_download_timeout_seconds
        self.max_bytes = max_bytes or settings.attachment_max_bytes
        self.local_dir = settings.attachment_dir if local_dir is None else local_dir
        self._transport = transport

    async def download(self, url: str) -> tuple[bytes, str | None]:
        """File bytes and the server-suggested filename, if any."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise AttachmentError(f"Failed to download file from URL: {e}") from e

        if len(resp.content) > self.max_bytes:
            raise AttachmentError(f"File at {url} exceeds {self.max_bytes} bytes")
        return resp.content, _filename_from_disposition(resp.headers.get("content-disposition"))

    def read_local(self, file_path: str) -> bytes:
        if not self.local_dir:
            raise AttachmentError("Local file attachments are disabled")
        root = Path(self.local_dir).resolve()
        path = (root / file_path).resolve()
        if not path.is_relative_to(root):
            raise AttachmentError(f"{file_path} is outside the attachment directory")
        if not path.is_file():
            raise AttachmentError(f"Local file not found: {file_path}")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise AttachmentError(f"Could not read {file_path}: {e}") from e
        if len(data) > self.max_bytes:
            raise AttachmentError(f"{file_path} exceeds {self.max_bytes} bytes")
        return data

    async def load_one(self, spec: dict) -> Attachment:
        requested = spec.get("filename") or "attachment"
        file_path = spec.get("path") or ""
        content_type = spec.get("content_type")

        if "drive.google.com" in file_path:
            url = google_drive_download_url(file_path)
            if url is None:
                raise AttachmentError(f"Could not convert Google Drive URL for {requested!r}")
        elif is_url(file_path):
            url = file_path
        else:
            content = await asyncio.to_thread(self.read_local, file_path)
            return Attachment(requested, content, content_type or guess_content_type(requested))

        content, downloaded = await self.download(url)
        filename = _final_filename(requested, downloaded, url)
        return Attachment(filename, content, content_type or guess_content_type(filename))

    async def load(self, specs: list[dict] | None) -> list[Attachment]:
        """Load every spec; ones that fail are logged and left off the message."""
        attachments = []
        for spec in specs or []:
            try:
                attachments.append(await self.load_one(spec))
            except AttachmentError as e:
                logger.error(f"Skipping attachment {spec.get('filename')!r}: {e}")
        return attachments


attachment_loader = AttachmentLoader()
