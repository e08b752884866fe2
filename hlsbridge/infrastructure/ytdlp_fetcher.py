"""
yt-dlp Fetcher Infrastructure Service

Fetcher implementation backed by yt-dlp. Direct file links go through
yt-dlp's generic extractor, which follows redirects and reports transfer
progress through progress hooks.
"""

import logging
import mimetypes
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadCancelled, DownloadError, ExtractorError

from hlsbridge.domain.cancellation import CancellationToken
from hlsbridge.domain.errors import FetchError, JobCancelledError
from hlsbridge.domain.media.interfaces import FetchProgressCallback, Fetcher
from hlsbridge.domain.media.value_objects import FetchProgress, FetchResult, RemoteFileInfo

logger = logging.getLogger(__name__)


class YtDlpFetcher(Fetcher):
    """
    yt-dlp based implementation of remote file retrieval.

    Handles all yt-dlp specific logic and error translation to domain
    exceptions. Progress samples are throttled to ``progress_interval``
    seconds; the final sample is always delivered.
    """

    METADATA_OPTS = {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
        "noplaylist": True,
        "format": "best",
        "socket_timeout": 30,
    }

    def __init__(self, progress_interval: float = 0.5, socket_timeout: int = 30):
        """
        Args:
            progress_interval: Minimum seconds between two progress samples
            socket_timeout: Network timeout handed to yt-dlp
        """
        self.progress_interval = progress_interval
        self.socket_timeout = socket_timeout

    def analyze(self, url: str) -> RemoteFileInfo:
        """
        Inspect the remote file without downloading it.

        Args:
            url: Validated http(s) URL

        Returns:
            RemoteFileInfo with name, size and content type when known

        Raises:
            FetchError: If yt-dlp cannot reach or recognise the source
        """
        try:
            with YoutubeDL(self.METADATA_OPTS) as ydl:
                info = ydl.extract_info(url, download=False)
        except (DownloadError, ExtractorError) as e:
            raise FetchError(f"Failed to analyze source: {e}", original_error=e)

        info = info or {}
        title = info.get("title") or "source"
        ext = info.get("ext")
        name = f"{title}.{ext}" if ext and not title.endswith(f".{ext}") else title
        size = info.get("filesize") or info.get("filesize_approx")
        content_type, _ = mimetypes.guess_type(name)

        logger.info(f"Analyzed {url}: name={name}, size={size}, type={content_type}")
        return RemoteFileInfo(
            name=name,
            size=int(size) if size else None,
            content_type=content_type,
        )

    def fetch(
        self,
        url: str,
        destination: str,
        on_progress: FetchProgressCallback,
        cancel_token: CancellationToken,
    ) -> FetchResult:
        """
        Download the remote file to ``destination``.

        The token is checked from the progress hook; a set token aborts the
        transfer and removes the partial file.

        Raises:
            FetchError: On transfer errors
            JobCancelledError: If the token was set during the transfer
        """
        cancel_token.raise_if_cancelled("Job cancelled before download")
        last_emit: Optional[float] = None

        def progress_hook(d: Dict[str, Any]) -> None:
            nonlocal last_emit
            if cancel_token.is_cancelled():
                raise DownloadCancelled("Job cancelled during download")

            status = d.get("status")
            if status == "downloading":
                now = time.monotonic()
                if last_emit is not None and now - last_emit < self.progress_interval:
                    return
                last_emit = now
                on_progress(self._sample(d))
            elif status == "finished":
                on_progress(FetchProgress(fraction_done=1.0, bytes_per_second=d.get("speed"), eta_seconds=0))

        ydl_opts = {
            "format": "best",
            # Literal path, yt-dlp treats % as a template marker
            "outtmpl": destination.replace("%", "%%"),
            "progress_hooks": [progress_hook],
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "noplaylist": True,
            "overwrites": True,
            "retries": 0,
            "fragment_retries": 0,
            "socket_timeout": self.socket_timeout,
            "writesubtitles": False,
            "writethumbnail": False,
            "writeinfojson": False,
        }

        try:
            with YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=True)
        except DownloadCancelled as e:
            self._remove_partial(destination)
            raise JobCancelledError("Job cancelled during download", original_error=e)
        except (DownloadError, ExtractorError) as e:
            self._remove_partial(destination)
            if cancel_token.is_cancelled():
                raise JobCancelledError("Job cancelled during download", original_error=e)
            raise FetchError(f"Download failed: {e}", original_error=e)
        except Exception:
            self._remove_partial(destination)
            raise

        path = self._downloaded_path(info, destination)
        if not os.path.exists(path):
            raise FetchError(f"Downloaded file not found at expected location: {path}")

        bytes_written = os.path.getsize(path)
        logger.info(f"Downloaded {url} to {path} ({bytes_written} bytes)")
        return FetchResult(path=path, bytes_written=bytes_written)

    @staticmethod
    def _sample(d: Dict[str, Any]) -> FetchProgress:
        downloaded = d.get("downloaded_bytes") or 0
        total = d.get("total_bytes") or d.get("total_bytes_estimate")
        fraction = min(downloaded / total, 1.0) if total else 0.0
        return FetchProgress(
            fraction_done=fraction,
            bytes_per_second=d.get("speed"),
            eta_seconds=d.get("eta"),
        )

    @staticmethod
    def _downloaded_path(info: Optional[Dict[str, Any]], destination: str) -> str:
        requested = (info or {}).get("requested_downloads") or []
        if requested and requested[0].get("filepath"):
            return requested[0]["filepath"]
        return destination

    @staticmethod
    def _remove_partial(destination: str) -> None:
        for candidate in (destination, f"{destination}.part", f"{destination}.ytdl"):
            try:
                Path(candidate).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove partial download {candidate}: {e}")
