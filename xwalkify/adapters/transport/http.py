"""
HTTP archive transport — download a bundle archive and unpack it.

Archives are zip files (tar is accepted too) holding one top-level
directory, e.g. ``crosswalk-cordova-10.39.235.15-x86/``. That directory
is stripped on extraction so the bundle's ``framework/`` and ``VERSION``
land directly in the destination.
"""

from __future__ import annotations

import http.client
import logging
import shutil
import tarfile
import tempfile
import time
import urllib.error
import urllib.request
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from xwalkify import __version__
from xwalkify.adapters.base import Transport
from xwalkify.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class HttpArchiveTransport(Transport):
    """Fetch archives over HTTP(S) with urllib.

    ``file://`` URLs are served by the same code path, which is handy
    for mirrors on a shared drive.
    """

    def __init__(self, timeout: int = 60):
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "http"

    def is_available(self) -> bool:
        return True

    def fetch(self, url: str, destination: Path) -> Receipt:
        start = time.monotonic()
        logger.info("Downloading %s", url)

        try:
            with tempfile.TemporaryDirectory(prefix="xwalkify-") as tmp:
                archive = Path(tmp) / (PurePosixPath(url).name or "bundle.zip")
                size = self._download(url, archive)
                destination.mkdir(parents=True, exist_ok=True)
                count = extract_archive(archive, destination)
        except urllib.error.HTTPError as e:
            return Receipt.failure(
                adapter=self.name,
                target=url,
                error=f"Download failed: HTTP {e.code} {e.reason}",
                metadata={"http_status": e.code},
            )
        except urllib.error.URLError as e:
            return Receipt.failure(
                adapter=self.name,
                target=url,
                error=f"Download failed: {e.reason}",
            )
        except http.client.HTTPException as e:  # IncompleteRead on a dropped connection
            return Receipt.failure(
                adapter=self.name,
                target=url,
                error=f"Download failed: {type(e).__name__}: {e}",
            )
        except (zipfile.BadZipFile, tarfile.TarError, zlib.error, EOFError, ValueError) as e:
            return Receipt.failure(
                adapter=self.name,
                target=url,
                error=f"Cannot extract archive: {e}",
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                target=url,
                error=f"Filesystem error during fetch: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return Receipt.success(
            adapter=self.name,
            target=url,
            output=f"Extracted {count} files to {destination}",
            duration_ms=elapsed_ms,
            metadata={"size_bytes": size, "files": count, "destination": str(destination)},
        )

    def _download(self, url: str, path: Path) -> int:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": f"xwalkify/{__version__}"},
        )
        with urllib.request.urlopen(req, timeout=self._timeout) as resp:
            with path.open("wb") as f:
                shutil.copyfileobj(resp, f)
        size = path.stat().st_size
        logger.debug("Downloaded %d bytes from %s", size, url)
        return size


def _strip_top_level(name: str) -> str | None:
    """Member path without its first component, or None for the top dir.

    Raises:
        ValueError: If the member would escape the destination.
    """
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if not parts:
        return None
    if parts[0] == "/" or ".." in parts:
        raise ValueError(f"Unsafe path in archive: {name}")
    if len(parts) < 2:
        return None
    return str(PurePosixPath(*parts[1:]))


def extract_archive(archive: Path, destination: Path) -> int:
    """Extract ``archive`` into ``destination``, stripping one directory level.

    Returns:
        Number of regular files written.

    Raises:
        ValueError: Unknown archive format or unsafe member path.
        zipfile.BadZipFile, tarfile.TarError, OSError: Extraction failed.
        zlib.error, EOFError: A member is corrupt or truncated.
    """
    if zipfile.is_zipfile(archive):
        return _extract_zip(archive, destination)
    if tarfile.is_tarfile(archive):
        return _extract_tar(archive, destination)
    raise ValueError(f"Unsupported archive format: {archive.name}")


def _extract_zip(archive: Path, destination: Path) -> int:
    count = 0
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            relative = _strip_top_level(info.filename)
            if relative is None:
                continue
            target = destination / relative
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
            count += 1
    return count


def _extract_tar(archive: Path, destination: Path) -> int:
    count = 0
    with tarfile.open(archive) as tf:
        for member in tf.getmembers():
            relative = _strip_top_level(member.name)
            if relative is None:
                continue
            target = destination / relative
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            if not member.isfile():
                logger.debug("Skipping non-regular archive member: %s", member.name)
                continue
            src = tf.extractfile(member)
            if src is None:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
            count += 1
    return count
