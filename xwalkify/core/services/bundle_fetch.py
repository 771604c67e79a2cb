"""
Bundle fetch — download every architecture of a bundle, all or nothing.

Each archive is fetched into its own staging directory, in parallel when
there is more than one. Only when every transfer has finished and
succeeded are the staging trees merged into the shared destination, in
target order (a later architecture overwrites files from an earlier
one). Any failure purges the destination so a half-fetched bundle is
never mistaken for a complete one.
"""

from __future__ import annotations

import concurrent.futures
import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from xwalkify.adapters.base import Transport
from xwalkify.core.data.layout import BUNDLE_FRAMEWORK_DIR, BUNDLE_VERSION_FILE
from xwalkify.core.errors import TransportError, XwalkifyError
from xwalkify.core.models.receipt import Receipt
from xwalkify.core.models.release import DownloadTarget

logger = logging.getLogger(__name__)


def _staging_root(destination: Path) -> Path:
    return destination.parent / f".{destination.name}.staging"


def _purge(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path, ignore_errors=True)


def _fetch_all(
    targets: list[DownloadTarget],
    transport: Transport,
    staging: Path,
    on_progress: Callable[[str, str], None] | None,
) -> dict[str, Receipt]:
    """Run every fetch to completion and collect receipts by architecture."""

    def _fetch_one(target: DownloadTarget) -> tuple[DownloadTarget, Receipt]:
        return target, transport.fetch(target.url, staging / target.architecture)

    receipts: dict[str, Receipt] = {}

    for target in targets:
        if on_progress:
            on_progress(target.architecture, "started")

    # Single target → inline, multiple → threaded
    if len(targets) == 1:
        done = [_fetch_one(targets[0])]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(targets)) as pool:
            futures = [pool.submit(_fetch_one, t) for t in targets]
            done = [f.result() for f in concurrent.futures.as_completed(futures)]

    for target, receipt in done:
        receipts[target.architecture] = receipt
        if on_progress:
            on_progress(target.architecture, "done" if receipt.ok else "failed")
        if receipt.failed:
            logger.warning("Fetch failed for %s: %s", target.url, receipt.error)

    return receipts


def fetch_bundle(
    targets: list[DownloadTarget],
    transport: Transport,
    on_progress: Callable[[str, str], None] | None = None,
) -> Path:
    """Fetch and extract every target into their shared destination.

    Args:
        targets: Non-empty download plan.
        transport: Adapter doing the actual transfer.
        on_progress: Optional callback ``(architecture, status)`` with
            status one of started, done, failed.

    Returns:
        The destination directory holding the merged bundle.

    Raises:
        TransportError: Any fetch failed, or the merged tree is not a
            bundle. The destination is removed in both cases.
    """
    if not targets:
        raise TransportError("Nothing to download")

    destination = targets[0].destination
    staging = _staging_root(destination)

    # A fresh download never mixes with a previous extraction.
    _purge(destination)
    _purge(staging)

    try:
        staging.mkdir(parents=True, exist_ok=True)
        receipts = _fetch_all(targets, transport, staging, on_progress)

        failures = [
            f"{arch}: {receipt.error}"
            for arch, receipt in receipts.items()
            if receipt.failed
        ]
        if failures:
            raise TransportError(
                "Download failed: " + "; ".join(sorted(failures)),
                guidance="Check your network connection and that the version "
                         "exists on the channel, then run again.",
            )

        destination.mkdir(parents=True, exist_ok=True)
        for target in targets:
            extracted = staging / target.architecture
            if extracted.is_dir():
                shutil.copytree(extracted, destination, dirs_exist_ok=True)

        if not (destination / BUNDLE_FRAMEWORK_DIR).is_dir():
            raise TransportError(f"Downloaded bundle has no {BUNDLE_FRAMEWORK_DIR}/ directory")
        if not (destination / BUNDLE_VERSION_FILE).is_file():
            raise TransportError(f"Downloaded bundle has no {BUNDLE_VERSION_FILE} file")

    except XwalkifyError:
        _purge(destination)
        raise
    except OSError as e:
        _purge(destination)
        raise TransportError(f"Cannot assemble bundle in {destination}: {e}") from e
    finally:
        _purge(staging)

    logger.info("Bundle ready in %s (%d architecture(s))", destination, len(targets))
    return destination
