"""
Subtree replacer — swap CordovaLib for the bundle's framework.

Three strictly ordered sub-steps:

    1. delete   platforms/android/CordovaLib
    2. copy     <bundle>/framework  →  platforms/android/CordovaLib
    3. copy     <bundle>/VERSION    →  platforms/android/VERSION

This is the destructive part of a migration. Nothing is backed up, and
a failure in step 2 or 3 leaves the project without a CordovaLib until
the next successful run.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from xwalkify.core.data.layout import (
    BUNDLE_FRAMEWORK_DIR,
    BUNDLE_VERSION_FILE,
    BUNDLE_VERSION_MARKER,
    LIBRARY_DIR,
)
from xwalkify.core.errors import FilesystemError

logger = logging.getLogger(__name__)


def _delete_library(library: Path) -> None:
    if not library.exists():
        logger.info("%s already absent, nothing to delete", library)
        return
    try:
        shutil.rmtree(library)
    except OSError as e:
        raise FilesystemError(f"Cannot delete {library}: {e}") from e
    logger.info("Deleted %s", library)


def _install_framework(framework: Path, library: Path) -> None:
    try:
        shutil.copytree(framework, library)
    except OSError as e:
        raise FilesystemError(
            f"Cannot copy {framework} to {library}: {e}",
            guidance="CordovaLib has already been removed. Run xwalkify again "
                     "once the problem is fixed.",
        ) from e
    logger.info("Installed framework into %s", library)


def _install_version_marker(source: Path, marker: Path) -> None:
    try:
        shutil.copyfile(source, marker)
    except OSError as e:
        raise FilesystemError(f"Cannot copy {source} to {marker}: {e}") from e
    logger.info("Wrote version marker %s", marker)


def replace_framework(project_root: Path, bundle: Path) -> None:
    """Replace the project's library subtree with the bundle's framework.

    Args:
        project_root: Cordova project directory.
        bundle: Extracted bundle directory (holds ``framework/`` and ``VERSION``).

    Raises:
        FilesystemError: A sub-step failed. Earlier sub-steps are not undone.
    """
    library = project_root / LIBRARY_DIR

    _delete_library(library)
    _install_framework(bundle / BUNDLE_FRAMEWORK_DIR, library)
    _install_version_marker(bundle / BUNDLE_VERSION_FILE, project_root / BUNDLE_VERSION_MARKER)
