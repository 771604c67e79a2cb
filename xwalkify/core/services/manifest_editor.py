"""
Manifest editor — guarantee Crosswalk's permissions in AndroidManifest.xml.

The Crosswalk runtime needs ACCESS_NETWORK_STATE and ACCESS_WIFI_STATE.
This module parses the manifest into an ElementTree, adds whichever of
them is missing, collapses duplicates, and writes the document back.

Presence is decided by structural equality on a canonical key
``(tag, android:name)``, never by comparing serialized text, so
attribute order, quoting and whitespace don't matter. Editing is
idempotent: patching an already-patched manifest changes nothing.
"""

from __future__ import annotations

import logging
import os
import tempfile
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from pathlib import Path

from xwalkify.core.data.layout import REQUIRED_PERMISSIONS
from xwalkify.core.errors import DocumentError, FilesystemError

logger = logging.getLogger(__name__)

ANDROID_NS = "http://schemas.android.com/apk/res/android"
ANDROID_NAME = f"{{{ANDROID_NS}}}name"

PERMISSION_TAG = "uses-permission"
APPLICATION_TAG = "application"

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'

PermissionKey = tuple[str, str | None]


# ── Canonical keys ──────────────────────────────────────────────


def permission_key(name: str) -> PermissionKey:
    """Canonical key of a ``<uses-permission android:name=...>`` node."""
    return (PERMISSION_TAG, name)


def canonical_key(element: ET.Element) -> PermissionKey:
    """Canonical key of an existing element."""
    return (element.tag, element.get(ANDROID_NAME))


def _permission_nodes(root: ET.Element) -> list[ET.Element]:
    return [child for child in root if child.tag == PERMISSION_TAG]


# ── Parse / serialize ───────────────────────────────────────────


def parse_manifest(data: bytes | str) -> ET.ElementTree:
    """Parse manifest text into a tree, keeping comments.

    Raises:
        DocumentError: The text is not well-formed XML.
    """
    ET.register_namespace("android", ANDROID_NS)
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    try:
        root = ET.fromstring(data, parser=parser)
    except ET.ParseError as e:
        raise DocumentError(
            f"Cannot parse AndroidManifest.xml: {e}",
            guidance="Fix the manifest by hand or regenerate it with "
                     "'cordova platform rm android && cordova platform add android'.",
        ) from e
    return ET.ElementTree(root)


def serialize_manifest(document: ET.ElementTree) -> str:
    """Serialize a tree back to manifest text with an XML declaration.

    Raises:
        DocumentError: The tree holds something ElementTree can't write.
    """
    ET.register_namespace("android", ANDROID_NS)
    try:
        body = ET.tostring(document.getroot(), encoding="unicode")
    except (TypeError, ValueError) as e:
        raise DocumentError(f"Cannot serialize AndroidManifest.xml: {e}") from e
    return XML_DECLARATION + body + "\n"


# ── Editing ─────────────────────────────────────────────────────


def missing_permissions(
    root: ET.Element,
    required: Iterable[str] = REQUIRED_PERMISSIONS,
) -> list[str]:
    """Required permission names not yet declared under ``root``."""
    present = {canonical_key(node) for node in _permission_nodes(root)}
    return [name for name in required if permission_key(name) not in present]


def _drop_duplicates(root: ET.Element, tracked: set[PermissionKey]) -> int:
    """Remove repeat declarations of tracked permissions, keeping the first."""
    seen: set[PermissionKey] = set()
    removed = 0
    for node in _permission_nodes(root):
        key = canonical_key(node)
        if key not in tracked:
            continue
        if key in seen:
            root.remove(node)
            removed += 1
        else:
            seen.add(key)
    return removed


def _insert_permission(root: ET.Element, name: str) -> ET.Element:
    """Insert a declaration at the end of the permission collection.

    With no existing declarations the collection starts right before
    ``<application>``, or at the end of the root if there is none.
    Indentation is borrowed from the neighbouring node.
    """
    node = ET.Element(PERMISSION_TAG, {ANDROID_NAME: name})
    children = list(root)

    positions = [i for i, child in enumerate(children) if child.tag == PERMISSION_TAG]
    if positions:
        anchor = children[positions[-1]]
        node.tail = anchor.tail
        root.insert(positions[-1] + 1, node)
        return node

    app_index = next(
        (i for i, child in enumerate(children) if child.tag == APPLICATION_TAG),
        None,
    )
    if app_index is not None:
        node.tail = children[app_index - 1].tail if app_index > 0 else root.text
        root.insert(app_index, node)
        return node

    if children:
        node.tail = children[-1].tail
        children[-1].tail = root.text
    root.append(node)
    return node


def ensure_permissions(
    document: ET.ElementTree,
    required: Iterable[str] = REQUIRED_PERMISSIONS,
) -> ET.ElementTree:
    """Make every required permission appear exactly once.

    Missing permissions are appended in the order given; existing
    declarations keep their position. The tree is edited in place and
    returned.
    """
    required = list(required)
    root = document.getroot()

    removed = _drop_duplicates(root, {permission_key(name) for name in required})
    if removed:
        logger.info("Removed %d duplicate permission declaration(s)", removed)

    for name in missing_permissions(root, required):
        _insert_permission(root, name)
        logger.info("Added permission %s", name)

    return document


# ── File round-trip ─────────────────────────────────────────────


def _write_atomic(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then rename over."""
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".manifest_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def patch_manifest_file(
    path: Path,
    required: Iterable[str] = REQUIRED_PERMISSIONS,
) -> list[str]:
    """Read, edit and write back the manifest at ``path``.

    Returns:
        The permission names that were added.

    Raises:
        FilesystemError: The file can't be read or written.
        DocumentError: The file can't be parsed or serialized.
    """
    required = list(required)

    try:
        data = path.read_bytes()
    except OSError as e:
        raise FilesystemError(f"Cannot read {path}: {e}") from e

    document = parse_manifest(data)
    added = missing_permissions(document.getroot(), required)
    ensure_permissions(document, required)
    content = serialize_manifest(document)

    try:
        _write_atomic(path, content)
    except OSError as e:
        raise FilesystemError(f"Cannot write {path}: {e}") from e

    logger.debug("Manifest written to %s (%d permission(s) added)", path, len(added))
    return added
