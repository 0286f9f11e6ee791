"""Helpers for downloading occurrence exports and tracking cache metadata."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

import requests

METADATA_SUFFIX = ".meta.json"


def sha256sum(path: Path) -> str:
    """Compute the SHA256 checksum for a file."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def metadata_path(path: Path) -> Path:
    return path.with_name(path.name + METADATA_SUFFIX)


def read_metadata(path: Path) -> Mapping[str, Any]:
    """Load metadata JSON attached to a download, returning an empty mapping on failure."""
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError:
        return {}


def write_metadata(path: Path, payload: Mapping[str, Any]) -> None:
    path.write_text(json.dumps(payload, indent=2, sort_keys=True))


def needs_download(dest: Path, url: str, expected_sha: Optional[str]) -> bool:
    """Determine whether the export must be fetched again."""
    if not dest.exists():
        return True
    meta = read_metadata(metadata_path(dest))
    if meta.get("url") not in (None, url):
        return True
    if not expected_sha:
        return False
    return sha256sum(dest) != expected_sha


def download_stream(url: str, dest: Path, timeout: int = 60) -> None:
    """Stream a remote file to disk atomically."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with tempfile.NamedTemporaryFile(delete=False, dir=dest.parent) as tmp:
            try:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        tmp.write(chunk)
            except BaseException:
                tmp.close()
                os.unlink(tmp.name)
                raise
    os.replace(tmp.name, dest)


def download_occurrences(
    url: str,
    dest: Path,
    force: bool = False,
    expected_sha: Optional[str] = None,
) -> Path:
    """Fetch an occurrence export unless a matching copy is already cached."""
    if not force and not needs_download(dest, url, expected_sha):
        print(f"[datahub] Using cached occurrences at {dest}")
        return dest

    print(f"[datahub] Downloading occurrences from {url}")
    download_stream(url, dest)
    checksum = sha256sum(dest)
    if expected_sha and checksum != expected_sha:
        raise ValueError(f"Checksum mismatch for {dest}: expected {expected_sha}, got {checksum}.")
    write_metadata(metadata_path(dest), {"url": url, "sha256": checksum})
    print(f"[datahub] Saved occurrences → {dest}")
    return dest


__all__ = [
    "METADATA_SUFFIX",
    "download_occurrences",
    "download_stream",
    "metadata_path",
    "needs_download",
    "read_metadata",
    "sha256sum",
    "write_metadata",
]
