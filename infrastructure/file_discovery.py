"""Recursive knowledge-base file discovery"""
import logging
import os
from typing import Iterable, List

from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)


def discover_files(root: str, allowed_extensions: Iterable[str]) -> List[str]:
    """
    Walk root recursively and return absolute paths of files whose
    (case-insensitive) extension is in allowed_extensions.

    Entries are visited in name order within each directory so the result is
    reproducible for a fixed layout. A missing root yields [].
    """
    allowed = {ext.lower() for ext in allowed_extensions}
    root_path = os.path.abspath(root)
    if not os.path.isdir(root_path):
        logger.warning(f"Knowledge base folder not found: {root_path}")
        return []

    found: List[str] = []
    _walk(root_path, allowed, found)
    return found


def _walk(folder: str, allowed: set, found: List[str]) -> None:
    with os.scandir(folder) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        if entry.is_dir():
            _walk(entry.path, allowed, found)
        elif entry.is_file() and os.path.splitext(entry.name)[1].lower() in allowed:
            found.append(entry.path)
