"""Common utilities: hashing, previews and path management"""
import hashlib
import os


# ⚠️ DO NOT import settings here - config.py imports this module

# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Returns the full log file path (directory is created by setup_logging)."""
    return os.path.join(get_project_root(), 'log', 'rag_system.log')


# ============= Text Utilities =============

def get_content_hash(content: str) -> str:
    """Calculates the SHA256 hash of the exact UTF-8 bytes of content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def truncate_preview(text: str, max_chars: int) -> str:
    """Cut text to at most max_chars characters (no ellipsis, it feeds a prompt)."""
    if max_chars <= 0:
        return ""
    return text[:max_chars]


def get_file_extension(filename: str) -> str:
    """Extracts and normalizes the file extension (with leading dot)."""
    return os.path.splitext(filename)[1].lower()
