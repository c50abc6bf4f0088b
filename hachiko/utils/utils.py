"""
Hachiko Utilities
"""

import hashlib
from typing import Optional, Tuple


def mask_secret(secret: str, length: int = 5) -> str:
    """Return a short SHA-256 hash of a secret for logging."""
    h = hashlib.sha256(str(secret).encode("utf-8")).hexdigest()
    return f"<masked:{h[:length]}>"


def parse_repo_name(repository: str) -> Optional[Tuple[str, str]]:
    """Split 'owner/repo' into (owner, repo), or None if the format is wrong."""
    parts = (repository or "").strip().split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]
