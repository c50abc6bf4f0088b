import os
from dataclasses import dataclass
from typing import List, Optional

import bittensor as bt
from dotenv import load_dotenv

from hachiko.constants import DEFAULT_MIGRATIONS_DIR, DEFAULT_REF
from hachiko.utils.utils import mask_secret, parse_repo_name

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment (and .env) at call time."""

    github_token: Optional[str]
    repository: Optional[str]
    ref: str = DEFAULT_REF
    migrations_dir: str = DEFAULT_MIGRATIONS_DIR

    @property
    def owner(self) -> Optional[str]:
        parsed = parse_repo_name(self.repository or '')
        return parsed[0] if parsed else None

    @property
    def repo(self) -> Optional[str]:
        parsed = parse_repo_name(self.repository or '')
        return parsed[1] if parsed else None

    def validate(self) -> List[str]:
        errors = []
        if not self.github_token:
            errors.append("GITHUB_TOKEN environment variable is required")
        if not self.repository:
            errors.append("GITHUB_REPOSITORY environment variable is required")
        elif parse_repo_name(self.repository) is None:
            errors.append("Invalid GITHUB_REPOSITORY format. Expected: owner/repo")
        return errors


def get_settings() -> Settings:
    settings = Settings(
        github_token=os.getenv('GITHUB_TOKEN') or os.getenv('GITHUB_PAT'),
        repository=os.getenv('GITHUB_REPOSITORY'),
        ref=os.getenv('HACHIKO_REF', DEFAULT_REF),
        migrations_dir=os.getenv('HACHIKO_MIGRATIONS_DIR', DEFAULT_MIGRATIONS_DIR).strip('/'),
    )

    token_str = mask_secret(settings.github_token) if settings.github_token else None
    bt.logging.debug(f"GITHUB_TOKEN: {token_str}")
    bt.logging.debug(f"GITHUB_REPOSITORY: {settings.repository}")
    bt.logging.debug(f"HACHIKO_REF: {settings.ref}")
    bt.logging.debug(f"HACHIKO_MIGRATIONS_DIR: {settings.migrations_dir}")
    return settings
