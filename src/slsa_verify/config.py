"""Settings loaded from environment variables and an optional YAML file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "SLSA_VERIFY_"

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "slsa-verify" / "config.yaml"

GITHUB_ACTIONS_ISSUER = "https://token.actions.githubusercontent.com"


class Settings(BaseSettings):
    """slsa-verify settings.

    All values can be overridden via environment variables with the
    SLSA_VERIFY_ prefix. Example: SLSA_VERIFY_COMMAND_TIMEOUT=120
    """

    oidc_issuer: str = GITHUB_ACTIONS_ISSUER
    # Identities used by the stand-alone stage commands
    signature_identity: str = (
        "https://github.com/fystack/slsa-workflows/.github/workflows/docker-build-slsa.yml@.*"
    )
    provenance_identity: str = (
        "https://github.com/slsa-framework/slsa-github-generator/.github/workflows/"
        "generator_container_slsa3.yml@.*"
    )
    # Orchestrator identity, formatted with the org/repo argument
    identity_template: str = "https://github.com/{repo}/.github/workflows/.*@.*"
    rekor_search_url: str = "https://search.sigstore.dev/?logIndex={log_index}"
    command_timeout: int | None = None  # None = defer to the tool's own defaults
    color: bool = True
    materials_shown: int = 5
    packages_shown: int = 10
    rekor_matches_shown: int = 3

    model_config = {"env_prefix": ENV_PREFIX}

    def identity_for_repo(self, repo: str) -> str:
        """Build the certificate identity regex for a GitHub org/repo."""
        return self.identity_template.format(repo=repo)


def _read_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML config file, returning {} if it is missing or unreadable."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not a mapping", path)
        return {}
    return data


def load_settings(config_path: Path | None = None) -> Settings:
    """Build Settings from the YAML config file and the environment.

    Resolution order for the file: explicit path → SLSA_VERIFY_CONFIG env var →
    ~/.config/slsa-verify/config.yaml. Environment variables win over file values.
    """
    if config_path is None:
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    file_values = _read_config_file(config_path)
    known = Settings.model_fields
    overrides = {}
    for key, value in file_values.items():
        if key not in known:
            logger.warning("Unknown setting '%s' in %s", key, config_path)
            continue
        if f"{ENV_PREFIX}{key.upper()}" in os.environ:
            continue
        overrides[key] = value

    return Settings(**overrides)
