"""Indexer configuration gate.

Runs before any network call and turns loosely-typed settings into
immutable IndexerProfiles, or fails with an actionable ConfigError.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from aggregarr.domain.entities import (
    ConfigIncomplete,
    ConfigMissing,
    IndexerProfile,
)
from aggregarr.domain.ports import IndexerSettingsLike

log = structlog.get_logger(__name__)

SUPPORTED_PROTOCOLS: frozenset[str] = frozenset({"newznab"})


def _missing_fields(settings: IndexerSettingsLike) -> list[str]:
    missing: list[str] = []
    if not (settings.name or "").strip():
        missing.append("name")
    if not (settings.base_url or "").strip():
        missing.append("base URL")
    if not (settings.api_key or "").strip():
        missing.append("API key")
    return missing


def _to_profile(settings: IndexerSettingsLike) -> IndexerProfile:
    return IndexerProfile(
        name=settings.name.strip(),
        base_url=settings.base_url.strip(),
        api_key=(settings.api_key or "").strip(),
        enabled=settings.enabled,
        timeout_seconds=settings.timeout_seconds,
        protocol=settings.protocol,  # type: ignore[arg-type]
        categories=frozenset(settings.categories),
    )


def check_indexer_config(
    settings: Sequence[IndexerSettingsLike] | None,
    *,
    redirect_to: str = "/config",
) -> list[IndexerProfile]:
    """Validate the loaded indexer settings.

    Args:
        settings: What the config source loaded; None if nothing was loadable.
        redirect_to: Hint telling the caller where configuration can be fixed.

    Returns:
        The enabled, supported profiles in configuration order. Empty when
        every profile is disabled (not an error).

    Raises:
        ConfigMissing: No configuration, or no indexer in it.
        ConfigIncomplete: A profile lacks its name, base URL or API key.
    """
    if not settings:
        raise ConfigMissing(
            "Configuration not found. Please configure your settings first.",
            redirect_to=redirect_to,
        )

    profiles: list[IndexerProfile] = []
    for position, entry in enumerate(settings):
        missing = _missing_fields(entry)
        if missing:
            label = (entry.name or "").strip() or f"#{position + 1}"
            raise ConfigIncomplete(
                f"Indexer configuration is incomplete ({label}: missing "
                f"{', '.join(missing)}). Please check your settings.",
                redirect_to=redirect_to,
            )
        profiles.append(_to_profile(entry))

    enabled: list[IndexerProfile] = []
    for profile in profiles:
        if not profile.enabled:
            log.info("indexer_disabled", indexer=profile.name)
            continue
        if profile.protocol not in SUPPORTED_PROTOCOLS:
            log.warning(
                "indexer_protocol_unsupported",
                indexer=profile.name,
                protocol=profile.protocol,
            )
            continue
        enabled.append(profile)

    return enabled
