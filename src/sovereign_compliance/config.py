"""Engine configuration.

:class:`EngineConfig` carries the tunables of the compliance service: audit
retry behaviour, the stats cache lifetime, which tenants and operations
always require human review, and optional file locations for the audit log
and the policy catalogue. It can be loaded from YAML::

    audit:
      max_retries: 3
      backoff_seconds: 0.05
      max_backoff_seconds: 2.0
      log_path: /var/lib/sovereign/audit.jsonl
    stats:
      cache_ttl_seconds: 5
    review:
      tenants: [tenant-gov-01]
      operations: [cross_border]
    policy_catalogue: /etc/sovereign/catalogue.yaml
"""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml

from sovereign_compliance.errors import ConfigurationError
from sovereign_compliance.policy.models import Operation


@dataclass
class EngineConfig:
    """Tunables for the compliance service.

    Attributes
    ----------
    audit_max_retries:
        Number of retries after the first failed audit write. Total attempts
        are ``audit_max_retries + 1``.
    audit_backoff_seconds:
        Base backoff before the first retry; doubled on each further retry.
    audit_max_backoff_seconds:
        Upper bound for a single backoff interval.
    audit_log_path:
        JSON-lines file for durable audit persistence. None keeps the audit
        log in memory.
    stats_cache_ttl_seconds:
        Lifetime of a computed stats snapshot. 0 disables caching.
    review_tenants:
        Tenants whose checks always require human review.
    review_operations:
        Operations that always require human review.
    policy_catalogue:
        YAML policy catalogue to load at start-up. None uses the built-in
        default catalogue.
    """

    audit_max_retries: int = 3
    audit_backoff_seconds: float = 0.05
    audit_max_backoff_seconds: float = 2.0
    audit_log_path: Path | None = None
    stats_cache_ttl_seconds: float = 5.0
    review_tenants: list[str] = field(default_factory=list)
    review_operations: list[Operation] = field(default_factory=list)
    policy_catalogue: Path | None = None

    def __post_init__(self) -> None:
        if self.audit_max_retries < 0:
            raise ConfigurationError(
                f"audit_max_retries must be >= 0, got {self.audit_max_retries}"
            )
        if self.audit_backoff_seconds < 0 or self.audit_max_backoff_seconds < 0:
            raise ConfigurationError("Audit backoff intervals must be >= 0.")
        if self.stats_cache_ttl_seconds < 0:
            raise ConfigurationError(
                f"stats_cache_ttl_seconds must be >= 0, got {self.stats_cache_ttl_seconds}"
            )
        try:
            self.review_operations = [Operation(op) for op in self.review_operations]
        except ValueError as exc:
            raise ConfigurationError(f"Invalid review operation: {exc}") from exc
        if self.audit_log_path is not None:
            self.audit_log_path = Path(self.audit_log_path)
        if self.policy_catalogue is not None:
            self.policy_catalogue = Path(self.policy_catalogue)

    def backoff_for(self, attempt: int) -> float:
        """Return the backoff in seconds before retry number ``attempt`` (1-based)."""
        return min(self.audit_backoff_seconds * (2 ** (attempt - 1)), self.audit_max_backoff_seconds)

    def requires_review(self, tenant_id: str, operation: Operation) -> bool:
        """Return True if the tenant or operation is flagged for human review."""
        return tenant_id in self.review_tenants or operation in self.review_operations


def config_from_dict(data: Any) -> EngineConfig:
    """Build an EngineConfig from a parsed YAML mapping.

    Raises
    ------
    ConfigurationError
        If the mapping has the wrong shape or invalid values.
    """
    if data is None:
        return EngineConfig()
    if not isinstance(data, dict):
        raise ConfigurationError("Engine configuration must be a mapping at the top level.")

    audit = data.get("audit") or {}
    stats = data.get("stats") or {}
    review = data.get("review") or {}
    try:
        return EngineConfig(
            audit_max_retries=int(audit.get("max_retries", 3)),
            audit_backoff_seconds=float(audit.get("backoff_seconds", 0.05)),
            audit_max_backoff_seconds=float(audit.get("max_backoff_seconds", 2.0)),
            audit_log_path=audit.get("log_path"),
            stats_cache_ttl_seconds=float(stats.get("cache_ttl_seconds", 5.0)),
            review_tenants=[str(t) for t in review.get("tenants") or []],
            review_operations=list(review.get("operations") or []),
            policy_catalogue=data.get("policy_catalogue"),
        )
    except ConfigurationError:
        raise
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid engine configuration: {exc}") from exc


def load_config(source: Union[str, Path, None] = None) -> EngineConfig:
    """Load an EngineConfig from a YAML file, a YAML string, or defaults.

    Parameters
    ----------
    source:
        Path to a YAML file, a YAML string, or None for defaults.

    Returns
    -------
    EngineConfig
        The loaded configuration.
    """
    if source is None:
        return EngineConfig()
    if isinstance(source, Path):
        text = source.read_text(encoding="utf-8")
    else:
        path = Path(source)
        try:
            is_file = path.is_file()
        except OSError:
            is_file = False
        text = path.read_text(encoding="utf-8") if is_file else source
    try:
        data = yaml.safe_load(io.StringIO(text))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Engine configuration is not valid YAML: {exc}") from exc
    return config_from_dict(data)


__all__ = [
    "EngineConfig",
    "config_from_dict",
    "load_config",
]
