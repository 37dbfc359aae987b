"""Compliance request record.

A :class:`ComplianceRequest` describes one proposed data operation. It is
validated and normalised on construction; a malformed request raises
:class:`~sovereign_compliance.errors.InvalidRequest` before any evaluation
or audit takes place.
"""
from __future__ import annotations

from dataclasses import dataclass

from sovereign_compliance.errors import InvalidRequest
from sovereign_compliance.policy.models import (
    AuditLevel,
    EncryptionStandard,
    Operation,
    normalise_data_types,
)


def _coerce_enum(enum_cls: type, value: object, field_name: str) -> object:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidRequest(
            f"Invalid {field_name} {value!r}. Must be one of: {allowed}"
        ) from None


@dataclass(frozen=True)
class ComplianceRequest:
    """A proposed data operation to be evaluated.

    Attributes
    ----------
    tenant_id:
        Tenant on whose behalf the operation runs.
    operation:
        Kind of operation (transfer, storage, processing, cross-border).
    source_country:
        Country the data originates from (ISO 3166-1 alpha-2).
    sector_mode:
        Raw sector mode string. Unknown modes are accepted here and fall
        back to civilian defaults during evaluation.
    target_country:
        Destination country, or None when the operation stays in place.
        An empty string is treated as None.
    data_types:
        Data classifications involved (e.g. ``"personal"``, ``"government"``).
        Stripped and lower-cased so they match policy data types.
    encrypted:
        Encryption attestation. None or False means not attested.
    encryption_standard:
        Declared encryption standard, if any. Undeclared is assumed to
        meet the sector minimum.
    audit_level:
        Declared audit level, if any. Undeclared is assumed to meet the
        sector minimum.
    requires_review:
        Caller flag forcing human review of the outcome.
    checked_by:
        Identity of the actor requesting the check.
    """

    tenant_id: str
    operation: Operation
    source_country: str
    sector_mode: str
    target_country: str | None = None
    data_types: tuple[str, ...] = ()
    encrypted: bool | None = None
    encryption_standard: EncryptionStandard | None = None
    audit_level: AuditLevel | None = None
    requires_review: bool = False
    checked_by: str = ""

    def __post_init__(self) -> None:
        if not self.tenant_id or not str(self.tenant_id).strip():
            raise InvalidRequest("tenant_id is required.")
        if not self.source_country or not str(self.source_country).strip():
            raise InvalidRequest("source_country is required.")
        if not self.sector_mode or not str(self.sector_mode).strip():
            raise InvalidRequest("sector_mode is required.")
        if self.operation is None or self.operation == "":
            raise InvalidRequest("operation is required.")
        if isinstance(self.data_types, str):
            raise InvalidRequest("data_types must be a list of strings, not a single string.")

        object.__setattr__(self, "tenant_id", str(self.tenant_id).strip())
        object.__setattr__(self, "operation", _coerce_enum(Operation, self.operation, "operation"))
        object.__setattr__(self, "source_country", str(self.source_country).strip().upper())
        target = (self.target_country or "").strip().upper()
        object.__setattr__(self, "target_country", target or None)
        object.__setattr__(self, "sector_mode", str(self.sector_mode).strip())
        object.__setattr__(self, "data_types", normalise_data_types(self.data_types))
        object.__setattr__(
            self,
            "encryption_standard",
            _coerce_enum(EncryptionStandard, self.encryption_standard, "encryption_standard"),
        )
        object.__setattr__(
            self, "audit_level", _coerce_enum(AuditLevel, self.audit_level, "audit_level")
        )

    @property
    def is_cross_border(self) -> bool:
        """Return True if the operation moves data out of the source country."""
        if self.operation == Operation.CROSS_BORDER:
            return True
        return self.target_country is not None and self.target_country != self.source_country

    @property
    def countries(self) -> list[str]:
        """Return the source country followed by a distinct target country."""
        if self.target_country and self.target_country != self.source_country:
            return [self.source_country, self.target_country]
        return [self.source_country]


__all__ = ["ComplianceRequest"]
