"""Country-to-region membership used to match residency policies.

A residency policy is scoped to a region code (``"GCC"``, ``"SAUDI_ARABIA"``,
``"EU"``). This module answers which region codes cover a given ISO 3166-1
alpha-2 country code, so that a request from ``"SA"`` is matched against the
``SAUDI_ARABIA``, ``GCC`` and ``MENA`` policies.
"""
from __future__ import annotations

_GCC = ("SA", "AE", "QA", "KW", "BH", "OM")
_EU = (
    "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "ES", "FI",
    "FR", "GR", "HR", "HU", "IE", "IT", "LT", "LU", "LV", "MT",
    "NL", "PL", "PT", "RO", "SE", "SI", "SK",
)

# Region code -> member country codes
_REGION_MEMBERS: dict[str, tuple[str, ...]] = {
    # Country-level regions
    "SAUDI_ARABIA": ("SA",),
    "UAE": ("AE",),
    "EGYPT": ("EG",),
    "QATAR": ("QA",),
    "KUWAIT": ("KW",),
    "BAHRAIN": ("BH",),
    "OMAN": ("OM",),
    "JORDAN": ("JO",),
    "US": ("US",),
    # Blocs
    "GCC": _GCC,
    "MENA": _GCC + ("EG", "JO", "LB", "IQ", "MA", "TN", "DZ", "LY", "YE", "SY", "PS"),
    "EU": _EU,
    "EEA": _EU + ("IS", "LI", "NO"),
    "APAC": ("AU", "CN", "HK", "IN", "ID", "JP", "KR", "MY", "NZ", "PH", "SG", "TH", "TW", "VN"),
    "LATAM": ("AR", "BO", "BR", "CL", "CO", "EC", "MX", "PE", "PY", "UY", "VE"),
    "AFRICA": ("DZ", "EG", "ET", "GH", "KE", "LY", "MA", "NG", "TN", "ZA"),
}


class JurisdictionMap:
    """Resolves region membership for country codes.

    Parameters
    ----------
    extra_members:
        Optional extension of the built-in region table. Keys are region
        codes, values are the member country codes. Entries for an existing
        region replace its members.
    """

    def __init__(self, extra_members: dict[str, list[str]] | None = None) -> None:
        self._members: dict[str, frozenset[str]] = {
            region: frozenset(members) for region, members in _REGION_MEMBERS.items()
        }
        for region, members in (extra_members or {}).items():
            self._members[region.upper()] = frozenset(m.upper() for m in members)

    def regions_for(self, country: str) -> list[str]:
        """Return the sorted region codes whose membership includes ``country``.

        Parameters
        ----------
        country:
            ISO 3166-1 alpha-2 country code (or a region code).

        Returns
        -------
        list[str]
            Region codes covering the country. A region code passed as
            ``country`` covers itself.
        """
        code = country.upper()
        regions = {region for region, members in self._members.items() if code in members}
        if code in self._members:
            regions.add(code)
        return sorted(regions)

    def covers(self, region: str, country: str) -> bool:
        """Return True if ``region`` covers ``country``.

        A region covers a country when the codes are equal or when the
        country is a listed member of the region.
        """
        region_code = region.upper()
        code = country.upper()
        if region_code == code:
            return True
        return code in self._members.get(region_code, frozenset())

    def known_regions(self) -> list[str]:
        """Return a sorted list of all known region codes."""
        return sorted(self._members)


__all__ = ["JurisdictionMap"]
