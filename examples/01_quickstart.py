#!/usr/bin/env python3
"""Example: Quickstart for sovereign-compliance

Minimal working example: build a service from the default catalogue, run
a few compliance checks, and read the stats.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install sovereign-compliance
"""
from __future__ import annotations

import sovereign_compliance
from sovereign_compliance import create_service


def main() -> None:
    print(f"sovereign-compliance version: {sovereign_compliance.__version__}")

    service = create_service()

    # Step 1: Sovereign government data must not leave Saudi Arabia
    check = service.check(
        "cross_border", "SA", "US",
        sector_mode="civilian",
        tenant_id="tenant-demo",
        data_types=["government"],
    )
    print(f"SA -> US government data: {check.verdict.value}")
    for violation in check.result.violations:
        print(f"  [{violation.severity.value}] {violation.code.value}: {violation.message[:60]}")

    # Step 2: Local encrypted storage in the government sector
    check = service.check(
        "data_storage", "SA",
        sector_mode="government",
        tenant_id="tenant-demo",
        data_types=["government"],
        encrypted=True,
    )
    print(f"\nSA local government storage: {check.verdict.value}")

    # Step 3: Transfer within the GCC attaches conditions
    check = service.check(
        "data_transfer", "AE", "SA",
        sector_mode="civilian",
        tenant_id="tenant-demo",
        data_types=["personal"],
        encrypted=True,
    )
    print(f"\nAE -> SA personal data: {check.verdict.value}")
    for condition in check.result.conditions:
        print(f"  condition: {condition.text}")

    # Step 4: Stats recomputed from the audit log
    stats = service.stats()
    print("\nStats:")
    print(f"  Checks: {stats.total_checks} "
          f"(allowed={stats.checks_allowed}, denied={stats.checks_denied}, "
          f"conditional={stats.checks_conditional}, pending={stats.checks_pending})")
    print(f"  Active policies: {stats.active_policies}/{stats.total_policies}")


if __name__ == "__main__":
    main()
