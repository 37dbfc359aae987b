#!/usr/bin/env python3
"""Example: Approval workflow and replay

Demonstrates a critical-infrastructure check that needs authority sign-off,
resolving it, publishing a policy change, and replaying the original check
against the policy version it was decided on.

Usage:
    python examples/02_approval_workflow.py

Requirements:
    pip install sovereign-compliance
"""
from __future__ import annotations

from sovereign_compliance import AlreadyResolved, GeoRestriction, RestrictionLevel, create_service


def main() -> None:
    service = create_service()

    # Step 1: Critical sectors never auto-allow
    check = service.check(
        "data_processing", "SA",
        sector_mode="critical-infrastructure",
        tenant_id="grid-operator",
        data_types=["critical-infrastructure"],
        encrypted=True,
    )
    print(f"Check {check.check_id}: {check.verdict.value}")
    for condition in check.result.conditions:
        print(f"  condition: {condition.text}")

    # Step 2: An authority resolves it exactly once
    resolved = service.approve(check.check_id, "allowed", approver="ncema", note="Reviewed")
    print(f"\nResolved by {resolved.resolution.approver}: {resolved.verdict.value}")
    try:
        service.approve(check.check_id, "denied", approver="someone-else")
    except AlreadyResolved as exc:
        print(f"Second approval rejected: {exc}")

    # Step 3: Publish a policy change; every publication is audited
    service.add_restriction(
        GeoRestriction(
            restriction_id="geo-ir",
            country_code="IR",
            restriction_level=RestrictionLevel.PROHIBITED,
        )
    )
    print(f"\nPolicy store now at version {service.store.version}")

    # Step 4: The original decision still replays against its own version
    print(f"Replay reproduces recorded result: {service.replay(check.check_id)}")

    print("\nAudit trail:")
    for entry in service.audit_log.entries():
        print(f"  #{entry.sequence} {entry.action.value}")


if __name__ == "__main__":
    main()
