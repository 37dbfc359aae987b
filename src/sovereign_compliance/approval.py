"""Human approval of checks held in ``pending-approval``."""
from __future__ import annotations

import logging

from sovereign_compliance.audit.log import AuditLog
from sovereign_compliance.audit.records import ComplianceCheck
from sovereign_compliance.errors import InvalidRequest
from sovereign_compliance.verdict import Verdict

logger = logging.getLogger(__name__)


class ApprovalWorkflow:
    """Resolves pending checks with an approver's terminal decision.

    The workflow validates the decision and delegates the compare-and-swap
    to :meth:`AuditLog.resolve`, so a check is resolved at most once no
    matter how many approvers race on it.

    Parameters
    ----------
    audit_log:
        The log holding the checks to resolve.
    """

    def __init__(self, audit_log: AuditLog) -> None:
        self._audit_log = audit_log

    def approve(
        self,
        check_id: str,
        decision: Verdict | str,
        approver: str = "",
        note: str = "",
    ) -> ComplianceCheck:
        """Resolve a pending check.

        Parameters
        ----------
        check_id:
            The check to resolve.
        decision:
            ``allowed`` or ``denied``.
        approver:
            Identity of the approving authority.
        note:
            Free-text justification.

        Returns
        -------
        ComplianceCheck
            The effective view of the resolved check.

        Raises
        ------
        InvalidRequest
            If ``decision`` is not ``allowed`` or ``denied``.
        CheckNotFound
            If the check does not exist.
        AlreadyResolved
            If the check is not pending approval. Nothing is written.
        AuditWriteDeferred
            If the resolution could not be persisted. The check stays pending.
        """
        try:
            verdict = Verdict(decision)
        except ValueError:
            verdict = None
        if verdict is None or not verdict.is_terminal:
            raise InvalidRequest(
                f"Invalid approval decision {decision!r}. "
                "Expected 'allowed' or 'denied'."
            )
        logger.debug("Approval of %s requested by %s: %s", check_id, approver, verdict.value)
        return self._audit_log.resolve(check_id, verdict, approver=approver, note=note)


__all__ = [
    "ApprovalWorkflow",
]
