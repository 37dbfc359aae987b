"""AWS Lambda entry point for the sovereign compliance service."""
import os
from typing import Any

from sovereign_compliance import create_service
from sovereign_compliance.handler import handle

# One service per container; warm invocations reuse the loaded catalogue.
_SERVICE = create_service(os.environ.get("SOVEREIGN_COMPLIANCE_CONFIG"))


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Route an API gateway event to the compliance service."""
    return handle(event, _SERVICE)
