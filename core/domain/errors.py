"""
Domain Errors.

Error taxonomy shared by the mapper, the workflow engine and the
orchestrator:

- Validation errors: malformed input, never retried
- Business rule violations: typed, carry a machine-readable code
- Mapping failures: an external-event mapper raised
- Infrastructure errors: a collaborator or the bus misbehaved
"""
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from orchestration.models import BusinessProcessResult


class Fire22Error(Exception):
    """Base class for all errors raised by the back-office core."""

    code = "FIRE22_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(Fire22Error):
    """Input to a process or mapper is malformed."""

    code = "VALIDATION_ERROR"


# =============================================================================
# BUSINESS RULES
# =============================================================================

class BusinessRuleViolation(Fire22Error):
    """A domain invariant rejected the operation."""

    code = "BUSINESS_RULE_VIOLATION"


class InsufficientBalanceError(BusinessRuleViolation):
    """Stake or debit exceeds the available balance."""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, account_id: str, required: float, available: float):
        super().__init__(
            f"Insufficient balance for {account_id}: "
            f"required {required}, available {available}"
        )
        self.account_id = account_id
        self.required = required
        self.available = available


class BalanceOperationError(BusinessRuleViolation):
    """The Balance context answered with an unsuccessful envelope."""

    code = "BALANCE_OPERATION_FAILED"


class PaymentError(BusinessRuleViolation):
    """The Collections context rejected a payment."""

    code = "PAYMENT_REJECTED"


class HighRiskPaymentError(PaymentError):
    """Payment blocked by the Collections risk rules."""

    code = "HIGH_RISK_PAYMENT"


# =============================================================================
# MAPPING
# =============================================================================

class MappingError(Fire22Error):
    """A registered external-event mapper failed."""

    code = "MAPPING_FAILED"

    def __init__(
        self,
        message: str,
        external_type: str,
        event_id: Optional[str] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.external_type = external_type
        self.event_id = event_id
        self.payload = payload


# =============================================================================
# INFRASTRUCTURE
# =============================================================================

class CollaboratorError(Fire22Error):
    """A collaborator (Balance, Collections, gateway) could not be reached."""

    code = "COLLABORATOR_UNAVAILABLE"


class PublicationError(Fire22Error):
    """One or more subscribers failed while an event was being delivered."""

    code = "PUBLICATION_FAILED"


class IntrospectionNotAllowedError(Fire22Error):
    """Testing helpers were called with a production configuration."""

    code = "INTROSPECTION_NOT_ALLOWED"


# =============================================================================
# ORCHESTRATION
# =============================================================================

class WorkflowNotFoundError(Fire22Error):
    """No workflow definition is registered under the requested name."""

    code = "WORKFLOW_NOT_FOUND"


class StepFailedError(Fire22Error):
    """A required step failed and the run was aborted."""

    code = "STEP_FAILED"

    def __init__(self, step_id: str, step_name: str, cause: BaseException):
        super().__init__(f"Required step failed: {step_name} - {cause}")
        self.step_id = step_id
        self.step_name = step_name
        self.cause = cause


class ProcessFailedError(Fire22Error):
    """
    A business process failed.

    Carries the same ``BusinessProcessResult`` shape a successful run
    returns, populated with the failing step and the error.
    """

    code = "PROCESS_FAILED"

    def __init__(
        self, result: "BusinessProcessResult", cause: Optional[BaseException] = None
    ):
        super().__init__(result.error or "Business process failed")
        self.result = result
        self.cause = cause
