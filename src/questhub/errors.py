"""Ledger error taxonomy.

Every failure is a precondition violation that aborts the whole operation.
Each kind carries a stable machine-readable ``code`` and the HTTP status the
API surfaces it with.
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for all caller-visible ledger failures."""

    code = "ELedger"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "detail": self.message}


# --- Version ---


class WrongVersionError(LedgerError):
    """Object version does not match the running protocol version."""

    code = "EWrongVersion"
    status_code = 409


class NotUpgradeError(LedgerError):
    """Object is already at the current protocol version."""

    code = "ENotUpgrade"
    status_code = 409


# --- Authorization ---


class NotAuthorizedError(LedgerError):
    """Capability is missing, of the wrong kind, or bound to another space."""

    code = "ENotAuthorized"
    status_code = 403


class NotSpaceCreatorError(LedgerError):
    """Sender has no space-creation credit."""

    code = "ENotSpaceCreator"
    status_code = 403


class NotRewardOwnerError(LedgerError):
    """Only the current owner may transfer a reward."""

    code = "ENotRewardOwner"
    status_code = 403


# --- Temporal ---


class InvalidTimeError(LedgerError):
    """Current time is outside the journey window."""

    code = "EInvalidTime"
    status_code = 422


# --- State machine ---


class QuestAlreadyStartedError(LedgerError):
    """Quest already started by this user."""

    code = "EQuestAlreadyStarted"
    status_code = 409


class QuestNotStartedError(LedgerError):
    """Quest must be started before it can be completed."""

    code = "EQuestNotStarted"
    status_code = 409


class QuestAlreadyCompletedError(LedgerError):
    """Quest already completed by this user."""

    code = "EQuestAlreadyCompleted"
    status_code = 409


class JourneyAlreadyCompletedError(LedgerError):
    """Journey reward already claimed by this user."""

    code = "EJourneyAlreadyCompleted"
    status_code = 409


class JourneyNotCompletedError(LedgerError):
    """User has not reached the journey's required points."""

    code = "EJourneyNotCompleted"
    status_code = 409


class RewardNotTransferableError(LedgerError):
    """Non-transferable rewards are bound to their claimer."""

    code = "ERewardNotTransferable"
    status_code = 409


# --- Configuration ---


class InvalidRewardTypeError(LedgerError):
    """Reward type must be Transferable or NonTransferable."""

    code = "EInvalidRewardType"
    status_code = 400


class JourneyNotEmptyError(LedgerError):
    """Journey still contains quests."""

    code = "EJourneyNotEmpty"
    status_code = 400


class InvalidFieldError(LedgerError):
    """Field is not editable or the value has the wrong type."""

    code = "EInvalidField"
    status_code = 400


# --- Payment ---


class IncorrectPaymentError(LedgerError):
    """Payment must equal the configured fee exactly."""

    code = "EIncorrectPayment"
    status_code = 402


# --- Lookup / protocol ---


class NotFoundError(LedgerError):
    """Object does not exist."""

    code = "ENotFound"
    status_code = 404


class AlreadyInitializedError(LedgerError):
    """Protocol hub already exists."""

    code = "EAlreadyInitialized"
    status_code = 409


class NotInitializedError(LedgerError):
    """Protocol hub has not been initialized."""

    code = "ENotInitialized"
    status_code = 409
