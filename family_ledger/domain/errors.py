"""
Error taxonomy shared by every use case.

All of these are caller or state errors: retrying the same call cannot change
the outcome. The HTTP layer maps each class to one status code.
"""


class FamilyLedgerError(Exception):
    """Base class for expected domain failures"""
    pass


class UnauthorizedError(FamilyLedgerError):
    """No valid identity on the request"""
    pass


class ForbiddenError(FamilyLedgerError):
    """Valid identity, but not a member of the family or the role is too low"""
    pass


class NotFoundError(FamilyLedgerError):
    """Family, asset, membership or invite code does not resolve"""
    pass


class ConflictError(FamilyLedgerError):
    """Duplicate membership, duplicate invite code, already joined"""
    pass


class DomainValidationError(FamilyLedgerError, ValueError):
    """Malformed input or an operation that would break a ledger invariant"""
    pass
