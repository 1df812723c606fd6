"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Monetary or configuration input is malformed or negative"""

    pass


class ConfigurationWarning(UserWarning):
    """Payment configuration is incomplete; a zero-effect default was used"""

    pass


class ContractNotFound(DomainException):
    """No travel contract exists for the given id"""

    pass


class ContractCancelled(DomainException):
    """Travel contract was already cancelled"""

    pass


class CreditError(DomainException):
    """Base for prior-trip credit failures; blocks the dependent booking"""

    def __init__(self, credit_id: str, message: str):
        super().__init__(message)
        self.credit_id = credit_id


class CreditNotFound(CreditError):
    """No credit exists for the given id"""

    def __init__(self, credit_id: str):
        super().__init__(credit_id, f"Credit {credit_id} not found")


class CreditExpired(CreditError):
    """Credit validity window has passed"""

    def __init__(self, credit_id: str):
        super().__init__(credit_id, f"Credit {credit_id} has expired")


class CreditAlreadyRedeemed(CreditError):
    """Credit was already used for another booking"""

    def __init__(self, credit_id: str):
        super().__init__(credit_id, f"Credit {credit_id} was already redeemed")


class CreditInsufficient(CreditError):
    """Credit amount does not cover the requested down payment"""

    def __init__(self, credit_id: str, available, requested):
        super().__init__(
            credit_id,
            f"Credit {credit_id} has {available} available, {requested} requested",
        )
        self.available = available
        self.requested = requested
