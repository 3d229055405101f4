class StoreIOError(Exception):
    """The storage backend failed to read or write a slot."""


class ValidationError(ValueError):
    """Input rejected at the tool boundary. ``errors`` maps field name to message."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(errors.values()))
        self.errors = errors


class AccountError(Exception):
    pass


class AccountExistsError(AccountError):
    pass


class AccountNotFoundError(AccountError):
    pass


class InvalidCredentialsError(AccountError):
    pass
