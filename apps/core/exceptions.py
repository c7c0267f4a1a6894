# apps/core/exceptions.py


class DomainError(Exception):
    """Bazowy błąd logiki biznesowej (zawsze z czytelnym komunikatem)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DomainError, LookupError):
    """Nie znaleziono zadania / projektu / użytkownika / wpisu logu."""


class PermissionDenied(DomainError):
    """Rola użytkownika w projekcie nie pozwala na operację."""


class ValidationError(DomainError, ValueError):
    """Niepoprawne dane wejściowe (terminy, postęp, status...)."""


class StateError(DomainError):
    """Stan drzewa nie pozwala na obliczenie wyniku (np. suma wag = 0)."""
