from typing import Optional


class BookkeepingError(Exception):
    pass


class Unauthenticated(BookkeepingError):
    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class InvalidInput(BookkeepingError, ValueError):
    def __init__(
        self, message: str = "Invalid input", errors: Optional[list[dict]] = None
    ) -> None:
        super().__init__(message)
        self.errors = errors or []

    @property
    def fields(self) -> list[str]:
        return [str(err["field"]) for err in self.errors]

    def as_detail(self) -> dict[str, object]:
        return {"message": str(self), "errors": self.errors}


class NotFound(BookkeepingError, LookupError):
    pass


class Unexpected(BookkeepingError):
    pass
