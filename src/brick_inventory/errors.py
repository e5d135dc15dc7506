from __future__ import annotations


class BrickInventoryError(Exception):
    """Base class for errors raised by this package."""


class FetchError(BrickInventoryError):
    pass


class InvalidResponseError(FetchError):
    def __init__(self, url: str, status_code: int | None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"Invalid response for {url}: status={status_code}")


class EmptyResponseError(FetchError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Empty response body for {url}")


class EmptyDocumentError(BrickInventoryError):
    def __init__(self, url: str | None = None) -> None:
        self.url = url
        super().__init__(f"No HTML elements found in document {url or ''}".rstrip())


class InventoryParseError(BrickInventoryError):
    pass


class TableNotFoundError(InventoryParseError):
    def __init__(self, set_number: str) -> None:
        self.set_number = set_number
        super().__init__(f"Inventory table not found for {set_number}")


class MalformedRowError(InventoryParseError):
    def __init__(self, line: str, reason: str = "") -> None:
        self.line = line
        self.reason = reason
        detail = f" ({reason})" if reason else ""
        super().__init__(f"Malformed inventory row{detail}: {line}")


class MissingSetNameError(InventoryParseError):
    def __init__(self, set_number: str) -> None:
        self.set_number = set_number
        super().__init__(f"Could not find a set name for {set_number}")


class ColorGuideNotFoundError(InventoryParseError):
    def __init__(self, url: str | None = None) -> None:
        self.url = url
        super().__init__(f"No color rows found in color guide {url or ''}".rstrip())
