"""reqman errors - reported by click as 'Error: <message>' with exit code 1."""

import click


class ReqmanError(click.ClickException):
    """Base class for all errors that abort a reqman command."""


class CollectionNotFound(ReqmanError):
    def __init__(self, name: str):
        super().__init__(f"Collection not found: {name}")
        self.name = name


class EndpointNotFound(ReqmanError):
    def __init__(self, name: str, collection: str | None = None):
        where = f" in {collection}" if collection else ""
        super().__init__(f"Endpoint not found: {name}{where}")
        self.name = name
        self.collection = collection


class DuplicateName(ReqmanError):
    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} already exists: {name}")


class InteractivityRequired(ReqmanError):
    """A placeholder needs a value but no interactive terminal is attached."""

    def __init__(self, message: str = ""):
        super().__init__(
            "Interactive input required to resolve ':?' placeholders"
            + (f" ({message})" if message else "")
            + ". Run from a terminal, or use -s/--stream to send markers literally.",
        )


class NetworkError(ReqmanError):
    """Transport failure: connection refused, DNS, timeout, invalid URL."""


class StoreError(ReqmanError):
    """The collections file could not be read, parsed or written."""


class UnknownFileType(ReqmanError):
    """Binary piped input whose content type cannot be detected."""

    def __init__(self, size: int):
        super().__init__(
            f"Unknown file type for {size} bytes of piped binary input. "
            "Use -s/--stream to send it as a raw body.",
        )
