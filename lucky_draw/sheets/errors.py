"""Errors raised by the spreadsheet layer."""


class RosterFetchError(RuntimeError):
    """The roster source could not be read (network, HTTP status or envelope)."""

    def __init__(self, kind: str, message: str):
        super().__init__(f"[{kind}] {message}")
        self.kind = kind
