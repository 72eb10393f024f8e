"""Error types shared by the services and mapped to HTTP responses in main."""


class TradegateError(Exception):
    """Base class for journal/gate errors."""


class StorageError(TradegateError):
    """Reading or writing the journal database failed."""


class InvalidRiskInputError(TradegateError):
    """An R-multiple could not be parsed into a finite number."""

    def __init__(self, raw):
        self.raw = raw
        super().__init__(f"Result (R) must be a number like +1 or -1.5, got {raw!r}")


class TradeLockedError(TradegateError):
    """Trade entry refused because the discipline gate is locked."""

    def __init__(self, reasons: list[str]):
        self.reasons = list(reasons)
        super().__init__("Locked by rules: " + " ".join(self.reasons))
