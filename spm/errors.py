"""
Error types for secure pattern matching.

- InvalidInput: size or role constraints violated, raised before any I/O
- BackendFailure: channel or sharing-round failure, fatal for a repetition
- NotReady: a share or input slot used outside its barrier contract
"""

from typing import Optional


class SPMError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInput(SPMError, ValueError):
    """Pattern/text size or role constraints are violated."""


class BackendFailure(SPMError, RuntimeError):
    """
    Communication or sharing-round failure.

    Carries enough context to locate a desynchronisation between the two
    parties. `partial` holds results of repetitions that completed before
    the failure.
    """

    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        window: Optional[int] = None,
        byte: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.window = window
        self.byte = byte
        self.partial: list = []

    def with_phase(self, phase: str) -> "BackendFailure":
        """Return a copy tagged with the protocol phase it was raised in."""
        err = BackendFailure(self.message, phase=phase, window=self.window, byte=self.byte)
        err.partial = self.partial
        return err

    def __str__(self) -> str:
        context = []
        if self.phase is not None:
            context.append(f"phase={self.phase}")
        if self.window is not None:
            context.append(f"window={self.window}")
        if self.byte is not None:
            context.append(f"byte={self.byte}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class NotReady(SPMError, RuntimeError):
    """A handle was read, or a slot fulfilled, outside its barrier."""
