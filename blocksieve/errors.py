"""
errors.py - Failure outcomes that halt a run

Recognition misses are NOT errors (the matcher returns None) and the reducer
has no failure modes, so everything here belongs to the collaborator layer:
configuration, input reading, and process restriction.
"""


class BlocksieveError(Exception):
    """Base class for all fatal blocksieve errors."""


class InvalidFormatError(BlocksieveError, ValueError):
    """Unknown output format name."""

    def __init__(self, name: str, choices: tuple[str, ...] = ()):
        self.name = name
        self.choices = choices
        message = f"Invalid output format: {name!r}"
        if choices:
            message += f" (choose from {', '.join(choices)})"
        super().__init__(message)


class SourceReadError(BlocksieveError, OSError):
    """An input source could not be read or downloaded."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot read {source}: {reason}")


class SandboxError(BlocksieveError, OSError):
    """pledge/unveil setup failed."""
