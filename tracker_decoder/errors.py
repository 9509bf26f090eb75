"""
errors.py - Error taxonomy shared by the parser, the decoders and the solvers.

Every error renders as a single line of the form ``<kind>: <detail>`` with
any chained cause appended (``raise PayloadTooShort(...) from err`` yields
``payload too short: ...: <cause>``). Use ``caused_by`` to match an error
anywhere in the chain.
"""

from typing import Any, Iterator, List, Optional, Type


class DecoderError(Exception):
    """Base class for all tracker_decoder errors."""

    kind = 'decoder error'

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        parts = [self.kind]
        if self.detail:
            parts.append(str(self.detail))
        if self.__cause__ is not None:
            parts.append(str(self.__cause__))
        return ': '.join(parts)


class InvalidHex(DecoderError, ValueError):
    kind = 'invalid hex payload'


class InvalidPayloadLength(DecoderError):
    kind = 'invalid payload length'


class PayloadTooShort(InvalidPayloadLength):
    kind = 'payload too short'


class PayloadTooLong(InvalidPayloadLength):
    kind = 'payload too long'


class FieldOutOfBounds(DecoderError):
    kind = 'field out of bounds'


class FieldStartOutOfBounds(DecoderError):
    kind = 'field start out of bounds'


class UnknownTag(DecoderError):
    kind = 'unknown tag'

    def __init__(self, tag: int):
        super().__init__(f'{tag:x}')
        self.tag = tag


class PortNotSupported(DecoderError):
    kind = 'port not supported'

    def __init__(self, port: int, detail: Optional[str] = None):
        super().__init__(detail or f'port {port} not supported')
        self.port = port


class ValidationFailed(DecoderError):
    """A single field failed its validation predicate."""

    kind = 'validation failed'

    def __init__(self, field: str, value: Any):
        super().__init__(f'for {field} {value!r}')
        self.field = field
        self.value = value


class ValidationErrors(DecoderError):
    """Joined validation failures of one decode."""

    kind = 'validation failed'

    def __init__(self, errors: List[ValidationFailed]):
        super().__init__(None)
        self.errors = list(errors)

    def __str__(self) -> str:
        return '\n'.join(str(e) for e in self.errors)

    def __iter__(self):
        return iter(self.errors)


class SolverFailed(DecoderError):
    kind = 'solver failed'


def join_errors(errors: List[ValidationFailed]) -> Optional[ValidationErrors]:
    """Fold collected validation failures into one error (None when empty)."""
    if not errors:
        return None
    return ValidationErrors(errors)


def iter_chain(err: BaseException) -> Iterator[BaseException]:
    """Yield ``err`` and every explicitly chained cause."""
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def caused_by(err: BaseException, cls: Type[BaseException]) -> bool:
    """True if ``err`` or any exception in its cause chain is a ``cls``."""
    return any(isinstance(e, cls) for e in iter_chain(err))
