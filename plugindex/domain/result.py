"""
Result domain object for plugindex.

Every fallible core operation returns a ``Result`` instead of raising, so a
failure in one fetch path can be reported without aborting unrelated work.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from ..exit_codes import StoreError

T = TypeVar('T')
U = TypeVar('U')


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Discriminated value-or-error.

    Example:
        result = client.fetch_plugin_list()
        if result.ok:
            snapshot = result.value
        else:
            logger.warning(result.error)
    """
    value: Optional[T] = None
    error: Optional[StoreError] = None

    @classmethod
    def success(cls, value: T) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: StoreError) -> 'Result[T]':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> 'Result[U]':
        if self.error is not None:
            return Result(error=self.error)
        return Result(value=fn(self.value))  # type: ignore[arg-type]

    def __bool__(self) -> bool:
        return self.ok
