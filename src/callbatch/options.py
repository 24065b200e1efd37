"""
Batching options accepted by ``batcher``.
"""

from __future__ import annotations

import typing as t
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from callbatch.exceptions import InvalidOptionsError

OptionsLike = t.Union["BatchOptions", Mapping[str, t.Any], int, None]


class BatchOptions(BaseModel):
    """
    Flush policy for a batcher.

    Attributes
    ----------
    interval : int
        Milliseconds to wait after the first call of a group before flushing it.
        Zero flushes on the next scheduler turn.
    maximum : int | None
        Flush a group as soon as it holds this many items. ``None`` means
        unbounded.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    interval: StrictInt = Field(default=0, ge=0)
    maximum: StrictInt | None = Field(default=None, ge=1)

    @classmethod
    def coerce(cls, value: OptionsLike) -> BatchOptions:
        """
        Build options from any accepted shorthand.

        Parameters
        ----------
        value : BatchOptions | Mapping[str, typing.Any] | int | None
            ``None`` for defaults, an ``int`` interval in milliseconds, a mapping
            with ``interval``/``maximum`` keys, or an existing instance.

        Returns
        -------
        BatchOptions
            Validated options.

        Raises
        ------
        InvalidOptionsError
            If the value is not an accepted shape or fails validation.
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        try:
            if isinstance(value, Mapping):
                return cls.model_validate(obj=dict(value))
            return cls(interval=value)
        except ValidationError as error:
            raise InvalidOptionsError(f"Invalid batching options: {value!r}") from error
