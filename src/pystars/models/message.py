"""
STARS message model.

A StarsMessage is the decoded form of one wire frame:

    <from>><to> <command> <parameters...>

It is immutable; the same instance may be handed to several subscribers.
"""

from dataclasses import dataclass
from typing import List

import numpy as np

from ..utils import param_arrays


@dataclass(frozen=True)
class StarsMessage:
    """
    One STARS message.

    Attributes:
        from_: Sender node name (``from`` on the wire)
        to: Destination node name
        command: Command word, e.g. "GetValue" or "Ok:"
        parameters: Everything after the command, may contain spaces

    ``from_`` may not contain '>', and ``to`` and ``command`` may not contain
    spaces, since those characters separate the fields on the wire. Parsing
    the wire form still trims whitespace at field edges, so a message with
    padded fields, or with parameters but no command, does not survive a
    round trip through parse_line().

    Example:
        >>> msg = StarsMessage("term1", "System", "hello", "1 2")
        >>> msg.wire_form
        'term1>System hello 1 2'
        >>> msg.combined_command
        'hello 1 2'
    """

    from_: str = ""
    to: str = ""
    command: str = ""
    parameters: str = ""

    def __post_init__(self):
        for name in ("from_", "to", "command", "parameters"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise TypeError(f"{name} must be str, got {type(value).__name__}")
            if "\n" in value or "\r" in value:
                raise ValueError(f"{name} must not contain line terminators: {value!r}")
        if ">" in self.from_:
            raise ValueError(f"from_ must not contain '>': {self.from_!r}")
        for name in ("to", "command"):
            value = getattr(self, name)
            if " " in value:
                raise ValueError(f"{name} must not contain spaces: {value!r}")

    @property
    def combined_command(self) -> str:
        """Command and parameters joined by a single space."""
        if not self.parameters:
            return self.command
        return f"{self.command} {self.parameters}"

    @property
    def wire_form(self) -> str:
        """Full frame text without the terminating newline."""
        return f"{self.from_}>{self.to} {self.combined_command}"

    def __str__(self) -> str:
        return self.wire_form

    # ---- parameter views ----

    def param_str_array(self, sep: str = " ") -> List[str]:
        """Split parameters on ``sep`` (empty items are kept)."""
        return param_arrays.split_params(self.parameters, sep)

    def param_array(self, dtype=np.int32, sep: str = " ") -> np.ndarray:
        """Parameters as a numeric array, empty if any item fails to convert."""
        return param_arrays.to_array(self.parameters, sep, dtype)

    def param_short_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.int16, sep)

    def param_ushort_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.uint16, sep)

    def param_int_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.int32, sep)

    def param_uint_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.uint32, sep)

    def param_long_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.int64, sep)

    def param_ulong_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.uint64, sep)

    def param_float_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.float32, sep)

    def param_double_array(self, sep: str = " ") -> np.ndarray:
        return self.param_array(np.float64, sep)

    def param_decimal_array(self, sep: str = " ") -> np.ndarray:
        return param_arrays.to_decimal_array(self.parameters, sep)

    def param_bool_array(self, sep: str = " ") -> np.ndarray:
        return param_arrays.to_bool_array(self.parameters, sep)
