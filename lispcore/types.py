"""Tokens, syntax-tree nodes and runtime values of the interpreter."""

from __future__ import annotations

import enum
import math
import re
import threading
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional, Protocol

__all__ = [
    "TokenType",
    "Token",
    "Expr",
    "NumberExpr",
    "BigNumberExpr",
    "StringExpr",
    "BooleanExpr",
    "SymbolExpr",
    "KeywordExpr",
    "ListExpr",
    "BracketExpr",
    "ModuleExpr",
    "ImportExpr",
    "LoadExpr",
    "RequireExpr",
    "Environment",
    "Value",
    "NumberValue",
    "BigNumberValue",
    "StringValue",
    "BooleanValue",
    "KeywordValue",
    "FunctionValue",
    "MacroValue",
    "QuotedValue",
    "ListValue",
    "HashMapValue",
    "NilValue",
    "ModuleValue",
    "ArithmeticFunctionValue",
    "BuiltinFunctionValue",
    "AtomValue",
    "FutureValue",
    "ChannelValue",
    "ChannelClosedError",
    "WaitGroupValue",
]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def _quote(text: str) -> str:
    """Quote a string with double quotes, escaping special characters."""
    parts = []
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ch.isprintable():
            parts.append(ch)
        elif ord(ch) < 0x80:
            parts.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(f"\\U{ord(ch):08x}")
    return '"' + "".join(parts) + '"'


def _bracketed(items) -> str:
    """Render a sequence as ``[a b c]``."""
    return "[" + " ".join(str(item) for item in items) + "]"


def _shortest_g(number: float) -> str:
    """Format a float with the fewest digits, switching to exponent form
    when the decimal exponent is below -4 or at least 6."""
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if number == 0:
        return "-0" if math.copysign(1.0, number) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(number)).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    point = len(digit_tuple) + exponent
    exp10 = point - 1
    prefix = "-" if sign else ""

    if exp10 < -4 or exp10 >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "-" if exp10 < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp10):02d}"

    if point <= 0:
        body = "0." + "0" * (-point) + digits
    elif point >= len(digits):
        body = digits + "0" * (point - len(digits))
    else:
        body = digits[:point] + "." + digits[point:]
    return prefix + body


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenType(enum.Enum):
    """Kinds of lexical tokens."""

    LPAREN = enum.auto()
    RPAREN = enum.auto()
    LBRACKET = enum.auto()
    RBRACKET = enum.auto()
    NUMBER = enum.auto()
    SYMBOL = enum.auto()
    STRING = enum.auto()
    BOOLEAN = enum.auto()
    KEYWORD = enum.auto()
    QUOTE = enum.auto()


@dataclass(frozen=True)
class Token:
    """A single token of source text."""

    type: TokenType
    value: str


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


class Expr:
    """Base class of syntax-tree nodes."""

    __slots__ = ()


@dataclass
class NumberExpr(Expr):
    value: float

    def __str__(self) -> str:
        return f"NumberExpr({_shortest_g(float(self.value))})"


@dataclass
class BigNumberExpr(Expr):
    """An integer literal kept as text so no precision is lost."""

    value: str

    def __str__(self) -> str:
        return f"BigNumberExpr({self.value})"


@dataclass
class StringExpr(Expr):
    value: str

    def __str__(self) -> str:
        return f"StringExpr({_quote(self.value)})"


@dataclass
class BooleanExpr(Expr):
    value: bool

    def __str__(self) -> str:
        return f"BooleanExpr({'true' if self.value else 'false'})"


@dataclass
class SymbolExpr(Expr):
    name: str

    def __str__(self) -> str:
        return f"SymbolExpr({self.name})"


@dataclass
class KeywordExpr(Expr):
    value: str

    def __str__(self) -> str:
        return f"KeywordExpr(:{self.value})"


@dataclass
class ListExpr(Expr):
    elements: list = field(default_factory=list)

    def __str__(self) -> str:
        return f"ListExpr({_bracketed(self.elements)})"


@dataclass
class BracketExpr(Expr):
    elements: list = field(default_factory=list)

    def __str__(self) -> str:
        return f"BracketExpr({_bracketed(self.elements)})"


@dataclass
class ModuleExpr(Expr):
    name: str
    exports: list = field(default_factory=list)
    body: list = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"ModuleExpr(name:{self.name}, exports:{_bracketed(self.exports)}, "
            f"body:{_bracketed(self.body)})"
        )


@dataclass
class ImportExpr(Expr):
    module_name: str

    def __str__(self) -> str:
        return f"ImportExpr({self.module_name})"


@dataclass
class LoadExpr(Expr):
    filename: str

    def __str__(self) -> str:
        return f"LoadExpr({self.filename})"


@dataclass
class RequireExpr(Expr):
    """Load a file and import its module, optionally aliased or filtered."""

    filename: str
    as_alias: str = ""
    only_list: list = field(default_factory=list)

    def __str__(self) -> str:
        if self.as_alias:
            return f"RequireExpr({self.filename} :as {self.as_alias})"
        if self.only_list:
            return f"RequireExpr({self.filename} :only {_bracketed(self.only_list)})"
        return f"RequireExpr({self.filename})"


# ---------------------------------------------------------------------------
# Environments
# ---------------------------------------------------------------------------


class Environment(Protocol):
    """Variable bindings captured by closures."""

    def get(self, name: str) -> "Value":
        """Return the value bound to ``name``; raise KeyError if unbound."""
        ...

    def set(self, name: str, value: "Value") -> None:
        """Bind ``name`` to ``value``."""
        ...

    def new_child(self) -> "Environment":
        """Return a nested environment whose parent is this one."""
        ...


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


class Value:
    """Base class of runtime values."""

    __slots__ = ()


class NumberValue(float, Value):
    """A floating-point number."""

    def __str__(self) -> str:
        number = float(self)
        if math.isinf(number):
            return "+Inf" if number > 0 else "-Inf"
        if number > 1e15 or number < -1e15:
            return f"{number:.6e}"
        if number.is_integer():
            return f"{number:.0f}"
        return _shortest_g(number)

    def __repr__(self) -> str:
        return f"NumberValue({float.__repr__(self)})"


_DECIMAL_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class BigNumberValue(Value):
    """An arbitrary-precision integer."""

    value: int

    @classmethod
    def from_int(cls, value: int) -> "BigNumberValue":
        return cls(int(value))

    @classmethod
    def from_string(cls, text: str) -> "BigNumberValue":
        """Parse a base-10 integer; raise ValueError if ``text`` is not one."""
        if not _DECIMAL_INTEGER.fullmatch(text):
            raise ValueError(f"invalid integer: {text!r}")
        return cls(int(text))

    def __str__(self) -> str:
        return str(self.value)


class StringValue(str, Value):
    """A string."""

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and str.__eq__(self, other)

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    __hash__ = str.__hash__

    def __str__(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"StringValue({str.__repr__(self)})"


class KeywordValue(str, Value):
    """A keyword such as ``:name``; holds the name without the colon."""

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and str.__eq__(self, other)

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    __hash__ = str.__hash__

    def __str__(self) -> str:
        return ":" + str.__str__(self)

    def __repr__(self) -> str:
        return f"KeywordValue({str.__repr__(self)})"


@dataclass(frozen=True)
class BooleanValue(Value):
    value: bool

    def __bool__(self) -> bool:
        return bool(self.value)

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass
class FunctionValue(Value):
    """A user-defined function with its captured environment."""

    params: list
    body: Expr
    env: Optional[Environment] = None

    def __str__(self) -> str:
        return f"#<function({_bracketed(self.params)})>"


@dataclass
class MacroValue(Value):
    """A macro with its captured environment."""

    params: list
    body: Expr
    env: Optional[Environment] = None

    def __str__(self) -> str:
        return f"#<macro({_bracketed(self.params)})>"


@dataclass
class QuotedValue(Value):
    """An expression kept unevaluated."""

    value: Expr

    def __str__(self) -> str:
        if isinstance(self.value, SymbolExpr):
            return self.value.name
        return str(self.value)


@dataclass
class ListValue(Value):
    elements: list = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.elements)

    def __str__(self) -> str:
        rendered = ("nil" if elem is None else str(elem) for elem in self.elements)
        return "(" + " ".join(rendered) + ")"


@dataclass
class HashMapValue(Value):
    """A map from string keys to values."""

    elements: dict = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.elements)

    def __str__(self) -> str:
        if not self.elements:
            return "{}"
        body = " ".join(f"{_quote(key)} {value}" for key, value in self.elements.items())
        return "{" + body + "}"


@dataclass(frozen=True)
class NilValue(Value):
    """The absence of a value."""

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return "nil"


@dataclass(eq=False)
class ModuleValue(Value):
    """A module and the bindings it exports."""

    name: str
    exports: dict = field(default_factory=dict)
    env: Optional[Environment] = None

    def __str__(self) -> str:
        return f"#<module:{self.name}>"


@dataclass(frozen=True)
class ArithmeticFunctionValue(Value):
    """A built-in arithmetic operator used as a function value."""

    operation: str

    def __str__(self) -> str:
        return f"#<built-in:{self.operation}>"


@dataclass(frozen=True)
class BuiltinFunctionValue(Value):
    """A built-in function used as a value."""

    name: str

    def __str__(self) -> str:
        return f"#<built-in:{self.name}>"


class AtomValue(Value):
    """A thread-safe mutable reference."""

    __slots__ = ("_value", "_lock")

    def __init__(self, initial_value: Optional[Value] = None) -> None:
        self._value = initial_value
        self._lock = threading.Lock()

    def get(self) -> Optional[Value]:
        with self._lock:
            return self._value

    def set(self, new_value: Optional[Value]) -> Optional[Value]:
        with self._lock:
            self._value = new_value
            return new_value

    def swap(self, fn: Callable[[Optional[Value]], Optional[Value]]) -> Optional[Value]:
        """Replace the value with ``fn(value)`` atomically and return it."""
        with self._lock:
            self._value = fn(self._value)
            return self._value

    def __str__(self) -> str:
        current = self.get()
        if current is None:
            return "#<atom:nil>"
        return f"#<atom:{current}>"


class FutureValue(Value):
    """The eventual result of a computation run on another thread."""

    __slots__ = ("_lock", "_event", "_done", "_result", "_error")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._done = False
        self._result: Optional[Value] = None
        self._error: Optional[BaseException] = None

    def _complete(self, result: Optional[Value], error: Optional[BaseException]) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True
            self._result = result
            self._error = error
        self._event.set()

    def set_result(self, value: Optional[Value]) -> None:
        """Complete with a value; ignored if already complete."""
        self._complete(value, None)

    def set_error(self, error: BaseException) -> None:
        """Complete with an error; ignored if already complete."""
        self._complete(None, error)

    def wait(self) -> Optional[Value]:
        """Block until complete; return the result or raise the error."""
        self._event.wait()
        if self._error is not None:
            raise self._error
        return self._result

    def is_done(self) -> bool:
        with self._lock:
            return self._done

    def __str__(self) -> str:
        return "#<future:done>" if self.is_done() else "#<future:pending>"


class ChannelClosedError(Exception):
    """Raised when sending to, or receiving from, a closed channel."""


class ChannelValue(Value):
    """A FIFO channel with an optional buffer; size 0 is unbuffered."""

    __slots__ = ("size", "_buffer", "_cond", "_closed", "_sent", "_received")

    def __init__(self, size: int = 0) -> None:
        if size < 0:
            raise ValueError("channel size must not be negative")
        self.size = size
        self._buffer: deque = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._sent = 0
        self._received = 0

    def send(self, value: Optional[Value]) -> None:
        """Send a value, blocking while the buffer is full."""
        with self._cond:
            if self._closed:
                raise ChannelClosedError("cannot send to closed channel")
            ticket = self._sent
            self._sent += 1
            self._buffer.append(value)
            self._cond.notify_all()
            self._cond.wait_for(
                lambda: self._closed or self._received > ticket - self.size
            )

    def receive(self) -> Optional[Value]:
        """Receive a value, blocking until one arrives.

        Raises ChannelClosedError once the channel is closed and drained.
        """
        with self._cond:
            self._cond.wait_for(lambda: bool(self._buffer) or self._closed)
            if not self._buffer:
                raise ChannelClosedError("channel is closed")
            return self._take()

    def try_receive(self) -> Optional[Value]:
        """Return a ready value, or None when none is available."""
        with self._cond:
            if self._buffer:
                return self._take()
            return None

    def _take(self) -> Optional[Value]:
        value = self._buffer.popleft()
        self._received += 1
        self._cond.notify_all()
        return value

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def is_closed(self) -> bool:
        with self._cond:
            return self._closed

    def __iter__(self) -> Iterator[Optional[Value]]:
        while True:
            try:
                yield self.receive()
            except ChannelClosedError:
                return

    def __str__(self) -> str:
        state = "closed" if self.is_closed() else "open"
        return f"#<channel:{state}:size={self.size}>"


class WaitGroupValue(Value):
    """A counter that threads can wait on until it reaches zero."""

    __slots__ = ("_count", "_cond")

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    def add(self, delta: int) -> None:
        with self._cond:
            count = self._count + delta
            if count < 0:
                raise ValueError("negative wait group counter")
            self._count = count
            if count == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    def wait(self) -> None:
        with self._cond:
            self._cond.wait_for(lambda: self._count == 0)

    def __str__(self) -> str:
        return "#<wait-group>"