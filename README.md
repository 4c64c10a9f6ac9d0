# lispcore

The building blocks of a small Lisp with a Clojure flavour: a tokenizer for
its source text, the expression nodes a parser would build, and the runtime
values an evaluator works with.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Tokenizing

```python
from lispcore.tokenizer import tokenize, iter_tokens, TokenizeError
from lispcore.types import TokenType

tokens = tokenize('(hash-map :name "Alice" :age 30)')
[t.type for t in tokens][:3]
# [TokenType.LPAREN, TokenType.SYMBOL, TokenType.KEYWORD]
```

`tokenize` returns a list of `Token` objects (each with a `type` and a
`value`); `iter_tokens` yields them one at a time. The rules:

- `(`, `)`, `[`, `]` and `'` are single-character tokens.
- A `;` starts a comment that runs to the end of the line.
- A string runs between double quotes; the token value is the text inside,
  with no escape processing.
- `:name` is a `KEYWORD` token whose value is `name`, without the colon.
- A digit, or a `-` directly followed by a digit, starts a `NUMBER`, which
  takes digits and dots.
- Any other run of letters, digits and `+ - * / = < > ! ? _ . %` is a
  `SYMBOL`, except `true` and `false`, which are `BOOLEAN` tokens.
  `is_symbol_char` tells whether a character may appear in such a name.
- A NUL character ends the input.

`TokenizeError` (a `ValueError`) is raised for a string that is left open, a
colon not followed by a name character, or a character that starts no token.

## Expressions and values

`lispcore.types` defines the expression nodes — `NumberExpr`,
`BigNumberExpr`, `StringExpr`, `BooleanExpr`, `SymbolExpr`, `KeywordExpr`,
`ListExpr`, `BracketExpr`, `ModuleExpr`, `ImportExpr`, `LoadExpr` and
`RequireExpr` — and the runtime values: `NumberValue`, `BigNumberValue`,
`StringValue`, `BooleanValue`, `KeywordValue`, `ListValue`, `HashMapValue`,
`NilValue`, `QuotedValue`, `FunctionValue`, `MacroValue`, `ModuleValue`,
`ArithmeticFunctionValue` and `BuiltinFunctionValue`. `Environment` is the
protocol (`get`, `set`, `new_child`) that closures capture.

Each value prints the way the language shows it:

```python
from lispcore.types import (
    BigNumberValue, BooleanValue, KeywordValue, ListValue, NumberValue, StringValue,
)

str(ListValue([NumberValue(42), StringValue("hello"), BooleanValue(True)]))
# '(42 hello true)'
str(NumberValue(3.5))
# '3.5'
str(KeywordValue("name"))
# ':name'
str(BigNumberValue.from_string("123456789012345678901234567890"))
# '123456789012345678901234567890'
```

Numbers beyond ±1e15 print in exponent form (`NumberValue(2e16)` prints
`2.000000e+16`). `BigNumberValue.from_string` accepts a base-10 integer and
raises `ValueError` otherwise; `BigNumberValue.from_int` wraps a Python int.

## Values shared between threads

- `AtomValue` is a mutable reference with `get`, `set` and `swap`, where
  `swap(fn)` replaces the value with `fn(value)` under a lock.
- `FutureValue` is completed once with `set_result` or `set_error`; later
  calls are ignored. `wait` blocks until it is complete, then returns the
  result or raises the error. `is_done` reports whether it is complete.
- `ChannelValue(size)` is a FIFO channel; size 0 makes every `send` wait for
  a receiver. `receive` blocks for a value, `try_receive` returns `None` when
  nothing is ready, and `close` closes it. Sending to a closed channel, or
  receiving from one that is closed and drained, raises `ChannelClosedError`.
  Iterating over a channel yields values until it is closed and drained.
- `WaitGroupValue` counts outstanding work with `add` and `done`; `wait`
  blocks until the count is zero. A negative count raises `ValueError`.

## What this package does not do

It has no parser that turns tokens into expression nodes, no evaluator, no
built-in functions, no module loading and no interactive prompt or command.
The types here describe those things; running programs is left to code built
on top of them.