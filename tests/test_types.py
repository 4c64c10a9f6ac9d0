import itertools
import threading

import pytest

from lispcore.types import (
    ArithmeticFunctionValue,
    AtomValue,
    BigNumberExpr,
    BigNumberValue,
    BooleanExpr,
    BooleanValue,
    BracketExpr,
    BuiltinFunctionValue,
    ChannelClosedError,
    ChannelValue,
    FunctionValue,
    FutureValue,
    HashMapValue,
    ImportExpr,
    KeywordExpr,
    KeywordValue,
    ListExpr,
    ListValue,
    LoadExpr,
    MacroValue,
    ModuleExpr,
    ModuleValue,
    NilValue,
    NumberExpr,
    NumberValue,
    QuotedValue,
    RequireExpr,
    StringExpr,
    StringValue,
    SymbolExpr,
    Token,
    TokenType,
    WaitGroupValue,
)


def _run(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


# --- tokens ---------------------------------------------------------------


def test_token_types_distinct():
    kinds = [
        TokenType.LPAREN,
        TokenType.RPAREN,
        TokenType.NUMBER,
        TokenType.SYMBOL,
        TokenType.STRING,
        TokenType.BOOLEAN,
    ]
    tokens = [Token(kind, "x") for kind in kinds]
    for first, second in itertools.combinations(tokens, 2):
        assert first != second


def test_token_equality():
    assert Token(TokenType.NUMBER, "42") == Token(TokenType.NUMBER, "42")
    assert Token(TokenType.NUMBER, "42") != Token(TokenType.SYMBOL, "42")


# --- simple values ----------------------------------------------------------


def test_value_string_representations():
    assert str(NumberValue(42)) == "42"
    assert str(StringValue("hello")) == "hello"
    assert str(BooleanValue(True)) == "true"
    assert str(BooleanValue(False)) == "false"


@pytest.mark.parametrize(
    "number, expected",
    [
        (0, "0"),
        (120, "120"),
        (-17, "-17"),
        (3.14, "3.14"),
        (2.5, "2.5"),
        (1e15, "1000000000000000"),
        (1e16, "1.000000e+16"),
        (-2e16, "-2.000000e+16"),
        (0.1, "0.1"),
    ],
)
def test_number_value_format(number, expected):
    assert str(NumberValue(number)) == expected


def test_number_value_is_float():
    assert NumberValue(3) + NumberValue(4) == 7.0


def test_keyword_value():
    assert str(KeywordValue("name")) == ":name"
    assert KeywordValue("name") == KeywordValue("name")
    assert KeywordValue("name") != StringValue("name")


def test_nil_value():
    assert str(NilValue()) == "nil"
    assert NilValue() == NilValue()
    assert not NilValue()


def test_boolean_value_truthiness():
    values = [BooleanValue(True), BooleanValue(False), BooleanValue(True)]
    truthy = [str(value) for value in values if value]
    assert truthy == ["true", "true"]


# --- lists and maps ---------------------------------------------------------


def test_empty_list():
    assert str(ListValue([])) == "()"


def test_single_element_list():
    assert str(ListValue([NumberValue(42)])) == "(42)"


def test_multi_element_list():
    values = ListValue([NumberValue(1), NumberValue(2), NumberValue(3)])
    assert str(values) == "(1 2 3)"


def test_mixed_type_list():
    values = ListValue([NumberValue(42), StringValue("hello"), BooleanValue(True)])
    assert str(values) == "(42 hello true)"


def test_list_with_none_shows_nil():
    assert str(ListValue([NumberValue(1), None])) == "(1 nil)"


def test_nested_list():
    inner = ListValue([NumberValue(2), NumberValue(3)])
    assert str(ListValue([NumberValue(1), inner])) == "(1 (2 3))"


def test_hash_map_format():
    assert str(HashMapValue({})) == "{}"
    mapping = HashMapValue({":name": StringValue("Alice"), "age": NumberValue(30)})
    assert str(mapping) == '{":name" Alice "age" 30}'


# --- big numbers ------------------------------------------------------------


def test_big_number_from_string():
    big = BigNumberValue.from_string("123456789012345678901234567890")
    assert str(big) == "123456789012345678901234567890"


def test_big_number_from_int():
    assert str(BigNumberValue.from_int(1000000000000000)) == "1000000000000000"


def test_big_number_from_product():
    big = BigNumberValue(1234567890 * 1000000000)
    assert str(big) == "1234567890000000000"


def test_big_number_negative_string():
    assert BigNumberValue.from_string("-42").value == -42


@pytest.mark.parametrize("text", ["", "abc", "12.5", " 12", "1_000", "-"])
def test_big_number_invalid_string(text):
    with pytest.raises(ValueError):
        BigNumberValue.from_string(text)


# --- expressions ------------------------------------------------------------


@pytest.mark.parametrize(
    "number, expected",
    [
        (42, "NumberExpr(42)"),
        (3.14, "NumberExpr(3.14)"),
        (1e6, "NumberExpr(1e+06)"),
        (123456, "NumberExpr(123456)"),
        (0.0001, "NumberExpr(0.0001)"),
        (0.00001, "NumberExpr(1e-05)"),
        (-2.5, "NumberExpr(-2.5)"),
    ],
)
def test_number_expr_format(number, expected):
    assert str(NumberExpr(number)) == expected


def test_expression_formats():
    assert str(StringExpr('a"b\n')) == 'StringExpr("a\\"b\\n")'
    assert str(BooleanExpr(True)) == "BooleanExpr(true)"
    assert str(SymbolExpr("x")) == "SymbolExpr(x)"
    assert str(KeywordExpr("k")) == "KeywordExpr(:k)"
    assert str(BigNumberExpr("99999999999999999999")) == "BigNumberExpr(99999999999999999999)"
    assert str(ImportExpr("math")) == "ImportExpr(math)"
    assert str(LoadExpr("core.lisp")) == "LoadExpr(core.lisp)"


def test_list_and_bracket_expr_formats():
    elements = [SymbolExpr("+"), NumberExpr(1), NumberExpr(2)]
    assert str(ListExpr(elements)) == "ListExpr([SymbolExpr(+) NumberExpr(1) NumberExpr(2)])"
    assert str(BracketExpr([SymbolExpr("x")])) == "BracketExpr([SymbolExpr(x)])"


def test_module_expr_format():
    module = ModuleExpr("math", ["add"], [SymbolExpr("x")])
    assert str(module) == "ModuleExpr(name:math, exports:[add], body:[SymbolExpr(x)])"


def test_require_expr_formats():
    assert str(RequireExpr("a.lisp")) == "RequireExpr(a.lisp)"
    assert str(RequireExpr("a.lisp", as_alias="u")) == "RequireExpr(a.lisp :as u)"
    assert (
        str(RequireExpr("a.lisp", only_list=["f", "g"]))
        == "RequireExpr(a.lisp :only [f g])"
    )


# --- callable and composite values -------------------------------------------


def test_function_and_macro_formats():
    body = SymbolExpr("x")
    assert str(FunctionValue(["x", "y"], body)) == "#<function([x y])>"
    assert str(MacroValue(["form"], body)) == "#<macro([form])>"


def test_builtin_formats():
    assert str(ArithmeticFunctionValue("+")) == "#<built-in:+>"
    assert str(BuiltinFunctionValue("map")) == "#<built-in:map>"


def test_quoted_value():
    assert str(QuotedValue(SymbolExpr("foo"))) == "foo"
    assert str(QuotedValue(NumberExpr(1))) == "NumberExpr(1)"


def test_module_value():
    module = ModuleValue("core", {"f": NumberValue(1)})
    assert str(module) == "#<module:core>"
    assert module.exports["f"] == 1.0


# --- atoms ------------------------------------------------------------------


def test_atom_get_set_swap():
    atom = AtomValue(NumberValue(1))
    assert atom.get() == 1.0
    assert atom.set(NumberValue(5)) == 5.0
    assert atom.swap(lambda v: NumberValue(v + 1)) == 6.0
    assert str(atom) == "#<atom:6>"


def test_atom_nil():
    assert str(AtomValue(None)) == "#<atom:nil>"


def test_atom_concurrent_swaps():
    atom = AtomValue(NumberValue(0))

    def bump():
        for _ in range(200):
            atom.swap(lambda v: NumberValue(v + 1))

    threads = [_run(bump) for _ in range(4)]
    for thread in threads:
        thread.join(5)
    assert atom.get() == 800.0


# --- futures ----------------------------------------------------------------


def test_future_result_from_thread():
    future = FutureValue()
    assert str(future) == "#<future:pending>"
    assert future.is_done() is False
    _run(future.set_result, NumberValue(7)).join(5)
    assert future.wait() == 7.0
    assert future.is_done() is True
    assert str(future) == "#<future:done>"


def test_future_error():
    future = FutureValue()
    future.set_error(RuntimeError("boom"))
    with pytest.raises(RuntimeError, match="boom"):
        future.wait()


def test_future_first_completion_wins():
    future = FutureValue()
    future.set_result(StringValue("first"))
    future.set_error(RuntimeError("late"))
    future.set_result(StringValue("second"))
    assert future.wait() == StringValue("first")


# --- channels ---------------------------------------------------------------


def test_buffered_channel_fifo():
    channel = ChannelValue(2)
    channel.send(NumberValue(1))
    channel.send(NumberValue(2))
    assert channel.receive() == 1.0
    assert channel.receive() == 2.0


def test_unbuffered_channel_handoff():
    channel = ChannelValue(0)
    thread = _run(channel.send, StringValue("hi"))
    assert channel.receive() == StringValue("hi")
    thread.join(5)
    assert not thread.is_alive()


def test_try_receive_empty_returns_none():
    channel = ChannelValue(1)
    assert channel.try_receive() is None
    channel.send(NumberValue(3))
    assert channel.try_receive() == 3.0


def test_send_to_closed_channel_raises():
    channel = ChannelValue(1)
    channel.close()
    with pytest.raises(ChannelClosedError):
        channel.send(NumberValue(1))


def test_closed_channel_drains_then_raises():
    channel = ChannelValue(2)
    channel.send(NumberValue(1))
    channel.close()
    assert channel.is_closed() is True
    assert channel.receive() == 1.0
    with pytest.raises(ChannelClosedError):
        channel.receive()


def test_channel_iteration_stops_on_close():
    channel = ChannelValue(3)
    for n in (1, 2, 3):
        channel.send(NumberValue(n))
    channel.close()
    assert [float(v) for v in channel] == [1.0, 2.0, 3.0]


def test_channel_format_and_close_idempotent():
    channel = ChannelValue(4)
    assert str(channel) == "#<channel:open:size=4>"
    channel.close()
    channel.close()
    assert str(channel) == "#<channel:closed:size=4>"


def test_negative_channel_size():
    with pytest.raises(ValueError):
        ChannelValue(-1)


# --- wait groups ------------------------------------------------------------


def test_wait_group_waits_for_workers():
    group = WaitGroupValue()
    finished = []
    lock = threading.Lock()

    def work(n):
        with lock:
            finished.append(n)
        group.done()

    group.add(3)
    for n in range(3):
        _run(work, n)
    group.wait()
    assert sorted(finished) == [0, 1, 2]
    assert str(group) == "#<wait-group>"


def test_wait_group_negative_counter():
    group = WaitGroupValue()
    with pytest.raises(ValueError):
        group.done()