import json
import pytest
import jsonschema
from node import Node, Kind, MalformedNode, s
from generator import (
    Generator, Options, HANDLERS, check_handlers, generate, js_regexp,
    load_method_tables, resolve_filters, METHOD_TABLE,
    )
from comments import Comment, CommentMap

def lvar (name):
    return s (Kind.LVAR, name)

def send (receiver, name, *args):
    return s (Kind.SEND, receiver, name, *args)

def int_ (value):
    return s (Kind.INT, value)

def test_every_kind_has_a_handler():
    assert set (HANDLERS) == set (Kind)

def test_missing_handlers_detected():
    partial = dict (HANDLERS)
    del partial[Kind.SEND]
    with pytest.raises (RuntimeError) as e:
        check_handlers (partial)
    assert 'send' in str (e.value)

@pytest.mark.parametrize ('node, expected', [
    (int_ (42), '42;'),
    (s (Kind.FLOAT, 1.5), '1.5;'),
    (s (Kind.STR, 'hello'), '"hello";'),
    (s (Kind.NIL), 'null;'),
    (s (Kind.TRUE), 'true;'),
    (s (Kind.SELF), 'this;'),
    (s (Kind.SYM, 'a'), '"a";'),
    ])
def test_literals (node, expected):
    assert generate (node) == expected

def test_template_literal():
    node = s (Kind.DSTR, s (Kind.STR, 'a`'), s (Kind.BEGIN, lvar ('x')))
    assert generate (node) == '`a\\`${x}`;'

def test_plain_dstr_is_a_string():
    node = s (Kind.DSTR, s (Kind.STR, 'a'), s (Kind.STR, 'b'))
    assert generate (node) == '"ab";'

def test_hash_keys():
    node = s (Kind.LVASGN, 'h', s(
        Kind.HASH,
        s (Kind.PAIR, s (Kind.SYM, 'a'), int_ (1)),
        s (Kind.PAIR, s (Kind.STR, 'b c'), int_ (2)),
        s (Kind.PAIR, lvar ('k'), int_ (3)),
        ))
    assert generate (node) == 'let h = {a: 1, "b c": 2, [k]: 3};'

@pytest.mark.parametrize ('eslevel, expected', [
    (2015, 'Math.pow(2, 3);'),
    (2016, '2 ** 3;'),
    ])
def test_power (eslevel, expected):
    node = send (int_ (2), '**', int_ (3))
    assert generate (node, Options (eslevel=eslevel)) == expected

@pytest.mark.parametrize ('comparison, expected', [
    ('equality', 'let x = (a == b);'),
    ('identity', 'let x = (a === b);'),
    ])
def test_comparison (comparison, expected):
    node = s (Kind.LVASGN, 'x', send (lvar ('a'), '==', lvar ('b')))
    assert generate (node, Options (comparison=comparison)) == expected

def test_push():
    assert generate (send (lvar ('x'), '<<', int_ (1))) == 'x.push(1);'

@pytest.mark.parametrize ('eslevel, expected', [
    (2022, 'a.at(-1);'),
    (2020, 'a.slice(-1)[0];'),
    ])
def test_negative_index (eslevel, expected):
    node = send (lvar ('a'), '[]', int_ (-1))
    assert generate (node, Options (eslevel=eslevel)) == expected

@pytest.mark.parametrize ('rng, expected', [
    (s (Kind.IRANGE, int_ (1), int_ (3)), 'a.slice(1, 4);'),
    (s (Kind.ERANGE, int_ (1), int_ (3)), 'a.slice(1, 3);'),
    (s (Kind.IRANGE, int_ (1), int_ (-1)), 'a.slice(1);'),
    ])
def test_range_index (rng, expected):
    assert generate (send (lvar ('a'), '[]', rng)) == expected

def test_property_assignment():
    node = send (s (Kind.SELF), 'name=', s (Kind.STR, 'x'))
    assert generate (node) == 'this.name = "x";'

@pytest.mark.parametrize ('eslevel, expected', [
    (2020, 'this._p = this._p || 1;'),
    (2021, 'this._p ||= 1;'),
    ])
def test_or_assign (eslevel, expected):
    node = s (Kind.OR_ASGN, s (Kind.IVASGN, '@p'), int_ (1))
    assert generate (node, Options (eslevel=eslevel)) == expected

def test_or_assign_declares_a_fresh_local():
    node = s (Kind.OR_ASGN, s (Kind.LVASGN, 'a'), int_ (1))
    assert generate (node) == 'let a = 1;'

def test_nullish_or():
    node = s (Kind.LVASGN, 'x', s (Kind.OR, lvar ('a'), lvar ('b')))
    assert generate (node, Options (or_='nullish')) == 'let x = (a ?? b);'

def test_multiple_assignment():
    node = s(
        Kind.MASGN,
        s (Kind.MLHS, s (Kind.LVASGN, 'a'), s (Kind.LVASGN, 'b')),
        s (Kind.ARRAY, lvar ('b'), lvar ('a')),
        )
    assert generate (node) == 'let [a, b] = [b, a];'

def test_raise_message():
    node = send (None, 'raise', s (Kind.STR, 'boom'))
    assert generate (node) == 'throw new Error("boom");'

def test_raise_class():
    node = send (None, 'raise', s (Kind.CONST, None, 'ArgumentError'),
        s (Kind.STR, 'bad'))
    assert generate (node) == 'throw new ArgumentError("bad");'

def test_lambda():
    node = s(
        Kind.BLOCK, send (None, 'lambda'), s (Kind.ARGS, s (Kind.ARG, 'x')),
        send (lvar ('x'), '+', int_ (1)),
        )
    assert generate (node) == '(x) => (x + 1);'

def test_method_autoreturns_assignments():
    node = s (Kind.DEF, 'f', s (Kind.ARGS), s (Kind.IVASGN, '@a', int_ (1)))
    assert generate (node) == \
        'function f() {\n  this._a = 1;\n  return this._a;\n}'

def test_yield_adds_a_block_parameter():
    node = s (Kind.DEF, 'each_item', s (Kind.ARGS), s (Kind.YIELD, int_ (1)))
    assert generate (node) == (
        'function each_item(_implicitBlockYield) {\n'
        '  return _implicitBlockYield(1);\n'
        '}'
        )

def test_ternary():
    node = s (Kind.LVASGN, 'y', s (Kind.IF, lvar ('c'), int_ (1), int_ (2)))
    assert generate (node) == 'let y = (c ? 1 : 2);'

def test_hoisted_declaration():
    node = s(
        Kind.BEGIN,
        s (Kind.IF, lvar ('a'), s (Kind.LVASGN, 'x', int_ (1)), None),
        lvar ('x'),
        )
    assert generate (node) == 'let x;\n\nif (a) {\n  x = 1;\n}\n\nx;'

def test_unsupported_kinds_leave_a_placeholder (capfd):
    assert generate (s (Kind.ARGS)) == '/* unsupported: args */;'
    assert 'unsupported node: args' in capfd.readouterr().err

def test_malformed_nodes_are_fatal():
    with pytest.raises (MalformedNode):
        generate (s (Kind.REGEXP, lvar ('x'), None))
    with pytest.raises (MalformedNode):
        Generator().parse ('not a node')

@pytest.mark.parametrize ('pattern, flags, expected', [
    ('\\Afoo\\z', 'i', '/^foo$/i'),
    ('a/b', '', '/a\\/b/'),
    ('a b # comment\n', 'x', '/ab/'),
    ('.', 'm', '/./s'),
    ('', '', '/(?:)/'),
    ])
def test_js_regexp (pattern, flags, expected):
    assert js_regexp (pattern, flags) == expected

def test_method_table_files (tmp_path):
    first = tmp_path / 'first.json'
    first.write_text (json.dumps ({'shout': {'to': 'toUpperCase', 'kind': 'method'}}))
    second = tmp_path / 'second.json'
    second.write_text (json.dumps ({'shout': {'to': 'yell', 'kind': 'method'}}))
    table = load_method_tables ({}, [str (first), str (second)])
    assert table == {'shout': {'to': 'yell', 'kind': 'method'}}

def test_invalid_method_table (tmp_path):
    bad = tmp_path / 'bad.json'
    bad.write_text (json.dumps ({'shout': {'to': 'yell', 'kind': 'macro'}}))
    with pytest.raises (jsonschema.ValidationError):
        load_method_tables ({}, [str (bad)])
    with pytest.raises (jsonschema.ValidationError):
        Options (method_table={'shout': {'kind': 'method'}})

def test_method_table_option():
    options = Options (method_table={'shout': {'to': 'yell', 'kind': 'method'}})
    assert generate (send (lvar ('x'), 'shout'), options) == 'x.yell();'
    assert 'shout' not in METHOD_TABLE

@pytest.mark.parametrize ('kwargs', [
    {'comparison': 'fuzzy'},
    {'or_': 'maybe'},
    ])
def test_invalid_options (kwargs):
    with pytest.raises (ValueError):
        Options (**kwargs)

@pytest.mark.parametrize ('eslevel, expected', [
    (2020, True),
    (2022, False),
    ])
def test_underscored_private_default (eslevel, expected):
    assert Options (eslevel=eslevel).underscored_private is expected

def test_unknown_filters_warn (capfd):
    assert resolve_filters (['nope']) == []
    assert 'unknown filter: nope' in capfd.readouterr().err

def test_comments_inside_expressions_go_before_the_statement():
    one = int_ (1)
    cmap = CommentMap()
    cmap.add (one, Comment ('# one', 0, 5))
    node = s (Kind.LVASGN, 'x', s (Kind.ARRAY, one))
    assert generate (node, comments=cmap) == '// one\nlet x = [1];'

def test_comments_inside_nested_statements():
    one = int_ (1)
    cmap = CommentMap()
    cmap.add (one, Comment ('# one', 0, 5))
    node = s(
        Kind.IF, lvar ('a'), s (Kind.LVASGN, 'x', s (Kind.ARRAY, one)), None
        )
    assert generate (node, comments=cmap) == \
        'let x;\n\nif (a) {\n  // one\n  x = [1];\n}'

@pytest.mark.parametrize ('node, expected', [
    (send (lvar ('a'), '+', lvar ('b')), 'a + b;'),
    (s (Kind.AND, lvar ('a'), lvar ('b')), 'a && b;'),
    (s (Kind.LVASGN, 'x', send (lvar ('a'), '+', lvar ('b'))), 'let x = (a + b);'),
    (s (Kind.LVASGN, 'x', s (Kind.AND, lvar ('a'), lvar ('b'))), 'let x = (a && b);'),
    (s (Kind.IF, s (Kind.AND, lvar ('a'), lvar ('b')), lvar ('c'), None),
        'if (a && b) {\n  c;\n}'),
    ])
def test_operator_parentheses (node, expected):
    assert generate (node) == expected
