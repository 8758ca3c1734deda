import pytest
from node import Kind, s
from filters import camel, camelcase, functions, apply_filters, rewrite

@pytest.mark.parametrize ('name, expected', [
    ('first_name', 'firstName'),
    ('to_html', 'toHtml'),
    ('_private_thing', '_privateThing'),
    ('valid_name?', 'validName?'),
    ('name', 'name'),
    ('CONSTANT_NAME', 'CONSTANT_NAME'),
    ])
def test_camel (name, expected):
    assert camel (name) == expected

def test_camelcase_locals_and_calls():
    node = s(
        Kind.LVASGN, 'user_name',
        s (Kind.SEND, s (Kind.IVAR, '@first_name'), 'upcase_first'),
        )
    assert camelcase (node) == s(
        Kind.LVASGN, 'userName',
        s (Kind.SEND, s (Kind.IVAR, '@firstName'), 'upcaseFirst'),
        )

def test_camelcase_keeps_rewritten_names():
    node = s (Kind.SEND, s (Kind.LVAR, 'x'), 'is_a?', s (Kind.CONST, None, 'Foo'))
    assert camelcase (node) is node

def test_unchanged_trees_are_shared():
    node = s (Kind.ARRAY, s (Kind.INT, 1), s (Kind.LVAR, 'x'))
    assert rewrite (node, lambda n: n) is node

def test_functions_math():
    node = s (Kind.SEND, s (Kind.LVAR, 'x'), 'abs')
    assert functions (node) == s(
        Kind.SEND, s (Kind.CONST, None, 'Math'), 'abs', s (Kind.LVAR, 'x')
        )

def test_functions_spread():
    values = s (Kind.ARRAY, s (Kind.INT, 1), s (Kind.INT, 2))
    node = s (Kind.SEND, values, 'max')
    assert functions (node) == s(
        Kind.SEND, s (Kind.CONST, None, 'Math'), 'max', s (Kind.SPLAT, values)
        )

def test_apply_filters_in_order():
    node = s (Kind.SEND, s (Kind.LVAR, 'some_value'), 'abs')
    out = apply_filters (node, [camelcase, functions])
    assert out == s(
        Kind.SEND, s (Kind.CONST, None, 'Math'), 'abs', s (Kind.LVAR, 'someValue')
        )
    assert apply_filters (None, [camelcase]) is None
