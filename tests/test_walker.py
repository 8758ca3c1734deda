import pytest
from node import Node, Kind, UnsupportedConstruct, MalformedNode, s
from parser import parse, ParseNode
from walker import Walker

def walk (source):
    tree, _ = parse (source)
    return Walker (source).visit (tree)

def send (receiver, name, *args):
    return s (Kind.SEND, receiver, name, *args)

def vcall (name):
    return send (None, name)

@pytest.mark.parametrize ('source, expected', [
    ('1 + 2', send (s (Kind.INT, 1), '+', s (Kind.INT, 2))),
    ('foo', vcall ('foo')),
    ('@a = 1', s (Kind.IVASGN, '@a', s (Kind.INT, 1))),
    ('x&.y', s (Kind.CSEND, vcall ('x'), 'y')),
    ('[1, :a]', s (Kind.ARRAY, s (Kind.INT, 1), s (Kind.SYM, 'a'))),
    ('a ||= 1', s (Kind.OR_ASGN, s (Kind.LVASGN, 'a'), s (Kind.INT, 1))),
    ])
def test_expressions (source, expected):
    assert walk (source) == expected

def test_locals_become_reads():
    assert walk ('x = 1\nx') == s(
        Kind.BEGIN, s (Kind.LVASGN, 'x', s (Kind.INT, 1)), s (Kind.LVAR, 'x')
        )

def test_unless_swaps_branches():
    assert walk ('unless a\n  b\nend') == s (Kind.IF, vcall ('a'), None, vcall ('b'))

def test_multiple_assignment():
    assert walk ('a, b = b, a') == s(
        Kind.MASGN,
        s (Kind.MLHS, s (Kind.LVASGN, 'a'), s (Kind.LVASGN, 'b')),
        s (Kind.ARRAY, s (Kind.LVAR, 'b'), s (Kind.LVAR, 'a')),
        )

def test_block_starts_with_its_call():
    ast = walk ('[1].each { |v| v }')
    assert ast == s(
        Kind.BLOCK,
        send (s (Kind.ARRAY, s (Kind.INT, 1)), 'each'),
        s (Kind.ARGS, s (Kind.ARG, 'v')),
        s (Kind.LVAR, 'v'),
        )
    assert ast.loc.start == 0

def test_numbered_block_parameters():
    ast = walk ('[1].map { _1 * 2 }')
    assert ast.kind is Kind.NUMBLOCK
    assert ast.children[1] == 1
    assert ast.children[2] == send (s (Kind.LVAR, '_1'), '*', s (Kind.INT, 2))

def test_def_parameters():
    assert walk ('def f(a, b = 1)\nend') == s(
        Kind.DEF, 'f',
        s (Kind.ARGS, s (Kind.ARG, 'a'), s (Kind.OPTARG, 'b', s (Kind.INT, 1))),
        None,
        )

def test_singleton_def():
    assert walk ('def self.f\nend') == s (Kind.DEFS, s (Kind.SELF), 'f', s (Kind.ARGS), None)

def test_property_target_is_not_a_call():
    ast = walk ('self.p ||= 1')
    assert ast.kind is Kind.OR_ASGN
    target = ast.children[0]
    assert target == send (s (Kind.SELF), 'p')
    assert target.loc.selector is not None
    assert not target.is_call

def test_call_with_parens_is_a_call():
    ast = walk ('a.b()')
    assert ast == send (vcall ('a'), 'b')
    assert ast.is_call

def test_rescue_clause():
    ast = walk ('begin\n  a\nrescue Foo => e\n  b\nend')
    assert ast == s(
        Kind.KWBEGIN,
        s(
            Kind.RESCUE, vcall ('a'),
            s (Kind.RESBODY, s (Kind.ARRAY, s (Kind.CONST, None, 'Foo')),
                s (Kind.LVASGN, 'e'), vcall ('b')),
            None,
            ),
        )

def test_unknown_parse_node():
    with pytest.raises (UnsupportedConstruct) as uc:
        Walker ('').visit (ParseNode ('FlipFlopNode', 3, 4))
    assert uc.value.offset == 3

def test_missing_field():
    with pytest.raises (MalformedNode):
        Walker ('').visit (ParseNode ('IfNode', 0, 1, statements=None))

def test_empty_program():
    assert walk ('') is None

@pytest.mark.parametrize ('source, expected', [
    ('if a\n  b\nend', s (Kind.IF, vcall ('a'), vcall ('b'), None)),
    ('if a then b end', s (Kind.IF, vcall ('a'), vcall ('b'), None)),
    ('if a; b; end', s (Kind.IF, vcall ('a'), vcall ('b'), None)),
    ('while a\n  b\nend', s (Kind.WHILE, vcall ('a'), vcall ('b'))),
    ('y = foo\n', s (Kind.LVASGN, 'y', vcall ('foo'))),
    ('a = b.c\n', s (Kind.LVASGN, 'a', send (vcall ('b'), 'c'))),
    ])
def test_names_at_the_end_of_a_line (source, expected):
    assert walk (source) == expected

def test_attribute_read_is_not_a_call():
    ast = walk ('a = b.c\n')
    assert not ast.children[1].is_call

def test_rescue_class_list():
    ast = walk ('begin\n  a\nrescue A, B => e\n  b\nend')
    clause = ast.children[0].children[1]
    assert clause == s(
        Kind.RESBODY,
        s (Kind.ARRAY, s (Kind.CONST, None, 'A'), s (Kind.CONST, None, 'B')),
        s (Kind.LVASGN, 'e'),
        vcall ('b'),
        )

def test_until_keeps_its_kind():
    assert walk ('until a\n  b\nend') == s (Kind.UNTIL, vcall ('a'), vcall ('b'))
