import pytest
from node import Node, Loc, Kind, MalformedNode, s, walk_nodes

def test_kind_from_name():
    assert Node ('send', [None, 'foo']).kind is Kind.SEND
    assert Node (Kind.INT, [1]).type == 'int'

def test_unknown_kind():
    with pytest.raises (ValueError):
        Node ('no_such_kind', [])

def test_absent_children():
    with pytest.raises (MalformedNode):
        Node (Kind.INT, None)

def test_immutable():
    n = s (Kind.INT, 1)
    with pytest.raises (AttributeError):
        n.kind = Kind.FLOAT
    with pytest.raises (AttributeError):
        del n.children

def test_equality_ignores_location():
    a = Node (Kind.INT, [1], Loc (0, 1))
    b = Node (Kind.INT, [1], Loc (10, 11))
    assert a == b
    assert hash (a) == hash (b)
    assert a != Node (Kind.INT, [2], Loc (0, 1))
    assert a != Node (Kind.FLOAT, [1], Loc (0, 1))

def test_updated_keeps_the_rest():
    loc = Loc (3, 7)
    n = Node (Kind.SEND, [None, 'foo'], loc)
    u = n.updated (children=[None, 'bar'])
    assert u.children == (None, 'bar')
    assert u.loc is loc
    assert n.children == (None, 'foo')
    assert n.updated (kind=Kind.CSEND).kind is Kind.CSEND

def _send (source, start, end, selector):
    return Node (Kind.SEND, [Node (Kind.SELF), source[selector[0]:selector[1]]],
        Loc (start, end, selector, source))

@pytest.mark.parametrize ('source, expected', [
    ('self.p', False),
    ('self.p()', True),
    ('self.p ', False),
    ])
def test_is_call_from_selector (source, expected):
    assert _send (source, 0, len (source), (5, 6)).is_call is expected

def test_is_call_defaults():
    assert Node (Kind.SEND, [None, 'foo']).is_call
    assert Node (Kind.SEND, [None, 'foo', s (Kind.INT, 1)], Loc (0, 5)).is_call
    assert not Node (Kind.ATTR, [s (Kind.SELF), 'foo']).is_call
    assert Node (Kind.CALL, [s (Kind.SELF), 'foo']).is_call

def test_to_sexp():
    n = s (Kind.SEND, None, 'puts', s (Kind.STR, 'hi'))
    assert n.to_sexp() == "(send nil :puts (str 'hi'))"
    assert repr (s (Kind.INT, 5)) == '(int 5)'

def test_walk_nodes_depth():
    leaf = s (Kind.INT, 1)
    root = s (Kind.ARRAY, s (Kind.ARRAY, leaf), s (Kind.NIL))
    got = [(n.kind, d) for n, d in walk_nodes (root)]
    assert got == [
        (Kind.ARRAY, 0), (Kind.ARRAY, 1), (Kind.INT, 2), (Kind.NIL, 1)
        ]
