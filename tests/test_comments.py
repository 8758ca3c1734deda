from node import Node, Loc, Kind
from comments import Comment, CommentMap, associate

def _int (value, start):
    return Node (Kind.INT, [value], Loc (start, start + 1))

def test_nearest_following_start_wins():
    deep = _int (1, 12)
    # the wrapper has no location, "deep" sits two levels down
    root = Node (Kind.ARRAY, [Node (Kind.ARRAY, [deep])], Loc (15, 20))
    comment = Comment ('# c', 0, 10)
    cmap = associate (root, [comment])
    assert cmap[deep] == [comment]
    assert root not in cmap

def test_same_start_goes_to_the_outermost():
    inner = _int (1, 5)
    outer = Node (Kind.ARRAY, [inner], Loc (5, 9))
    comment = Comment ('# c', 0, 4)
    cmap = associate (outer, [comment])
    assert cmap[outer] == [comment]
    assert inner not in cmap

def test_begin_never_owns_comments():
    first = _int (1, 6)
    root = Node (Kind.BEGIN, [first, _int (2, 8)], Loc (0, 9))
    cmap = associate (root, [Comment ('# c', 0, 5)])
    assert list (cmap) == [first]

def test_trailing_comment_dropped():
    root = _int (1, 0)
    cmap = associate (root, [Comment ('# end', 2, 7)])
    assert len (cmap) == 0

def test_comments_keep_source_order():
    node = _int (1, 20)
    a = Comment ('# a', 0, 3)
    b = Comment ('# b', 4, 7)
    cmap = associate (node, [b, a])
    assert cmap[node] == [a, b]

def test_map_is_keyed_by_identity():
    a = Node (Kind.INT, [1], Loc (0, 1))
    b = Node (Kind.INT, [1], Loc (5, 6))
    assert a == b
    cmap = CommentMap()
    cmap.add (a, Comment ('# a', 0, 0))
    assert a in cmap
    assert b not in cmap
    assert cmap.get (b) is None
    assert cmap.pop (a) == [Comment ('# a', 0, 0)]
    assert len (cmap) == 0

def test_nothing_to_associate():
    assert len (associate (None, [Comment ('# c', 0, 3)])) == 0
    assert len (associate (_int (1, 0), [])) == 0
