from bisect import bisect_left
from node import Kind, walk_nodes

class Comment:
    __slots__ = ('text', 'start', 'end')

    def __init__(self, text, start, end):
        self.text = text
        self.start = start
        self.end = end

    def __eq__ (self, other):
        if type (other) is not Comment:
            return NotImplemented
        return (self.text, self.start, self.end) == \
            (other.text, other.start, other.end)

    def __hash__ (self):
        return hash ((self.text, self.start, self.end))

    def __repr__ (self):
        return f'Comment({self.text!r}, {self.start}, {self.end})'
#-------------------------------------------------------------------------------
class CommentMap:
    # Keyed by node identity: two structurally equal nodes at different
    # places in the source own different comments.
    def __init__(self):
        self._entries = {}

    def add (self, node, comment):
        entry = self._entries.get (id (node))
        if entry is None:
            entry = (node, [])
            self._entries[id (node)] = entry
        entry[1].append (comment)

    def get (self, node, default=None):
        entry = self._entries.get (id (node))
        return entry[1] if entry is not None else default

    def pop (self, node, default=None):
        entry = self._entries.pop (id (node), None)
        return entry[1] if entry is not None else default

    def __getitem__ (self, node):
        entry = self._entries.get (id (node))
        if entry is None:
            raise KeyError (node)
        return entry[1]

    def __contains__ (self, node):
        return id (node) in self._entries

    def __len__ (self):
        return len (self._entries)

    def __iter__ (self):
        return (node for node, _ in self._entries.values())

    def items (self):
        return [(node, comments) for node, comments in self._entries.values()]
#-------------------------------------------------------------------------------
def _positioned_nodes (root):
    # "begin" only groups statements, the statements own the comments
    entries = []
    for node, depth in walk_nodes (root):
        if node.kind is Kind.BEGIN or node.loc is None:
            continue
        entries.append ((node.loc.start, depth, node))
    entries.sort (key=lambda e: (e[0], e[1]))
    return entries

def associate (root, comments):
    cmap = CommentMap()
    if root is None or not comments:
        return cmap

    entries = _positioned_nodes (root)
    starts = [e[0] for e in entries]
    for comment in sorted (comments, key=lambda c: (c.end, c.start)):
        idx = bisect_left (starts, comment.end)
        if idx == len (entries):
            continue # nothing follows, dropped
        cmap.add (entries[idx][2], comment)
    return cmap
