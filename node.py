from enum import Enum

# Canonical AST shared by the walker, the filters and the generator. Kind
# names follow the Parser gem vocabulary so external filters can match on
# the textual name (Kind.SEND.value == 'send').

class Kind(Enum):
    # literals
    INT        = 'int'
    FLOAT      = 'float'
    STR        = 'str'
    DSTR       = 'dstr'
    SYM        = 'sym'
    REGEXP     = 'regexp'
    REGOPT     = 'regopt'
    NIL        = 'nil'
    TRUE       = 'true'
    FALSE      = 'false'
    SELF       = 'self'
    ARRAY      = 'array'
    HASH       = 'hash'
    PAIR       = 'pair'
    KWSPLAT    = 'kwsplat'
    IRANGE     = 'irange'
    ERANGE     = 'erange'
    SPLAT      = 'splat'
    BLOCK_PASS = 'block_pass'
    # variables
    LVAR       = 'lvar'
    IVAR       = 'ivar'
    CVAR       = 'cvar'
    GVAR       = 'gvar'
    CONST      = 'const'
    CBASE      = 'cbase'
    # assignment
    LVASGN     = 'lvasgn'
    IVASGN     = 'ivasgn'
    CVASGN     = 'cvasgn'
    GVASGN     = 'gvasgn'
    CASGN      = 'casgn'
    MASGN      = 'masgn'
    MLHS       = 'mlhs'
    OP_ASGN    = 'op_asgn'
    OR_ASGN    = 'or_asgn'
    AND_ASGN   = 'and_asgn'
    # calls
    SEND       = 'send'
    CSEND      = 'csend'
    ATTR       = 'attr'
    CALL       = 'call'
    SUPER      = 'super'
    ZSUPER     = 'zsuper'
    YIELD      = 'yield'
    BLOCK      = 'block'
    NUMBLOCK   = 'numblock'
    # control flow
    BEGIN      = 'begin'
    KWBEGIN    = 'kwbegin'
    IF         = 'if'
    CASE       = 'case'
    WHEN       = 'when'
    WHILE      = 'while'
    UNTIL      = 'until'
    WHILE_POST = 'while_post'
    UNTIL_POST = 'until_post'
    FOR        = 'for'
    BREAK      = 'break'
    NEXT       = 'next'
    RETURN     = 'return'
    AND        = 'and'
    OR         = 'or'
    NOT        = 'not'
    DEFINED    = 'defined?'
    # definitions
    DEF        = 'def'
    DEFS       = 'defs'
    ARGS       = 'args'
    ARG        = 'arg'
    OPTARG     = 'optarg'
    RESTARG    = 'restarg'
    KWARG      = 'kwarg'
    KWOPTARG   = 'kwoptarg'
    KWRESTARG  = 'kwrestarg'
    BLOCKARG   = 'blockarg'
    SHADOWARG  = 'shadowarg'
    CLASS      = 'class'
    MODULE     = 'module'
    # exceptions
    RESCUE     = 'rescue'
    RESBODY    = 'resbody'
    ENSURE     = 'ensure'
    # synthetic, wraps a method body whose last value is returned
    AUTORETURN = 'autoreturn'

    def __str__ (self):
        return self.value
#-------------------------------------------------------------------------------
class UnsupportedConstruct(Exception):
    def __init__(self, kind, offset=None):
        where = f' at offset {offset}' if offset is not None else ''
        super(UnsupportedConstruct, self).__init__(
            f'unsupported construct: {kind}{where}'
            )
        self.kind = kind
        self.offset = offset

class MalformedNode(Exception):
    def __init__(self, kind, field, detail=''):
        detail = f': {detail}' if detail else ''
        super(MalformedNode, self).__init__(
            f"malformed '{kind}' node, field '{field}'{detail}"
            )
        self.kind = kind
        self.field = field
#-------------------------------------------------------------------------------
class Loc:
    # "selector" is the (start, end) range of the method name on sends.
    # "source" is the whole source text, needed to look past the selector.
    __slots__ = ('start', 'end', 'selector', 'source')

    def __init__(self, start, end, selector=None, source=None):
        self.start = start
        self.end = end
        self.selector = selector
        self.source = source

    def __repr__ (self):
        sel = f', selector={self.selector}' if self.selector else ''
        return f'Loc({self.start}, {self.end}{sel})'
#-------------------------------------------------------------------------------
class Node:
    __slots__ = ('kind', 'children', 'loc', '_frozen')

    def __init__(self, kind, children=(), loc=None):
        if type (kind) is str:
            kind = Kind (kind)
        if type (kind) is not Kind:
            raise MalformedNode (kind, 'kind', 'not a node kind')
        if children is None:
            raise MalformedNode (kind, 'children', 'children list is absent')
        object.__setattr__ (self, 'kind', kind)
        object.__setattr__ (self, 'children', tuple (children))
        object.__setattr__ (self, 'loc', loc)
        object.__setattr__ (self, '_frozen', True)

    def __setattr__ (self, name, value):
        raise AttributeError (f"'{self.kind}' nodes are immutable")

    def __delattr__ (self, name):
        raise AttributeError (f"'{self.kind}' nodes are immutable")

    # location is not part of the identity of a node
    def __eq__ (self, other):
        if type (other) is not Node:
            return NotImplemented
        return self.kind is other.kind and self.children == other.children

    def __ne__ (self, other):
        eq = self.__eq__ (other)
        return eq if eq is NotImplemented else not eq

    def __hash__ (self):
        return hash ((self.kind, self.children))

    def __len__ (self):
        return len (self.children)

    def __getitem__ (self, idx):
        return self.children[idx]

    def __iter__ (self):
        return iter (self.children)

    @property
    def type (self):
        return self.kind.value

    @property
    def start (self):
        return self.loc.start if self.loc is not None else None

    def updated (self, kind=None, children=None, loc=None):
        return Node(
            self.kind if kind is None else kind,
            self.children if children is None else children,
            self.loc if loc is None else loc
            )

    @property
    def is_call (self):
        # A send written as "recv.name" (no parens, no args) reads as a
        # property; everything else, and anything without location info,
        # is treated as a call.
        if self.kind is Kind.ATTR:
            return False
        if self.kind is Kind.CALL:
            return True
        if self.loc is None:
            return True
        if self.kind in (Kind.SEND, Kind.CSEND) and len (self.children) > 2:
            return True
        selector = self.loc.selector
        if selector is None or self.loc.source is None:
            return True
        source = self.loc.source
        end = selector[1]
        return end < len (source) and source[end] == '('

    def to_sexp (self):
        parts = [self.kind.value]
        for c in self.children:
            if type (c) is Node:
                parts.append (c.to_sexp())
            elif c is None:
                parts.append ('nil')
            elif type (c) is str and self.kind not in (Kind.STR, Kind.REGEXP):
                parts.append (f':{c}')
            else:
                parts.append (repr (c))
        return f'({" ".join (parts)})'

    def __str__ (self):
        return '\n'.join (self.debug_iterate([]))

    def __repr__ (self):
        return self.to_sexp()

    def debug_iterate (self, out, depth=0):
        indent = ' ' * depth * 2
        indent1 = ' ' * ((depth * 2) + 2)
        out.append (f'{indent}({self.kind.value}')
        for c in self.children:
            if type (c) is Node:
                c.debug_iterate (out, depth + 1)
            else:
                out.append (f'{indent1}{"nil" if c is None else repr (c)}')
        out[-1] += ')'
        return out
#-------------------------------------------------------------------------------
def s (kind, *children, loc=None):
    # shorthand for building nodes in filters and tests
    return Node (kind, children, loc)

def walk_nodes (node, depth=0):
    # depth first, pre-order (node, depth) pairs
    if type (node) is not Node:
        return
    yield node, depth
    for c in node.children:
        if type (c) is Node:
            yield from walk_nodes (c, depth + 1)
