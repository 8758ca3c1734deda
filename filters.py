import re
from node import Node, Kind

# AST to AST rewrites applied between the walker and the generator. A filter
# is a plain function taking and returning a node, nodes are never mutated.

def rewrite (node, fn):
    # bottom up, "fn" sees the node with its children already rewritten
    if type (node) is not Node:
        return node
    children = [rewrite (c, fn) for c in node.children]
    if any (a is not b for a, b in zip (children, node.children)):
        node = node.updated (children=children)
    return fn (node)

def apply_filters (node, filters):
    for f in filters:
        if node is None:
            break
        node = f (node)
    return node
#-------------------------------------------------------------------------------
# camelcase

_SNAKE = re.compile (r'^(_*)([a-z0-9]+(?:_[a-z0-9]+)+)([?!=]?)$')

def camel (name):
    m = _SNAKE.match (name)
    if m is None:
        return name
    lead, core, suffix = m.groups()
    parts = core.split ('_')
    return lead + parts[0] + ''.join (p[:1].upper() + p[1:] for p in parts[1:]) + \
        suffix

def _sigil_camel (name):
    sigil = name[:len (name) - len (name.lstrip ('@$'))]
    return sigil + camel (name[len (sigil):])

_NAME_FIRST = {
    Kind.LVAR, Kind.LVASGN, Kind.ARG, Kind.OPTARG, Kind.RESTARG, Kind.KWARG,
    Kind.KWOPTARG, Kind.KWRESTARG, Kind.BLOCKARG, Kind.SHADOWARG, Kind.DEF,
    Kind.SYM,
}
_SIGIL_FIRST = {Kind.IVAR, Kind.IVASGN, Kind.CVAR, Kind.CVASGN}
_NAME_SECOND = {Kind.SEND, Kind.CSEND, Kind.ATTR, Kind.CALL, Kind.DEFS}

# rewritten by the generator under their Ruby names
_KEEP = {
    'attr_accessor', 'attr_reader', 'attr_writer', 'block_given?',
    'module_function', 'is_a?', 'kind_of?', 'instance_of?',
    'each_with_index', 'start_with?', 'end_with?', 'to_s', 'to_i',
    'to_f', 'to_a', 'to_sym', 'to_json',
}

def _camelcase_node (node):
    children = list (node.children)
    if node.kind in _NAME_FIRST and children and type (children[0]) is str:
        children[0] = camel (children[0])
    elif node.kind in _SIGIL_FIRST:
        children[0] = _sigil_camel (children[0])
    elif node.kind in _NAME_SECOND and type (children[1]) is str and \
        children[1] not in _KEEP:
        children[1] = camel (children[1])
    else:
        return node
    if children == list (node.children):
        return node
    return node.updated (children=children)

def camelcase (node):
    return rewrite (node, _camelcase_node)
#-------------------------------------------------------------------------------
# functions

_MATH_UNARY = ('abs', 'round', 'floor', 'ceil')
_MATH_SPREAD = ('max', 'min')

def _math (node):
    if node.kind is not Kind.SEND or len (node.children) != 2:
        return node
    receiver, name = node.children
    if receiver is None:
        return node
    math = Node (Kind.CONST, [None, 'Math'])
    if name in _MATH_UNARY:
        return node.updated (children=[math, name, receiver])
    if name in _MATH_SPREAD and receiver.kind in (Kind.ARRAY, Kind.LVAR,
        Kind.IVAR, Kind.SEND):
        spread = Node (Kind.SPLAT, [receiver], receiver.loc)
        return node.updated (children=[math, name, spread])
    return node

def functions (node):
    return rewrite (node, _math)
#-------------------------------------------------------------------------------
FILTERS = {
    'camelcase' : camelcase,
    'functions' : functions,
}
