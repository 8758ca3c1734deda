import re
import json
import jsonschema
import sys
from node import Node, Kind, MalformedNode, walk_nodes
from serializer import Serializer
from comments import CommentMap, associate
from parser import parse as parse_ruby
from walker import Walker
from filters import FILTERS, apply_filters
from preprocessor import read_magic_comments

#-------------------------------------------------------------------------------
def warn(txt):
    # looked up per call, stderr may be replaced after import
    print(txt, file=sys.stderr)
#-------------------------------------------------------------------------------
# Method rewrites. "property" renders "recv.to", "method" renders
# "recv.to(args)" and "function" renders "to(recv, args)". When "arity" is
# present the rewrite only applies to calls with that many arguments.
METHOD_TABLE_SCHEMA = {
    'type': 'object',
    'additionalProperties': {
        'type': 'object',
        'properties': {
            'to': {
                'type': 'string',
            },
            'kind': {
                'enum': ['property', 'method', 'function'],
            },
            'arity': {
                'type': 'integer',
                'minimum': 0,
            },
        },
        'additionalProperties': False,
        'required': ['to', 'kind'],
    },
}

METHOD_TABLE = {
    'size'        : {'to': 'length', 'kind': 'property', 'arity': 0},
    'length'      : {'to': 'length', 'kind': 'property', 'arity': 0},
    'count'       : {'to': 'length', 'kind': 'property', 'arity': 0},
    'upcase'      : {'to': 'toUpperCase', 'kind': 'method', 'arity': 0},
    'downcase'    : {'to': 'toLowerCase', 'kind': 'method', 'arity': 0},
    'strip'       : {'to': 'trim', 'kind': 'method', 'arity': 0},
    'lstrip'      : {'to': 'trimStart', 'kind': 'method', 'arity': 0},
    'rstrip'      : {'to': 'trimEnd', 'kind': 'method', 'arity': 0},
    'to_s'        : {'to': 'toString', 'kind': 'method', 'arity': 0},
    'include?'    : {'to': 'includes', 'kind': 'method', 'arity': 1},
    'start_with?' : {'to': 'startsWith', 'kind': 'method'},
    'end_with?'   : {'to': 'endsWith', 'kind': 'method'},
    'index'       : {'to': 'indexOf', 'kind': 'method', 'arity': 1},
    'each'        : {'to': 'forEach', 'kind': 'method'},
    'each_with_index' : {'to': 'forEach', 'kind': 'method'},
    'select'      : {'to': 'filter', 'kind': 'method'},
    'detect'      : {'to': 'find', 'kind': 'method'},
    'any?'        : {'to': 'some', 'kind': 'method'},
    'all?'        : {'to': 'every', 'kind': 'method'},
    'join'        : {'to': 'join', 'kind': 'method'},
    'reverse'     : {'to': 'reverse', 'kind': 'method', 'arity': 0},
    'sort'        : {'to': 'sort', 'kind': 'method', 'arity': 0},
    'pop'         : {'to': 'pop', 'kind': 'method', 'arity': 0},
    'shift'       : {'to': 'shift', 'kind': 'method', 'arity': 0},
    'to_i'        : {'to': 'parseInt', 'kind': 'function', 'arity': 0},
    'to_f'        : {'to': 'parseFloat', 'kind': 'function', 'arity': 0},
    'keys'        : {'to': 'Object.keys', 'kind': 'function', 'arity': 0},
    'values'      : {'to': 'Object.values', 'kind': 'function', 'arity': 0},
    'freeze'      : {'to': 'Object.freeze', 'kind': 'function', 'arity': 0},
    'to_json'     : {'to': 'JSON.stringify', 'kind': 'function', 'arity': 0},
}

def load_method_tables (table, files):
    # Merges the user passed json files on top of "table", later files win
    for filename in files:
        with open (filename, 'r') as f:
            content = f.read()
        dic = json.loads (content)
        jsonschema.validate (instance=dic, schema=METHOD_TABLE_SCHEMA)
        table.update (dic)
    return table
#-------------------------------------------------------------------------------
BINARY_OPERATORS = {
    '+', '-', '*', '/', '%', '**', '<', '<=', '>', '>=', '&', '|', '^',
    '<<', '>>', '==', '!=',
}
UNARY_OPERATORS = {'-@': '-', '+@': '+', '!': '!', '~': '~'}

# kinds that can be returned as they are
EXPRESSIONS = {
    Kind.ARRAY, Kind.FLOAT, Kind.HASH, Kind.INT, Kind.LVAR, Kind.NIL,
    Kind.SEND, Kind.ATTR, Kind.STR, Kind.SYM, Kind.DSTR, Kind.CVAR,
    Kind.IVAR, Kind.ZSUPER, Kind.SUPER, Kind.OR, Kind.AND, Kind.BLOCK,
    Kind.NUMBLOCK, Kind.CONST, Kind.TRUE, Kind.FALSE, Kind.SELF,
    Kind.OP_ASGN, Kind.AND_ASGN, Kind.OR_ASGN, Kind.GVAR, Kind.CSEND,
    Kind.CALL, Kind.REGEXP, Kind.IRANGE, Kind.ERANGE, Kind.NOT,
    Kind.DEFINED, Kind.YIELD,
}

# simple literals, a "case" made of these becomes a "switch"
SWITCH_LITERALS = {
    Kind.INT, Kind.FLOAT, Kind.STR, Kind.SYM, Kind.NIL, Kind.TRUE, Kind.FALSE,
}

# rescued without discrimination, JavaScript has no such classes
CATCH_ALL_EXCEPTIONS = {'StandardError', 'Exception', 'RuntimeError'}

IDENTIFIER = re.compile (r'^[A-Za-z_$][\w$]*$')
#-------------------------------------------------------------------------------
class Options:
    def __init__(
        self,
        eslevel=2020,
        comparison='equality',
        or_='logical',
        underscored_private=None,
        respace=True,
        filters=None,
        method_table=None,
        method_table_files=(),
        ):
        if comparison not in ('equality', 'identity'):
            raise ValueError (f'invalid comparison: {comparison}')
        if or_ not in ('logical', 'nullish'):
            raise ValueError (f'invalid or: {or_}')
        self.eslevel = int (eslevel)
        self.comparison = comparison
        self.or_ = or_
        if underscored_private is None:
            underscored_private = self.eslevel < 2022
        self.underscored_private = underscored_private
        self.respace = respace
        self.filters = list (filters) if filters else []
        self.method_table = dict (METHOD_TABLE)
        if method_table:
            jsonschema.validate (instance=method_table, schema=METHOD_TABLE_SCHEMA)
            self.method_table.update (method_table)
        load_method_tables (self.method_table, method_table_files)

    def __repr__ (self):
        return (
            f'Options(eslevel={self.eslevel}, comparison={self.comparison!r}, '
            f'or_={self.or_!r}, underscored_private={self.underscored_private}, '
            f'respace={self.respace}, filters={self.filters!r})'
            )
#-------------------------------------------------------------------------------
class Scope:
    # "gate" scopes (methods, the program) hide the locals of the outer ones,
    # blocks see them. "mark" is where hoisted declarations get inserted, the
    # output location of the current top level statement of the scope.
    def __init__(self, gate, names=()):
        self.gate = gate
        self.declared = set (names)
        self.mark = None
        self.level = 0

class ClassContext:
    def __init__(self, name, private):
        self.name = name
        self.private = private # "#x" fields instead of "_x"
        self.getters = set()
        self.methods = set()

class MethodContext:
    def __init__(self, name, params, block=None, constructor=False,
        getter=False):
        self.name = name
        self.params = params # argument names, forwarded by "super"
        self.block = block
        self.constructor = constructor
        self.getter = getter
#-------------------------------------------------------------------------------
def _comment_text (text):
    if text.startswith ('=begin'):
        body = text[len ('=begin'):]
        body = re.sub (r'\n=end\b[^\n]*$', '', body)
        return '/*' + body.rstrip() + '\n*/'
    return '//' + text[1:]

def _strip_name (name):
    # "valid?" and "save!" are not identifiers
    return name.rstrip ('?!')

def _sigil_less (name):
    return name.lstrip ('@$')

def _is_raise (node):
    return node is not None and node.kind is Kind.SEND and \
        node.children[0] is None and node.children[1] == 'raise'

def _unparen (node):
    while node is not None and node.kind is Kind.BEGIN and len (node.children) == 1:
        node = node.children[0]
    return node

def _is_range (node):
    node = _unparen (node)
    return node is not None and node.kind in (Kind.IRANGE, Kind.ERANGE)

def _self_parenthesized (node):
    # operator expressions come out wrapped in parentheses already
    if node.kind in (Kind.AND, Kind.OR):
        return True
    return node.kind is Kind.SEND and len (node.children) == 3 and \
        node.children[0] is not None and node.children[1] in BINARY_OPERATORS

def _terminates (body):
    last = body
    while last is not None and last.kind is Kind.BEGIN and last.children:
        last = last.children[-1]
    if last is None:
        return False
    return last.kind in (Kind.RETURN, Kind.BREAK, Kind.NEXT) or _is_raise (last)

ASSIGNMENT_READS = {
    Kind.LVASGN: Kind.LVAR,
    Kind.IVASGN: Kind.IVAR,
    Kind.CVASGN: Kind.CVAR,
    Kind.GVASGN: Kind.GVAR,
}

ACCESSORS = ('attr_accessor', 'attr_reader', 'attr_writer')
VISIBILITY = ('private', 'protected', 'public', 'module_function')

def _body_statements (body):
    if body is None:
        return []
    if body.kind is Kind.BEGIN:
        return list (body.children)
    return [body]

def _instance_variables (node, out):
    if type (node) is not Node:
        return out
    if node.kind in (Kind.IVAR, Kind.IVASGN):
        name = _sigil_less (node.children[0])
        if name not in out:
            out.append (name)
    for c in node.children:
        if type (c) is Node and c.kind not in (Kind.CLASS, Kind.MODULE):
            _instance_variables (c, out)
    return out

def _is_getter (name, args, body):
    # methods without arguments read as properties
    if name == 'initialize' or name.endswith (('!', '=')):
        return False
    if args is not None and args.children:
        return False
    return not _yields (body)

def _is_accessor (node):
    return node.kind is Kind.SEND and node.children[0] is None and \
        node.children[1] in ACCESSORS

def _template_escape (text):
    text = text.replace ('\\', '\\\\').replace ('`', '\\`')
    text = text.replace ('${', '\\${')
    return text.replace ('\n', '\\n').replace ('\r', '\\r')

def _extended (pattern):
    # drops the whitespace and the comments of an "x" regular expression
    out = []
    i = 0
    klass = False
    while i < len (pattern):
        c = pattern[i]
        if c == '\\' and i + 1 < len (pattern):
            out.append (pattern[i:i + 2])
            i += 2
            continue
        if klass:
            klass = c != ']'
            out.append (c)
        elif c == '[':
            klass = True
            out.append (c)
        elif c == '#':
            end = pattern.find ('\n', i)
            i = len (pattern) if end < 0 else end
            continue
        elif not c.isspace():
            out.append (c)
        i += 1
    return ''.join (out)

def js_regexp (pattern, flags=()):
    if 'x' in flags:
        pattern = _extended (pattern)
    unescaped = r'(?<!\\)((?:\\\\)*)'
    pattern = re.sub (unescaped + '/', r'\1\\/', pattern)
    pattern = re.sub (unescaped + r'\\A', r'\1^', pattern)
    pattern = re.sub (unescaped + r'\\[zZ]', r'\1$', pattern)
    js_flags = ''.join ({'i': 'i', 'm': 's'}.get (f, '') for f in sorted (set (flags)))
    return f'/{pattern or "(?:)"}/{js_flags}'

KEYWORD_PARAMS = {Kind.KWARG, Kind.KWOPTARG, Kind.KWRESTARG}
SCOPE_KINDS = {Kind.DEF, Kind.DEFS, Kind.CLASS, Kind.MODULE}

def _arg_name (args, default):
    if args is not None:
        for arg in args.children:
            if arg.kind is Kind.ARG:
                return arg.children[0]
    return default

def _returnable (node):
    # can be the operand of "return" or the body of a concise arrow function
    if node.kind not in EXPRESSIONS or _is_raise (node):
        return False
    if node.kind is Kind.SEND and node.children[1] == '<<':
        return False # a push when it is a statement
    if node.kind is Kind.BLOCK:
        call = node.children[0]
        if call.kind is Kind.SEND and call.children[0] is None and \
            call.children[1] == 'loop':
            return False
    return True

def _yields (node):
    if type (node) is not Node:
        return False
    if node.kind is Kind.YIELD:
        return True
    if node.kind is Kind.SEND and node.children[0] is None and \
        node.children[1] == 'block_given?':
        return True
    return any(
        _yields (c) for c in node.children
        if type (c) is Node and c.kind not in SCOPE_KINDS
        )

def _param_names (args):
    names, keywords, block = [], [], []
    if args is None:
        return names
    for arg in args.children:
        name = arg.children[0] if arg.children else None
        if arg.kind in (Kind.ARG, Kind.OPTARG):
            names.append (name)
        elif arg.kind is Kind.RESTARG:
            names.append ('...' + (name or 'args'))
        elif arg.kind is Kind.BLOCKARG:
            block.append (name or 'blk')
        elif arg.kind in (Kind.KWARG, Kind.KWOPTARG):
            keywords.append (name)
        elif arg.kind is Kind.KWRESTARG:
            keywords.append ('...' + (name or 'opts'))
        elif arg.kind is Kind.MLHS:
            inner = _param_names (Node (Kind.ARGS, arg.children))
            names.append ('[' + ', '.join (inner) + ']')
    if keywords:
        names.append ('{' + ', '.join (keywords) + '}')
    return names + block
#-------------------------------------------------------------------------------
class Generator:
    def __init__(self, options=None, comments=None):
        self.options = options if options is not None else Options()
        self.comments = comments if comments is not None else CommentMap()
        self.s = Serializer()
        self.state = 'statement'
        program = Scope (gate=True)
        program.mark = self.s.output_location()
        self.scopes = [program]
        self.jumps = []       # 'loop' or 'function', decides what "next" is
        self.classes = []     # ClassContext
        self.methods = []     # MethodContext
        self.rescue_vars = [] # what a bare "raise" rethrows
        self.starts = []      # first output line of each open statement
        self._block_end = None

    def generate (self, node):
        self.statement (node)
        self.s.close()
        return self.s.lines

    def render (self):
        return self.s.render (respace=self.options.respace)

    #---------------------------------------------------------------------------
    # dispatch

    def parse (self, node, state='expression'):
        if node is None:
            if state != 'statement':
                self.s.put ('null')
            return
        if type (node) is not Node:
            raise MalformedNode ('?', 'child', f'not a node: {node!r}')
        if self.s.output_location()[1] == 0:
            self._comments (node)
        prev_state, prev_node = self.state, self.s.node
        self.state, self.s.node = state, node
        try:
            HANDLERS[node.kind] (self, node)
        finally:
            self.state, self.s.node = prev_state, prev_node

    @property
    def statement_state (self):
        return self.state == 'statement'

    @property
    def bare (self):
        # conditions and expression statements take no outer parentheses
        return self.state in ('bare', 'statement')

    def statement (self, node):
        if node is None:
            return
        self._comments (node)
        if node.kind in (Kind.BEGIN, Kind.AUTORETURN, Kind.KWBEGIN):
            # transparent, the children are the statements
            self.parse (node, 'statement')
            return
        scope = self.scopes[-1]
        if scope.level == 0:
            scope.mark = self.s.output_location()
        self.starts.append (self.s.output_location()[0])
        self.parse (node, 'statement')
        # classes and modules end their own line
        if node.kind not in (Kind.CLASS, Kind.MODULE):
            if self.s.output_location() != self._block_end:
                self.s.put (';')
            self.s.puts ('')
        self._stray_comments (node, self.starts.pop())

    def _comments (self, node):
        for comment in self.comments.pop (node, []):
            self.s.puts (_comment_text (comment.text))

    def _stray_comments (self, node, lineno):
        # comments owned by nodes written in the middle of a line go before
        # the statement containing them
        stray = []
        for n, _ in walk_nodes (node):
            stray.extend (self.comments.pop (n, []))
        stray.sort (key=lambda c: c.start)
        for comment in stray:
            for line in _comment_text (comment.text).split ('\n'):
                self._insert_line (lineno, line)
                lineno += 1

    def _transfer_comments (self, old, new):
        for comment in self.comments.pop (old, []):
            self.comments.add (new, comment)
        return new

    #---------------------------------------------------------------------------
    # blocks of statements

    def open_block (self, text=''):
        self.s.puts (text + '{')

    def close_block (self, text='}'):
        self.s.put (text)
        self._block_end = self.s.output_location()

    def nested (self, body):
        # statements not at the top of their scope
        scope = self.scopes[-1]
        scope.level += 1
        try:
            self.statement (body)
        finally:
            scope.level -= 1

    def block_body (self, head, body, tail='}'):
        self.open_block (head)
        self.nested (body)
        self.close_block (tail)

    #---------------------------------------------------------------------------
    # scopes and declarations

    def push_scope (self, gate, names=()):
        self.scopes.append (Scope (gate, names))

    def pop_scope (self):
        self.scopes.pop()

    def is_declared (self, name):
        for scope in reversed (self.scopes):
            if name in scope.declared:
                return True
            if scope.gate:
                return False
        return False

    def declare (self, name, inline=True):
        # returns the "let " prefix when the assignment can declare the local
        # itself, otherwise hoists a declaration before the current statement
        if self.is_declared (name):
            return ''
        scope = self.scopes[-1]
        scope.declared.add (name)
        if inline and self.statement_state and scope.level == 0:
            return 'let '
        for target in reversed (self.scopes):
            if target.mark is not None:
                self._hoist (target, f'let {name};')
                return ''
        return 'let '

    def _hoist (self, scope, text):
        lineno, tokno = scope.mark
        if tokno == 0:
            self._insert_line (lineno, text)
        else:
            self.s.insert (scope.mark, text)

    def _insert_line (self, lineno, text):
        # every location at or after the insertion point moves down
        self.s.insert ((lineno, 0), text)
        for scope in self.scopes:
            if scope.mark is not None and scope.mark[0] >= lineno:
                scope.mark = (scope.mark[0] + 1, scope.mark[1])
        self.starts = [l + 1 if l >= lineno else l for l in self.starts]
        if self._block_end is not None and self._block_end[0] >= lineno:
            self._block_end = (self._block_end[0] + 1, self._block_end[1])

    #---------------------------------------------------------------------------
    # helpers

    def join (self, nodes, sep=', '):
        for i, n in enumerate (nodes):
            if i:
                self.s.put (sep)
            self.parse (n)

    def ivar_name (self, name):
        name = _sigil_less (name)
        if self.classes and self.classes[-1].private:
            return f'this.#{name}'
        return f'this._{name}'

    def cvar_name (self, name):
        name = name.lstrip ('@')
        if self.classes:
            return f'{self.classes[-1].name}._{name}'
        return f'this._{name}'

    def equality (self, op):
        if self.options.comparison == 'identity':
            return {'==': '===', '!=': '!=='}[op]
        return op

    def or_operator (self):
        if self.options.or_ == 'nullish' and self.options.eslevel >= 2020:
            return '??'
        return '||'

    def iife (self, node):
        # statement-only constructs used as values
        self.s.puts ('(() => {')
        self.push_scope (gate=False)
        self.jumps.append ('function')
        try:
            self.statement (Node (Kind.AUTORETURN, [node]))
        finally:
            self.jumps.pop()
            self.pop_scope()
        self.s.put ('})()')

    #---------------------------------------------------------------------------
    # literals

    def on_int (self, node):
        self.s.put (str (node.children[0]))

    def on_float (self, node):
        self.s.put (repr (node.children[0]))

    def on_str (self, node):
        self.s.put (json.dumps (node.children[0], ensure_ascii=False))

    def on_dstr (self, node):
        if all (p.kind is Kind.STR for p in node.children):
            self.s.put (json.dumps (
                ''.join (p.children[0] for p in node.children),
                ensure_ascii=False
                ))
            return
        self.s.put ('`')
        for part in node.children:
            if part.kind is Kind.STR:
                self.s.put (_template_escape (part.children[0]))
                continue
            if part.kind is Kind.BEGIN and len (part.children) == 0:
                continue
            self.s.put ('${')
            if part.kind is Kind.BEGIN and len (part.children) == 1:
                self.parse (part.children[0])
            else:
                self.parse (part)
            self.s.put ('}')
        self.s.put ('`')

    def on_sym (self, node):
        self.s.put (json.dumps (node.children[0], ensure_ascii=False))

    def on_regexp (self, node):
        pattern, opts = node.children
        flags = opts.children if opts is not None else ()
        if pattern.kind is not Kind.STR:
            raise MalformedNode (node.kind, 'pattern', 'not a literal')
        self.s.put (js_regexp (pattern.children[0], flags))

    def on_nil (self, node):
        self.s.put ('null')

    def on_true (self, node):
        self.s.put ('true')

    def on_false (self, node):
        self.s.put ('false')

    def on_self (self, node):
        self.s.put ('this')

    def on_array (self, node):
        self.s.put ('[')
        self.join (node.children)
        self.s.put (']')

    def on_hash (self, node):
        if not node.children:
            self.s.put ('{}')
            return
        self.s.put ('{')
        for i, pair in enumerate (node.children):
            if i:
                self.s.put (', ')
            if pair.kind is Kind.KWSPLAT:
                self.s.put ('...')
                self.parse (pair.children[0])
                continue
            if pair.kind is not Kind.PAIR:
                raise MalformedNode (node.kind, 'pair', f'got {pair.kind}')
            key, value = pair.children
            self.hash_key (key)
            self.s.put (': ')
            self.parse (value)
        self.s.put ('}')

    def hash_key (self, key):
        if key.kind in (Kind.SYM, Kind.STR):
            name = key.children[0]
            if IDENTIFIER.match (name):
                self.s.put (name)
            else:
                self.s.put (json.dumps (name, ensure_ascii=False))
        elif key.kind in (Kind.INT, Kind.FLOAT):
            self.parse (key)
        else:
            self.s.put ('[')
            self.parse (key)
            self.s.put (']')

    def on_kwsplat (self, node):
        self.s.put ('...')
        self.parse (node.children[0])

    def on_splat (self, node):
        self.s.put ('...')
        self.parse (node.children[0])

    def on_block_pass (self, node):
        value = node.children[0]
        if value is not None and value.kind is Kind.SYM:
            # &:name, a callback calling "name" on its argument
            call = Node (Kind.SEND, [Node (Kind.LVAR, ['item']), value.children[0]])
            self.s.put ('(item) => ')
            self.parse (call)
            return
        self.parse (value)

    def on_range (self, node):
        # an array with the values of the range, "for" loops count instead
        first, last = node.children
        inclusive = node.kind is Kind.IRANGE
        self.s.put ('Array.from({length: ')
        if first is not None and last is not None and \
            first.kind is Kind.INT and last.kind is Kind.INT:
            length = last.children[0] - first.children[0] + (1 if inclusive else 0)
            self.s.put (str (max (0, length)))
        else:
            self.s.put ('(')
            self.parse (last)
            self.s.put (' - ')
            self.parse (first)
            self.s.put (' + 1)' if inclusive else ')')
        self.s.put ('}, (_, i) => ')
        if first is not None and first.kind is Kind.INT and \
            first.children[0] == 0:
            self.s.put ('i')
        else:
            self.parse (first)
            self.s.put (' + i')
        self.s.put (')')

    #---------------------------------------------------------------------------
    # variables and assignment

    def on_lvar (self, node):
        self.s.put (node.children[0])

    def on_ivar (self, node):
        self.s.put (self.ivar_name (node.children[0]))

    def on_cvar (self, node):
        self.s.put (self.cvar_name (node.children[0]))

    def on_gvar (self, node):
        self.s.put (node.children[0])

    def on_const (self, node):
        scope, name = node.children
        if scope is not None and scope.kind is not Kind.CBASE:
            self.parse (scope)
            self.s.put ('.')
        self.s.put (name)

    def on_lvasgn (self, node):
        name = node.children[0]
        if len (node.children) == 1:
            self.s.put (name)
            return
        prefix = self.declare (name)
        self.s.put (f'{prefix}{name} = ')
        self.parse (node.children[1])

    def on_ivasgn (self, node):
        self.s.put (self.ivar_name (node.children[0]))
        if len (node.children) > 1:
            self.s.put (' = ')
            self.parse (node.children[1])

    def on_cvasgn (self, node):
        self.s.put (self.cvar_name (node.children[0]))
        if len (node.children) > 1:
            self.s.put (' = ')
            self.parse (node.children[1])

    def on_gvasgn (self, node):
        self.s.put (node.children[0])
        if len (node.children) > 1:
            self.s.put (' = ')
            self.parse (node.children[1])

    def on_casgn (self, node):
        scope, name = node.children[:2]
        if scope is not None and scope.kind is not Kind.CBASE:
            self.parse (scope)
            self.s.put ('.')
        elif len (node.children) > 2 and self.statement_state and \
            self.scopes[-1].level == 0:
            self.s.put ('const ')
        self.s.put (name)
        if len (node.children) > 2:
            self.s.put (' = ')
            self.parse (node.children[2])

    def target (self, node):
        # an assignment target without its value
        if node.kind in (Kind.SEND, Kind.CSEND):
            receiver, name = node.children[:2]
            if name == '[]':
                self.index (receiver, node.children[2:])
                return
            self.member (receiver, _strip_name (name), node.kind is Kind.CSEND)
            return
        self.parse (node)

    def _local_names (self, node, out):
        if node.kind is Kind.LVASGN:
            out.append (node.children[0])
        elif node.kind in (Kind.MLHS, Kind.SPLAT):
            for c in node.children:
                if c is not None:
                    self._local_names (c, out)
        return out

    def on_masgn (self, node):
        mlhs, value = node.children
        names = self._local_names (mlhs, [])
        fresh = [n for n in names if not self.is_declared (n)]
        simple = all (
            t.kind is Kind.LVASGN or
            (t.kind is Kind.SPLAT and t.children[0].kind is Kind.LVASGN)
            for t in mlhs.children
            )
        if fresh and len (fresh) == len (names) and simple and \
            self.statement_state and self.scopes[-1].level == 0:
            self.scopes[-1].declared.update (fresh)
            self.s.put ('let ')
        else:
            for name in fresh:
                self.declare (name, inline=False)
        self.parse (mlhs)
        self.s.put (' = ')
        self.parse (value)

    def on_mlhs (self, node):
        self.s.put ('[')
        self.join (node.children)
        self.s.put (']')

    def on_op_asgn (self, node):
        target, op, value = node.children
        self.target (target)
        self.s.put (f' {op}= ')
        self.parse (value)

    def on_or_asgn (self, node):
        self._logical_asgn (node, self.or_operator())

    def on_and_asgn (self, node):
        self._logical_asgn (node, '&&')

    def _logical_asgn (self, node, op):
        target, value = node.children
        if target.kind is Kind.LVASGN and not self.is_declared (target.children[0]):
            # first assignment of the local, nothing to test
            self.parse (target.updated (children=[target.children[0], value]),
                self.state)
            return
        if self.options.eslevel >= 2021:
            self.target (target)
            self.s.put (f' {op}= ')
            self.parse (value)
            return
        self.target (target)
        self.s.put (' = ')
        self.target (target)
        self.s.put (f' {op} ')
        self.parse (value)

    #---------------------------------------------------------------------------
    # method calls

    def receiver (self, node):
        if node.kind in (Kind.INT, Kind.FLOAT):
            # "1.toString()" does not parse
            self.s.put ('(')
            self.parse (node)
            self.s.put (')')
        else:
            self.parse (node)

    def member (self, receiver, name, csend=False):
        self.receiver (receiver)
        self.s.put ('?.' if csend else '.')
        self.s.put (name)

    def call_args (self, args, block=None):
        self.s.put ('(')
        self.join (args)
        if block is not None:
            if args:
                self.s.put (', ')
            block()
        self.s.put (')')

    def index (self, receiver, args):
        if len (args) == 1 and args[0].kind in (Kind.IRANGE, Kind.ERANGE):
            first, last = args[0].children
            self.member (receiver, 'slice')
            self.s.put ('(')
            self.parse (first if first is not None else Node (Kind.INT, [0]))
            if last is None:
                pass
            elif args[0].kind is Kind.ERANGE:
                self.s.put (', ')
                self.parse (last)
            elif last.kind is Kind.INT and last.children[0] == -1:
                pass
            elif last.kind is Kind.INT:
                self.s.put (f', {last.children[0] + 1}')
            else:
                self.s.put (', ')
                self.parse (last)
                self.s.put (' + 1')
            self.s.put (')')
            return
        if len (args) == 2:
            # a[start, length]
            self.member (receiver, 'slice')
            self.s.put ('(')
            self.parse (args[0])
            self.s.put (', ')
            self.parse (args[0])
            self.s.put (' + ')
            self.parse (args[1])
            self.s.put (')')
            return
        if len (args) == 1 and args[0].kind is Kind.INT and \
            args[0].children[0] < 0:
            if self.options.eslevel >= 2022:
                self.member (receiver, 'at')
                self.call_args (args)
            else:
                self.member (receiver, 'slice')
                self.call_args (args)
                self.s.put ('[0]')
            return
        self.receiver (receiver)
        self.s.put ('[')
        self.join (args)
        self.s.put (']')

    def binary (self, node):
        receiver, op, arg = node.children
        if op == '**' and self.options.eslevel < 2016:
            self.s.put ('Math.pow(')
            self.join ([receiver, arg])
            self.s.put (')')
            return
        if op == '<<' and self.statement_state and \
            receiver.kind is not Kind.INT:
            self.member (receiver, 'push')
            self.call_args ([arg])
            return
        if op in ('==', '!='):
            op = self.equality (op)
        if not self.bare:
            self.s.put ('(')
        self.parse (receiver)
        self.s.put (f' {op} ')
        self.parse (arg)
        if not self.bare:
            self.s.put (')')

    def on_send (self, node, block=None):
        receiver, name = node.children[:2]
        args = list (node.children[2:])
        csend = node.kind is Kind.CSEND

        if receiver is not None and block is None:
            if name in BINARY_OPERATORS and len (args) == 1:
                self.binary (node)
                return
            if name in UNARY_OPERATORS and not args:
                self.s.put (UNARY_OPERATORS[name])
                self.parse (receiver)
                return
            if name in ('=~', '!~') and len (args) == 1:
                self.match (receiver, args[0], name == '!~')
                return
            if name == '<=>' and len (args) == 1:
                self.spaceship (receiver, args[0])
                return
            if name == '[]':
                self.index (receiver, args)
                return
            if name == '[]=' and len (args) >= 2:
                self.index (receiver, args[:-1])
                self.s.put (' = ')
                self.parse (args[-1])
                return
            if name.endswith ('=') and IDENTIFIER.match (name[:-1]) and \
                len (args) == 1:
                self.member (receiver, name[:-1], csend)
                self.s.put (' = ')
                self.parse (args[0])
                return

        if receiver is None:
            if self.receiverless (node, name, args, block):
                return
        elif self.special (node, receiver, name, args, block):
            return
        elif self.rewrite (receiver, name, args, block, csend):
            return

        stripped = _strip_name (name)
        if receiver is None:
            cls = self.classes[-1] if self.classes else None
            if cls is not None and name in cls.getters and not args and \
                block is None:
                self.s.put (f'this.{stripped}')
                return
            if cls is not None and name in cls.methods:
                self.s.put (f'this.{stripped}')
                self.call_args (args, block)
                return
            self.s.put (stripped)
        else:
            self.member (receiver, stripped, csend)
        if args or block is not None or node.is_call:
            self.call_args (args, block)

    on_csend = on_send

    def on_attr (self, node):
        receiver, name = node.children
        self.member (receiver, _strip_name (name))

    def on_call (self, node):
        receiver, name = node.children[:2]
        if receiver is None:
            self.s.put (_strip_name (name))
        else:
            self.member (receiver, _strip_name (name))
        self.call_args (node.children[2:])

    def match (self, receiver, arg, negate):
        if negate:
            self.s.put ('!')
        if receiver.kind is Kind.REGEXP or arg.kind is not Kind.REGEXP:
            regexp, string = receiver, arg
        else:
            regexp, string = arg, receiver
        self.member (regexp, 'test')
        self.call_args ([string])

    def spaceship (self, a, b):
        self.s.put ('(')
        self.parse (a)
        self.s.put (' < ')
        self.parse (b)
        self.s.put (' ? -1 : (')
        self.parse (a)
        self.s.put (' > ')
        self.parse (b)
        self.s.put (' ? 1 : 0))')

    def rewrite (self, receiver, name, args, block, csend):
        entry = self.options.method_table.get (name)
        if entry is None:
            return False
        arity = entry.get ('arity')
        if arity is not None and arity != len (args):
            return False
        kind, to = entry['kind'], entry['to']
        if kind == 'property':
            if block is not None:
                return False
            self.member (receiver, to, csend)
        elif kind == 'method':
            self.member (receiver, to, csend)
            self.call_args (args, block)
        else:
            self.s.put (to)
            self.call_args ([receiver] + args, block)
        return True

    def wrapped (self, fn):
        # parentheses around an operator expression
        if not self.bare:
            self.s.put ('(')
        fn()
        if not self.bare:
            self.s.put (')')

    def receiverless (self, node, name, args, block):
        if name in ('puts', 'print', 'p'):
            self.s.put ('console.log')
            self.call_args (args, block)
            return True
        if name == 'raise':
            self.throw (args)
            return True
        if name in ('Integer', 'Float') and len (args) == 1 and block is None:
            self.s.put ('parseInt' if name == 'Integer' else 'parseFloat')
            self.call_args (args)
            return True
        if name == 'block_given?' and not args:
            blk = self.methods[-1].block if self.methods else None
            blk = blk or '_implicitBlockYield'
            self.wrapped (lambda: self.s.put (f'{blk} !== undefined'))
            return True
        return False

    def throw (self, args):
        expression = not self.statement_state
        if expression:
            # "throw" is a statement
            self.s.put ('(() => {')
        self.s.put ('throw ')
        if not args:
            if self.rescue_vars:
                self.s.put (self.rescue_vars[-1])
            else:
                self.s.put ('new Error("unhandled exception")')
        elif args[0].kind in (Kind.STR, Kind.DSTR):
            self.s.put ('new Error(')
            self.parse (args[0])
            self.s.put (')')
        elif args[0].kind is Kind.CONST:
            self.s.put ('new ')
            self.parse (args[0])
            self.call_args (args[1:])
        else:
            self.parse (args[0])
        if expression:
            self.s.put ('})()')

    def special (self, node, receiver, name, args, block):
        if name == 'new':
            self.s.put ('new ')
            self.parse (receiver)
            self.call_args (args, block)
            return True
        if name == 'call':
            if receiver.kind in (Kind.BLOCK, Kind.NUMBLOCK):
                self.s.put ('(')
                self.parse (receiver)
                self.s.put (')')
            else:
                self.parse (receiver)
            self.call_args (args, block)
            return True
        if block is not None:
            return False

        if name in ('is_a?', 'kind_of?', 'instance_of?') and len (args) == 1:
            def instanceof():
                self.receiver (receiver)
                self.s.put (' instanceof ')
                self.parse (args[0])
            self.wrapped (instanceof)
            return True
        if args:
            return False

        if name == 'nil?':
            def is_nil():
                self.parse (receiver)
                self.s.put (' == null')
            self.wrapped (is_nil)
        elif name == 'empty?':
            def is_empty():
                self.member (receiver, 'length')
                self.s.put (f' {self.equality ("==")} 0')
            self.wrapped (is_empty)
        elif name == 'zero?':
            def is_zero():
                self.parse (receiver)
                self.s.put (f' {self.equality ("==")} 0')
            self.wrapped (is_zero)
        elif name == 'first':
            self.index (receiver, [Node (Kind.INT, [0])])
        elif name == 'last':
            self.index (receiver, [Node (Kind.INT, [-1])])
        elif name == 'to_sym':
            self.parse (receiver)
        elif name == 'sum':
            self.member (receiver, 'reduce')
            self.s.put ('((a, b) => a + b, 0)')
        elif name == 'uniq':
            self.s.put ('[...new Set(')
            self.parse (receiver)
            self.s.put (')]')
        elif name == 'to_a' and _is_range (receiver):
            self.parse (_unparen (receiver))
        else:
            return False
        return True

    #---------------------------------------------------------------------------
    # blocks and functions

    def on_block (self, node):
        call, args, body = node.children
        if call.kind in (Kind.SEND, Kind.CSEND):
            receiver, name = call.children[:2]
            cargs = call.children[2:]
            if receiver is None and name in ('lambda', 'proc') and not cargs:
                self.arrow (args, body)
                return
            if receiver is None and name == 'loop' and not cargs and \
                self.statement_state:
                self.s.put ('while (true) ')
                self.loop_body (body)
                return
            if receiver is not None and self.statement_state and \
                self.iteration (receiver, name, cargs, args, body):
                return
            if receiver is not None and name in ('inject', 'reduce'):
                self.member (receiver, 'reduce')
                self.s.put ('(')
                self.arrow (args, body)
                for arg in cargs:
                    self.s.put (', ')
                    self.parse (arg)
                self.s.put (')')
                return
            if receiver is not None and name == 'times' and not cargs:
                self.s.put ('Array.from({length: ')
                self.parse (receiver)
                self.s.put ('}, ')
                self.arrow (None, body, ['_', _arg_name (args, 'i')])
                self.s.put (')')
                return
        self.with_callback (node, call, lambda: self.arrow (args, body))

    def on_numblock (self, node):
        call, maximum, body = node.children
        params = [f'_{i}' for i in range (1, maximum + 1)]
        self.with_callback (node, call, lambda: self.arrow (None, body, params))

    def with_callback (self, node, call, block):
        if call.kind in (Kind.SEND, Kind.CSEND):
            self.on_send (call, block)
        elif call.kind in (Kind.SUPER, Kind.ZSUPER):
            self.on_super (call, block)
        else:
            raise MalformedNode (node.kind, 'call', f'got {call.kind}')

    def iteration (self, receiver, name, cargs, args, body):
        # iterations written as counting loops
        var = _arg_name (args, 'i')
        if name == 'times' and not cargs:
            self.counting_loop (var, Node (Kind.INT, [0]), receiver, '<', body)
        elif name == 'upto' and len (cargs) == 1:
            self.counting_loop (var, receiver, cargs[0], '<=', body)
        elif name == 'downto' and len (cargs) == 1:
            self.counting_loop (var, receiver, cargs[0], '>=', body, '--')
        elif name == 'each' and not cargs and _is_range (receiver):
            rng = _unparen (receiver)
            op = '<=' if rng.kind is Kind.IRANGE else '<'
            self.counting_loop (var, rng.children[0], rng.children[1], op, body)
        else:
            return False
        return True

    def counting_loop (self, var, first, last, op, body, step='++'):
        self.s.put (f'for (let {var} = ')
        self.parse (first)
        self.s.put (f'; {var} {op} ')
        self.parse (last)
        self.s.put (f'; {var}{step}) ')
        self.loop_body (body)

    def loop_body (self, body):
        self.jumps.append ('loop')
        try:
            self.block_body ('', body)
        finally:
            self.jumps.pop()

    def arrow (self, args, body, params=None):
        self.push_scope (gate=False)
        self.jumps.append ('function')
        try:
            self.s.put ('(')
            if params is None:
                self.params (args)
            else:
                self.s.put (', '.join (params))
                self.scopes[-1].declared.update (params)
            self.s.put (') => ')
            if body is None:
                self.s.put ('{}')
            elif _returnable (body):
                if body.kind is Kind.HASH:
                    # not a function body
                    self.s.put ('(')
                    self.parse (body)
                    self.s.put (')')
                else:
                    self.parse (body)
            else:
                self.open_block()
                self.statement (Node (Kind.AUTORETURN, [body]))
                self.close_block()
        finally:
            self.jumps.pop()
            self.pop_scope()

    def params (self, args):
        if args is None:
            return
        children = [a for a in args.children if a.kind is not Kind.SHADOWARG]
        keywords = [a for a in children if a.kind in KEYWORD_PARAMS]
        first = True
        for arg in children:
            if arg.kind in KEYWORD_PARAMS and arg is not keywords[0]:
                continue
            if not first:
                self.s.put (', ')
            first = False
            if arg.kind in KEYWORD_PARAMS:
                self.keyword_params (keywords)
            else:
                self.param (arg)

    def param (self, arg):
        name = arg.children[0] if arg.children else None
        if arg.kind is Kind.ARG:
            self.s.put (name)
        elif arg.kind is Kind.OPTARG:
            self.s.put (f'{name} = ')
            self.parse (arg.children[1])
        elif arg.kind is Kind.RESTARG:
            name = name or 'args'
            self.s.put (f'...{name}')
        elif arg.kind is Kind.BLOCKARG:
            name = name or 'blk'
            self.s.put (name)
        elif arg.kind is Kind.MLHS:
            self.s.put ('[')
            for i, c in enumerate (arg.children):
                if i:
                    self.s.put (', ')
                self.param (c)
            self.s.put (']')
            return
        else:
            raise MalformedNode (Kind.ARGS, 'argument', f'got {arg.kind}')
        self.scopes[-1].declared.add (name)

    def keyword_params (self, keywords):
        self.s.put ('{')
        for i, arg in enumerate (keywords):
            if i:
                self.s.put (', ')
            name = arg.children[0] if arg.children else 'opts'
            if arg.kind is Kind.KWRESTARG:
                self.s.put (f'...{name}')
            else:
                self.s.put (name)
            if arg.kind is Kind.KWOPTARG:
                self.s.put (' = ')
                self.parse (arg.children[1])
            self.scopes[-1].declared.add (name)
        self.s.put ('}')
        if not any (a.kind is Kind.KWARG for a in keywords):
            self.s.put (' = {}')

    def method (self, name, args, body, head, autoreturn=True,
        constructor=False, getter=False):
        blockarg = None
        if args is not None:
            for arg in args.children:
                if arg.kind is Kind.BLOCKARG:
                    blockarg = arg.children[0] if arg.children else 'blk'
        implicit = None
        if blockarg is None and _yields (body):
            implicit = '_implicitBlockYield'
        context = MethodContext(
            name, _param_names (args), blockarg or implicit, constructor, getter
            )
        self.push_scope (gate=True)
        self.methods.append (context)
        self.jumps.append ('function')
        try:
            self.s.put (f'{head}(')
            self.params (args)
            if implicit is not None:
                if args is not None and args.children:
                    self.s.put (', ')
                self.s.put (implicit)
                self.scopes[-1].declared.add (implicit)
            self.s.put (') ')
            self.open_block()
            if autoreturn:
                self.statement (Node (Kind.AUTORETURN, [body]))
            else:
                self.statement (body)
            self.close_block()
        finally:
            self.jumps.pop()
            self.methods.pop()
            self.pop_scope()

    def on_def (self, node):
        name, args, body = node.children
        self.method (name, args, body, f'function {_strip_name (name)}')

    def on_defs (self, node):
        receiver, name, args, body = node.children
        self.receiver (receiver)
        self.s.put (f'.{_strip_name (name)} = ')
        self.method (name, args, body, 'function ')

    def on_super (self, node, block=None):
        method = self.methods[-1] if self.methods else None
        if method is None or method.constructor:
            self.s.put ('super')
        else:
            self.s.put (f'super.{_strip_name (method.name)}')
            if method.getter and node.kind is Kind.ZSUPER and block is None:
                return
        if node.kind is Kind.SUPER:
            self.call_args (node.children, block)
            return
        # forwards the arguments of the method
        forwarded = method.params if method is not None else []
        self.s.put ('(' + ', '.join (forwarded))
        if block is not None:
            if forwarded:
                self.s.put (', ')
            block()
        self.s.put (')')

    on_zsuper = on_super

    def on_yield (self, node):
        method = self.methods[-1] if self.methods else None
        blk = method.block if method is not None and method.block else \
            '_implicitBlockYield'
        self.s.put (blk)
        self.call_args (node.children)

    #---------------------------------------------------------------------------
    # control flow

    def on_begin (self, node):
        if self.statement_state:
            for c in node.children:
                self.statement (c)
            return
        if not node.children:
            self.s.put ('null')
            return
        if len (node.children) == 1:
            child = node.children[0]
            if self.state == 'bare' or _self_parenthesized (child):
                self.parse (child, self.state)
                return
        self.s.put ('(')
        self.join (node.children)
        self.s.put (')')

    def on_kwbegin (self, node):
        if self.statement_state:
            for c in node.children:
                self.statement (c)
            return
        if len (node.children) == 1 and _returnable (node.children[0]):
            self.parse (node.children[0])
            return
        self.iife (node)

    def condition (self, node, negate=False):
        if not negate:
            self.parse (node, 'bare')
        elif node.kind is Kind.SEND and node.children[1] == '!' and \
            len (node.children) == 2:
            self.parse (node.children[0], 'bare')
        elif node.kind is Kind.NOT:
            self.parse (node.children[0], 'bare')
        else:
            self.s.put ('!')
            self.parse (node)

    def on_if (self, node):
        cond, then, other = node.children
        if not self.statement_state:
            def ternary():
                self.parse (cond, 'bare')
                self.s.put (' ? ')
                self.parse (then)
                self.s.put (' : ')
                self.parse (other)
            self.wrapped (ternary)
            return
        negate = False
        if then is None and other is not None:
            then, other, negate = other, None, True
        self.s.put ('if (')
        self.condition (cond, negate)
        self.open_block (') ')
        self.nested (then)
        while other is not None:
            if other.kind is Kind.IF and other.children[1] is not None and \
                other not in self.comments:
                cond, then, other = other.children
                self.s.put ('} else if (')
                self.condition (cond)
                self.open_block (') ')
                self.nested (then)
            else:
                self.open_block ('} else ')
                self.nested (other)
                other = None
        self.close_block()

    def on_while (self, node):
        cond, body = node.children
        if not self.statement_state:
            self.iife (node)
            return
        self.s.put ('while (')
        self.condition (cond, node.kind is Kind.UNTIL)
        self.s.put (') ')
        self.loop_body (body)

    on_until = on_while

    def on_while_post (self, node):
        cond, body = node.children
        if not self.statement_state:
            self.iife (node)
            return
        self.jumps.append ('loop')
        try:
            self.open_block ('do ')
            self.nested (body)
        finally:
            self.jumps.pop()
        self.s.put ('} while (')
        self.condition (cond, node.kind is Kind.UNTIL_POST)
        self.s.put (')')

    on_until_post = on_while_post

    def on_for (self, node):
        var, collection, body = node.children
        if not self.statement_state:
            self.iife (node)
            return
        if var.kind is Kind.LVASGN and _is_range (collection):
            rng = _unparen (collection)
            op = '<=' if rng.kind is Kind.IRANGE else '<'
            first, last = rng.children
            self.counting_loop (var.children[0], first, last, op, body)
            return
        names = self._local_names (var, [])
        self.s.put ('for (')
        if names and not any (self.is_declared (n) for n in names):
            self.s.put ('let ')
        self.parse (var)
        self.s.put (' of ')
        self.parse (collection)
        self.s.put (') ')
        self.loop_body (body)

    def on_break (self, node):
        if node.children:
            warn ('the value of "break" is dropped')
        self.s.put ('break')

    def on_next (self, node):
        if not self.jumps or self.jumps[-1] == 'loop':
            self.s.put ('continue')
            return
        self.s.put ('return')
        if node.children:
            self.s.put (' ')
            self.parse (node.children[0])

    def on_return (self, node):
        self.s.put ('return')
        if node.children and node.children[0] is not None:
            self.s.put (' ')
            self.parse (node.children[0])

    def logical (self, node, op):
        left, right = node.children
        if not self.bare:
            self.s.put ('(')
        self.parse (left)
        self.s.put (f' {op} ')
        self.parse (right)
        if not self.bare:
            self.s.put (')')

    def on_and (self, node):
        self.logical (node, '&&')

    def on_or (self, node):
        self.logical (node, self.or_operator())

    def on_not (self, node):
        self.s.put ('!')
        self.parse (node.children[0])

    def on_defined (self, node):
        def typeof():
            self.s.put ('typeof ')
            self.parse (node.children[0])
            self.s.put (' !== "undefined"')
        self.wrapped (typeof)

    def on_case (self, node):
        subject = node.children[0]
        whens = node.children[1:-1]
        other = node.children[-1]
        if not self.statement_state:
            self.iife (node)
            return
        literals = all(
            c.kind in SWITCH_LITERALS for w in whens for c in w.children[:-1]
            )
        if subject is not None and literals:
            self.switch (subject, whens, other)
        else:
            self.if_chain (subject, whens, other)

    def switch (self, subject, whens, other):
        self.s.put ('switch (')
        self.parse (subject, 'bare')
        self.open_block (') ')
        for when in whens:
            self._comments (when)
            for value in when.children[:-1]:
                self.s.put ('case ')
                self.parse (value)
                self.s.puts (':')
            body = when.children[-1]
            self.nested (body)
            if not _terminates (body):
                self.s.puts ('break;')
        if other is not None:
            self.s.puts ('default:')
            self.nested (other)
        self.close_block()

    def if_chain (self, subject, whens, other):
        for i, when in enumerate (whens):
            values = when.children[:-1]
            self.s.put ('} else if (' if i else 'if (')
            for j, value in enumerate (values):
                if j:
                    self.s.put (' || ')
                self.when_test (subject, value, len (values) > 1)
            self.open_block (') ')
            self.nested (when.children[-1])
        if other is not None:
            self.open_block ('} else ')
            self.nested (other)
        self.close_block()

    def when_test (self, subject, value, grouped):
        state = 'expression' if grouped else 'bare'
        if subject is None:
            self.parse (value, state)
            return
        if value.kind in (Kind.IRANGE, Kind.ERANGE):
            first, last = value.children
            op = '<=' if value.kind is Kind.IRANGE else '<'
            if grouped:
                self.s.put ('(')
            self.parse (subject)
            self.s.put (' >= ')
            self.parse (first)
            self.s.put (' && ')
            self.parse (subject)
            self.s.put (f' {op} ')
            self.parse (last)
            if grouped:
                self.s.put (')')
        elif value.kind is Kind.REGEXP:
            self.match (value, subject, False)
        elif value.kind is Kind.SPLAT:
            self.member (value.children[0], 'includes')
            self.call_args ([subject])
        else:
            if grouped:
                self.s.put ('(')
            self.parse (subject)
            self.s.put (f' {self.equality ("==")} ')
            self.parse (value)
            if grouped:
                self.s.put (')')

    #---------------------------------------------------------------------------
    # exceptions

    def on_rescue (self, node):
        if not self.statement_state:
            self.iife (node)
            return
        self.try_ (node, None)

    def on_ensure (self, node):
        body, ensure = node.children
        if not self.statement_state:
            self.iife (node)
            return
        if body is not None and body.kind is Kind.RESCUE:
            self.try_ (body, ensure)
        else:
            self.try_ (None, ensure, body)

    def try_ (self, rescue, ensure, body=None):
        # the "finally" of an "ensure" goes on the same try block
        clauses, other = [], None
        if rescue is not None:
            body = rescue.children[0]
            clauses = list (rescue.children[1:-1])
            other = rescue.children[-1]
        self.open_block ('try ')
        self.nested (body)
        if other is not None:
            self.nested (other)
        if clauses:
            var = '$EXCEPTION'
            for clause in clauses:
                if clause.children[1] is not None:
                    var = clause.children[1].children[0]
                    break
            self.open_block (f'}} catch ({var}) ')
            self.rescue_vars.append (var)
            try:
                self.catch_clauses (clauses, var)
            finally:
                self.rescue_vars.pop()
        if ensure is not None:
            self.open_block ('} finally ')
            self.nested (ensure)
        self.close_block()

    def _bind (self, clause, var):
        ref = clause.children[1]
        if ref is not None and ref.children[0] != var:
            self.s.puts (f'let {ref.children[0]} = {var};')

    def catch_clauses (self, clauses, var):
        first = True
        for clause in clauses:
            classes, _, body = clause.children
            names = [
                c.children[1] for c in (classes.children if classes else [])
                if c.kind is Kind.CONST
                ]
            catch_all = classes is None or \
                any (n in CATCH_ALL_EXCEPTIONS for n in names)
            if catch_all:
                if classes is not None and len (classes.children) > 1:
                    warn(
                        'rescue of ' + ', '.join (names) +
                        ' catches every exception'
                        )
                if not first:
                    self.open_block ('} else ')
                self._bind (clause, var)
                self.nested (body)
                if not first:
                    self.s.puts ('}')
                return
            self.s.put ('} else if (' if not first else 'if (')
            for i, c in enumerate (classes.children):
                if i:
                    self.s.put (' || ')
                self.s.put (f'{var} instanceof ')
                self.parse (c)
            self.open_block (') ')
            self.s.puts (f'// rescue {", ".join (names)}')
            self._bind (clause, var)
            self.nested (body)
            first = False
        # nothing matched
        self.open_block ('} else ')
        self.s.puts (f'throw {var};')
        self.s.puts ('}')

    #---------------------------------------------------------------------------
    # implicit return of the last value

    def on_autoreturn (self, node):
        body = node.children[0] if node.children else None
        if body is None:
            return
        if not self.statement_state:
            self.parse (body, self.state)
            return
        self.statement (self.returning (body))

    def returning (self, node):
        if node is None:
            return None
        kind = node.kind
        if _returnable (node):
            return self._transfer_comments (node, Node (Kind.RETURN, [node], node.loc))
        if kind in (Kind.BEGIN, Kind.KWBEGIN) and node.children:
            children = list (node.children)
            children[-1] = self.returning (children[-1])
            return self._rewrapped (node, children)
        if kind is Kind.IF:
            cond, then, other = node.children
            children = [cond, self.returning (then), self.returning (other)]
            return self._rewrapped (node, children)
        if kind is Kind.CASE:
            children = list (node.children)
            for i in range (1, len (children) - 1):
                when = children[i]
                body = self.returning (when.children[-1])
                children[i] = self._rewrapped (when, list (when.children[:-1]) + [body])
            children[-1] = self.returning (children[-1])
            return self._rewrapped (node, children)
        if kind in ASSIGNMENT_READS and len (node.children) == 2:
            read = Node (ASSIGNMENT_READS[kind], [node.children[0]])
            return Node (Kind.BEGIN, [node, Node (Kind.RETURN, [read])], node.loc)
        if kind is Kind.RESCUE:
            body, clauses, other = \
                node.children[0], node.children[1:-1], node.children[-1]
            if other is not None:
                other = self.returning (other)
            else:
                body = self.returning (body)
            clauses = [
                self._rewrapped (c, [c.children[0], c.children[1],
                    self.returning (c.children[2])])
                for c in clauses
                ]
            return self._rewrapped (node, [body] + clauses + [other])
        if kind is Kind.ENSURE:
            body, ensure = node.children
            return self._rewrapped (node, [self.returning (body), ensure])
        return node

    def _rewrapped (self, node, children):
        return self._transfer_comments (node, node.updated (children=children))

    #---------------------------------------------------------------------------
    # classes and modules

    def on_class (self, node):
        cpath, superclass, body = node.children
        scope, name = cpath.children
        private = not self.options.underscored_private and \
            self.options.eslevel >= 2022
        context = ClassContext (name, private)
        members = _body_statements (body)
        for m in members:
            if m.kind is Kind.DEF:
                mname, args, mbody = m.children
                if _is_getter (mname, args, mbody):
                    context.getters.add (mname)
                else:
                    context.methods.add (mname)
            elif _is_accessor (m) and m.children[1] != 'attr_writer':
                for arg in m.children[2:]:
                    if arg.kind is Kind.SYM:
                        context.getters.add (arg.children[0])

        qualified = scope is not None and scope.kind is not Kind.CBASE
        if qualified:
            self.parse (scope)
            self.s.put (f'.{name} = ')
        self.s.put (f'class {name}')
        if superclass is not None:
            self.s.put (' extends ')
            self.parse (superclass)
        self.open_block (' ')
        deferred = []
        self.classes.append (context)
        try:
            if private:
                fields = _instance_variables (body, [])
                for m in members:
                    if _is_accessor (m):
                        fields += [
                            a.children[0] for a in m.children[2:]
                            if a.kind is Kind.SYM and a.children[0] not in fields
                            ]
                for field in fields:
                    self.s.puts (f'#{field};')
            for m in members:
                self.class_member (m, deferred)
        finally:
            self.classes.pop()
        self.close_block()
        if not self.statement_state:
            if deferred:
                warn (f'class {name}: statements in a class expression dropped')
            return
        if qualified:
            self.s.put (';')
        self.s.puts ('')
        for m in deferred:
            self.class_statement (name, m)

    def class_member (self, m, deferred):
        kind = m.kind
        if kind is Kind.DEF or (kind is Kind.DEFS and m.children[0].kind is Kind.SELF):
            self._comments (m)
            static = 'static ' if kind is Kind.DEFS else ''
            name, args, body = m.children[-3:]
            stripped = _strip_name (name)
            if name == 'initialize' and not static:
                self.method (name, args, body, 'constructor', False, True)
            elif name.endswith ('=') and IDENTIFIER.match (name[:-1]):
                self.method (name, args, body, f'{static}set {name[:-1]}', False)
            elif _is_getter (name, args, body):
                self.method (name, args, body, f'{static}get {stripped}',
                    getter=True)
            else:
                self.method (name, args, body, f'{static}{stripped}')
            self.s.puts ('')
        elif _is_accessor (m):
            self._comments (m)
            self.accessors (m)
        elif kind is Kind.SEND and m.children[0] is None and \
            m.children[1] in VISIBILITY:
            pass
        else:
            deferred.append (m)

    def accessors (self, node):
        kind = node.children[1]
        for arg in node.children[2:]:
            if arg.kind is not Kind.SYM:
                warn (f'{kind}: {arg.kind} argument ignored')
                continue
            name = arg.children[0]
            field = self.ivar_name ('@' + name)
            if kind != 'attr_writer':
                self.s.puts (f'get {name}() {{')
                self.s.puts (f'return {field};')
                self.s.puts ('}')
            if kind != 'attr_reader':
                self.s.puts (f'set {name}({name}) {{')
                self.s.puts (f'{field} = {name};')
                self.s.puts ('}')

    def class_statement (self, name, m):
        # class body statements run once the class exists
        kind = m.kind
        if kind is Kind.CASGN and m.children[0] is None and len (m.children) > 2:
            m = self._rewrapped (m, [Node (Kind.CONST, [None, name])] +
                list (m.children[1:]))
        elif kind is Kind.CVASGN and len (m.children) > 1:
            self._comments (m)
            self.s.put (f'{name}._{m.children[0].lstrip ("@")} = ')
            self.parse (m.children[1])
            self.s.puts (';')
            return
        elif kind is Kind.SEND and m.children[0] is None and \
            m.children[1] in ('include', 'extend'):
            self._comments (m)
            target = f'{name}.prototype' if m.children[1] == 'include' else name
            for module in m.children[2:]:
                self.s.put (f'Object.assign({target}, ')
                self.parse (module)
                self.s.puts (');')
            return
        elif kind in (Kind.CLASS, Kind.MODULE):
            cpath = m.children[0]
            if cpath.children[0] is None:
                scope = Node (Kind.CONST, [None, name])
                cpath = cpath.updated (children=[scope, cpath.children[1]])
                m = self._rewrapped (m, [cpath] + list (m.children[1:]))
        self.statement (m)

    def on_module (self, node):
        cpath, body = node.children
        scope, name = cpath.children
        if scope is not None and scope.kind is not Kind.CBASE:
            self.parse (scope)
            self.s.put (f'.{name} = ')
        elif self.statement_state:
            self.s.put (f'const {name} = ')
        self.open_block()
        self.classes.append (ClassContext (name, False))
        try:
            self.module_entries (_body_statements (body))
        finally:
            self.classes.pop()
        self.close_block()
        if self.statement_state:
            self.s.puts ('')

    def module_entries (self, members):
        # a namespace object, there is no mixing in
        members = [
            m for m in members
            if not (m.kind is Kind.SEND and m.children[0] is None and
                m.children[1] in VISIBILITY + ('extend',))
            ]
        context = self.classes[-1]
        for m in members:
            if m.kind in (Kind.DEF, Kind.DEFS):
                mname, args, mbody = m.children[-3:]
                if _is_getter (mname, args, mbody):
                    context.getters.add (mname)
                else:
                    context.methods.add (mname)
        for i, m in enumerate (members):
            self._comments (m)
            kind = m.kind
            if kind is Kind.DEF or (kind is Kind.DEFS and m.children[0].kind is Kind.SELF):
                name, args, body = m.children[-3:]
                stripped = _strip_name (name)
                if _is_getter (name, args, body):
                    self.method (name, args, body, f'get {stripped}', getter=True)
                else:
                    self.method (name, args, body, stripped)
            elif kind is Kind.CASGN and m.children[0] is None and len (m.children) > 2:
                self.s.put (f'{m.children[1]}: ')
                self.parse (m.children[2])
            elif kind in (Kind.CLASS, Kind.MODULE):
                self.s.put (f'{m.children[0].children[1]}: ')
                self.parse (m)
            else:
                warn (f'module: {kind} statement not supported')
                self.s.put (f'/* unsupported: {kind} */')
            if i < len (members) - 1:
                self.s.put (',')
            self.s.puts ('')

    #---------------------------------------------------------------------------
    def on_unsupported (self, node):
        # kinds that only exist inside other constructs, or that no
        # handler knows how to write on their own
        warn (f'unsupported node: {node.kind}')
        self.s.put (f'/* unsupported: {node.kind} */')
#-------------------------------------------------------------------------------
HANDLERS = {
    Kind.INT        : Generator.on_int,
    Kind.FLOAT      : Generator.on_float,
    Kind.STR        : Generator.on_str,
    Kind.DSTR       : Generator.on_dstr,
    Kind.SYM        : Generator.on_sym,
    Kind.REGEXP     : Generator.on_regexp,
    Kind.NIL        : Generator.on_nil,
    Kind.TRUE       : Generator.on_true,
    Kind.FALSE      : Generator.on_false,
    Kind.SELF       : Generator.on_self,
    Kind.ARRAY      : Generator.on_array,
    Kind.HASH       : Generator.on_hash,
    Kind.KWSPLAT    : Generator.on_kwsplat,
    Kind.IRANGE     : Generator.on_range,
    Kind.ERANGE     : Generator.on_range,
    Kind.SPLAT      : Generator.on_splat,
    Kind.BLOCK_PASS : Generator.on_block_pass,
    Kind.LVAR       : Generator.on_lvar,
    Kind.IVAR       : Generator.on_ivar,
    Kind.CVAR       : Generator.on_cvar,
    Kind.GVAR       : Generator.on_gvar,
    Kind.CONST      : Generator.on_const,
    Kind.LVASGN     : Generator.on_lvasgn,
    Kind.IVASGN     : Generator.on_ivasgn,
    Kind.CVASGN     : Generator.on_cvasgn,
    Kind.GVASGN     : Generator.on_gvasgn,
    Kind.CASGN      : Generator.on_casgn,
    Kind.MASGN      : Generator.on_masgn,
    Kind.MLHS       : Generator.on_mlhs,
    Kind.OP_ASGN    : Generator.on_op_asgn,
    Kind.OR_ASGN    : Generator.on_or_asgn,
    Kind.AND_ASGN   : Generator.on_and_asgn,
    Kind.SEND       : Generator.on_send,
    Kind.CSEND      : Generator.on_csend,
    Kind.ATTR       : Generator.on_attr,
    Kind.CALL       : Generator.on_call,
    Kind.SUPER      : Generator.on_super,
    Kind.ZSUPER     : Generator.on_zsuper,
    Kind.YIELD      : Generator.on_yield,
    Kind.BLOCK      : Generator.on_block,
    Kind.NUMBLOCK   : Generator.on_numblock,
    Kind.BEGIN      : Generator.on_begin,
    Kind.KWBEGIN    : Generator.on_kwbegin,
    Kind.IF         : Generator.on_if,
    Kind.CASE       : Generator.on_case,
    Kind.WHILE      : Generator.on_while,
    Kind.UNTIL      : Generator.on_until,
    Kind.WHILE_POST : Generator.on_while_post,
    Kind.UNTIL_POST : Generator.on_until_post,
    Kind.FOR        : Generator.on_for,
    Kind.BREAK      : Generator.on_break,
    Kind.NEXT       : Generator.on_next,
    Kind.RETURN     : Generator.on_return,
    Kind.AND        : Generator.on_and,
    Kind.OR         : Generator.on_or,
    Kind.NOT        : Generator.on_not,
    Kind.DEFINED    : Generator.on_defined,
    Kind.DEF        : Generator.on_def,
    Kind.DEFS       : Generator.on_defs,
    Kind.CLASS      : Generator.on_class,
    Kind.MODULE     : Generator.on_module,
    Kind.RESCUE     : Generator.on_rescue,
    Kind.ENSURE     : Generator.on_ensure,
    Kind.AUTORETURN : Generator.on_autoreturn,
}

# only meaningful as part of another construct
for _kind in (
    Kind.REGOPT, Kind.PAIR, Kind.CBASE, Kind.WHEN, Kind.RESBODY, Kind.ARGS,
    Kind.ARG, Kind.OPTARG, Kind.RESTARG, Kind.KWARG, Kind.KWOPTARG,
    Kind.KWRESTARG, Kind.BLOCKARG, Kind.SHADOWARG
    ):
    HANDLERS[_kind] = Generator.on_unsupported

def check_handlers (handlers):
    missing = [k.value for k in Kind if k not in handlers]
    if missing:
        raise RuntimeError (f'no generator handler for: {", ".join (missing)}')

check_handlers (HANDLERS)
#-------------------------------------------------------------------------------
def resolve_filters (filters):
    funcs = []
    for f in filters:
        if callable (f):
            funcs.append (f)
        elif f in FILTERS:
            funcs.append (FILTERS[f])
        else:
            warn (f'unknown filter: {f}')
    return funcs

def options_for (source, **overrides):
    # magic comments first, explicit settings win
    settings, unknown = read_magic_comments (source)
    for word in unknown:
        warn (f'unknown magic comment setting: {word}')
    settings.update (overrides)
    return Options (**settings)

def to_ast (source, options=None, debug=False):
    options = options if options is not None else Options()
    tree, comments = parse_ruby (source, debug)
    ast = Walker (source).visit (tree)
    ast = apply_filters (ast, resolve_filters (options.filters))
    # filters build new nodes, comments go to the filtered tree
    return ast, associate (ast, comments)

def generate (ast, options=None, comments=None):
    gen = Generator (options, comments)
    gen.generate (ast)
    return gen.render()

def convert (source, options=None, debug=False):
    if options is None:
        options = options_for (source)
    ast, comments = to_ast (source, options, debug)
    return generate (ast, options, comments)
