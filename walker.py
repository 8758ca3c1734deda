from node import Node, Loc, Kind, UnsupportedConstruct, MalformedNode

# Maps the parse tree (Prism node names) to the canonical AST (Parser gem
# node kinds). One handler per parse node type, see "_handlers" at the end.

_variable_kinds = {
    'LocalVariable'    : (Kind.LVAR, Kind.LVASGN),
    'InstanceVariable' : (Kind.IVAR, Kind.IVASGN),
    'ClassVariable'    : (Kind.CVAR, Kind.CVASGN),
    'GlobalVariable'   : (Kind.GVAR, Kind.GVASGN),
}

_parameter_kinds = {
    'RequiredParameterNode'        : Kind.ARG,
    'OptionalParameterNode'        : Kind.OPTARG,
    'RestParameterNode'            : Kind.RESTARG,
    'RequiredKeywordParameterNode' : Kind.KWARG,
    'OptionalKeywordParameterNode' : Kind.KWOPTARG,
    'KeywordRestParameterNode'     : Kind.KWRESTARG,
    'BlockParameterNode'           : Kind.BLOCKARG,
    'BlockLocalVariableNode'       : Kind.SHADOWARG,
}

class Walker:
    def __init__(self, source):
        self.source = source

    def visit (self, node):
        if node is None:
            return None
        handler = _handlers.get (node.type)
        if handler is None:
            raise UnsupportedConstruct (node.type, node.start)
        return handler (self, node)

    def visit_all (self, nodes):
        return [self.visit (n) for n in nodes]

    #---------------------------------------------------------------------------
    def loc (self, pnode, selector=None):
        return Loc (pnode.start, pnode.end, selector, self.source)

    def node (self, kind, children, pnode, selector=None):
        return Node (kind, children, self.loc (pnode, selector))

    def field (self, pnode, name):
        if name not in pnode.fields:
            raise MalformedNode (pnode.type, name, 'missing field')
        return getattr (pnode, name)

    #---------------------------------------------------------------------------
    # statements

    def program (self, pnode):
        return self.visit (self.field (pnode, 'statements'))

    def statements (self, pnode):
        body = self.field (pnode, 'body')
        if not body:
            return None
        if len (body) == 1:
            return self.visit (body[0])
        return self.node (Kind.BEGIN, self.visit_all (body), pnode)

    def parentheses (self, pnode):
        body = pnode.body
        if body is None:
            return self.node (Kind.BEGIN, [], pnode)
        children = self.visit_all (body.body) if body.type == 'StatementsNode' \
            else [self.visit (body)]
        return self.node (Kind.BEGIN, children, pnode)

    #---------------------------------------------------------------------------
    # literals

    def integer (self, pnode):
        return self.node (Kind.INT, [pnode.value], pnode)

    def float_ (self, pnode):
        return self.node (Kind.FLOAT, [pnode.value], pnode)

    def string (self, pnode):
        return self.node (Kind.STR, [pnode.unescaped], pnode)

    def interpolated_string (self, pnode):
        parts = []
        for part in self.field (pnode, 'parts'):
            if part.type == 'EmbeddedStatementsNode':
                body = part.statements.body
                parts.append (self.node (Kind.BEGIN, self.visit_all (body), part))
            else:
                parts.append (self.visit (part))
        return self.node (Kind.DSTR, parts, pnode)

    def symbol (self, pnode):
        return self.node (Kind.SYM, [pnode.value], pnode)

    def regexp (self, pnode):
        pattern = self.node (Kind.STR, [pnode.content], pnode)
        options = Node (Kind.REGOPT, sorted (set (pnode.flags)))
        return self.node (Kind.REGEXP, [pattern, options], pnode)

    def nil (self, pnode):
        return self.node (Kind.NIL, [], pnode)

    def true (self, pnode):
        return self.node (Kind.TRUE, [], pnode)

    def false (self, pnode):
        return self.node (Kind.FALSE, [], pnode)

    def self_ (self, pnode):
        return self.node (Kind.SELF, [], pnode)

    def array (self, pnode):
        return self.node (Kind.ARRAY, self.visit_all (pnode.elements), pnode)

    def hash (self, pnode):
        return self.node (Kind.HASH, self.visit_all (pnode.elements), pnode)

    def assoc (self, pnode):
        key = self.visit (self.field (pnode, 'key'))
        value = self.visit (self.field (pnode, 'value'))
        return self.node (Kind.PAIR, [key, value], pnode)

    def assoc_splat (self, pnode):
        return self.node (Kind.KWSPLAT, [self.visit (pnode.value)], pnode)

    def range (self, pnode):
        kind = Kind.ERANGE if pnode.exclude_end else Kind.IRANGE
        children = [self.visit (pnode.left), self.visit (pnode.right)]
        return self.node (kind, children, pnode)

    def splat (self, pnode):
        return self.node (Kind.SPLAT, [self.visit (pnode.expression)], pnode)

    def block_argument (self, pnode):
        return self.node (Kind.BLOCK_PASS, [self.visit (pnode.expression)], pnode)

    #---------------------------------------------------------------------------
    # variables

    def variable_read (self, pnode):
        prefix = pnode.type[:-len ('ReadNode')]
        return self.node (_variable_kinds[prefix][0], [pnode.name], pnode)

    def variable_write (self, pnode):
        prefix = pnode.type[:-len ('WriteNode')]
        value = self.visit (self.field (pnode, 'value'))
        return self.node (_variable_kinds[prefix][1], [pnode.name, value], pnode)

    def variable_target (self, pnode):
        prefix = pnode.type[:-len ('TargetNode')]
        return self.node (_variable_kinds[prefix][1], [pnode.name], pnode)

    def constant_read (self, pnode):
        return self.node (Kind.CONST, [None, pnode.name], pnode)

    def constant_path (self, pnode):
        return self.node (Kind.CONST, [self.scope (pnode), pnode.name], pnode)

    def scope (self, pnode):
        if pnode.parent is None:
            return Node (Kind.CBASE, [], self.loc (pnode))
        return self.visit (pnode.parent)

    def constant_write (self, pnode):
        value = self.visit (self.field (pnode, 'value'))
        return self.node (Kind.CASGN, [None, pnode.name, value], pnode)

    def constant_target (self, pnode):
        return self.node (Kind.CASGN, [None, pnode.name], pnode)

    def constant_path_write (self, pnode):
        target = pnode.target
        value = self.visit (self.field (pnode, 'value'))
        children = [self.scope (target), target.name, value]
        return self.node (Kind.CASGN, children, pnode)

    def constant_path_target (self, pnode):
        return self.node (Kind.CASGN, [self.scope (pnode), pnode.name], pnode)

    #---------------------------------------------------------------------------
    # compound assignment: the first child is the target without a value

    def _op_target (self, pnode):
        t = pnode.type
        if t.startswith ('Call'):
            kind = Kind.CSEND if pnode.safe_navigation else Kind.SEND
            return Node(
                kind,
                [self.visit (pnode.receiver), pnode.read_name],
                Loc (pnode.start, pnode.end, pnode.message_loc, self.source)
                )
        if t.startswith ('Index'):
            children = [self.visit (pnode.receiver), '[]']
            children += self.visit_all (pnode.arguments)
            return self.node (Kind.SEND, children, pnode)
        if t.startswith ('ConstantPath'):
            return self.visit (pnode.target)
        if t.startswith ('Constant'):
            return self.node (Kind.CASGN, [None, pnode.name], pnode)
        for prefix, kinds in _variable_kinds.items():
            if t.startswith (prefix):
                return self.node (kinds[1], [pnode.name], pnode)
        raise MalformedNode (t, 'target', 'not assignable')

    def operator_write (self, pnode):
        target = self._op_target (pnode)
        op = self.field (pnode, 'binary_operator')
        value = self.visit (pnode.value)
        return self.node (Kind.OP_ASGN, [target, op, value], pnode)

    def or_write (self, pnode):
        value = self.visit (self.field (pnode, 'value'))
        return self.node (Kind.OR_ASGN, [self._op_target (pnode), value], pnode)

    def and_write (self, pnode):
        value = self.visit (self.field (pnode, 'value'))
        return self.node (Kind.AND_ASGN, [self._op_target (pnode), value], pnode)

    def multi_write (self, pnode):
        targets = self.visit_all (self.field (pnode, 'targets'))
        mlhs = Node (Kind.MLHS, targets, self.loc (pnode))
        return self.node (Kind.MASGN, [mlhs, self.visit (pnode.value)], pnode)

    def multi_target (self, pnode):
        return self.node (Kind.MLHS, self.visit_all (pnode.targets), pnode)

    #---------------------------------------------------------------------------
    # calls

    def call (self, pnode):
        kind = Kind.CSEND if pnode.safe_navigation else Kind.SEND
        receiver = self.visit (pnode.receiver)
        children = [receiver, self.field (pnode, 'name')]
        children += self.visit_all (pnode.arguments)
        block = pnode.block
        if block is not None and block.type == 'BlockArgumentNode':
            children.append (self.visit (block))
            block = None
        send = self.node (kind, children, pnode, pnode.message_loc)
        if block is None:
            return send
        return self.with_block (send, block)

    def with_block (self, call, block):
        params = block.parameters
        body = self.visit (block.body)
        # the block statement starts where the call does
        loc = Loc (call.loc.start, block.end, None, self.source)
        if params is not None and params.type == 'NumberedParametersNode':
            return Node (Kind.NUMBLOCK, [call, params.maximum, body], loc)
        return Node (Kind.BLOCK, [call, self.block_args (params), body], loc)

    def block_args (self, params):
        if params is None:
            return Node (Kind.ARGS, [])
        args = self.visit (params.parameters) if params.parameters else None
        children = list (args.children) if args is not None else []
        children += self.visit_all (params.locals)
        return Node (Kind.ARGS, children, self.loc (params))

    def lambda_ (self, pnode):
        call = Node (Kind.SEND, [None, 'lambda'])
        args = self.visit (pnode.parameters) if pnode.parameters else \
            Node (Kind.ARGS, [])
        body = self.visit (pnode.body)
        return self.node (Kind.BLOCK, [call, args, body], pnode)

    def super_ (self, pnode):
        children = self.visit_all (pnode.arguments)
        block = pnode.block
        if block is not None and block.type == 'BlockArgumentNode':
            children.append (self.visit (block))
            block = None
        node = self.node (Kind.SUPER, children, pnode)
        return node if block is None else self.with_block (node, block)

    def forwarding_super (self, pnode):
        node = self.node (Kind.ZSUPER, [], pnode)
        if pnode.block is None:
            return node
        return self.with_block (node, pnode.block)

    def yield_ (self, pnode):
        return self.node (Kind.YIELD, self.visit_all (pnode.arguments), pnode)

    #---------------------------------------------------------------------------
    # control flow

    def if_ (self, pnode):
        cond = self.visit (self.field (pnode, 'predicate'))
        body = self.visit (pnode.statements)
        alt = self.visit (pnode.subsequent)
        return self.node (Kind.IF, [cond, body, alt], pnode)

    def unless (self, pnode):
        # same "if" with the branches swapped
        cond = self.visit (self.field (pnode, 'predicate'))
        body = self.visit (pnode.statements)
        alt = self.visit (pnode.else_clause)
        return self.node (Kind.IF, [cond, alt, body], pnode)

    def else_ (self, pnode):
        return self.visit (pnode.statements)

    def loop (self, pnode):
        cond = self.visit (self.field (pnode, 'predicate'))
        body = self.visit (pnode.statements)
        if pnode.type == 'WhileNode':
            kind = Kind.WHILE_POST if pnode.begin_modifier else Kind.WHILE
        else:
            kind = Kind.UNTIL_POST if pnode.begin_modifier else Kind.UNTIL
        return self.node (kind, [cond, body], pnode)

    def for_ (self, pnode):
        children = [
            self.visit (self.field (pnode, 'index')),
            self.visit (pnode.collection),
            self.visit (pnode.statements),
            ]
        return self.node (Kind.FOR, children, pnode)

    def case (self, pnode):
        children = [self.visit (pnode.predicate)]
        children += self.visit_all (self.field (pnode, 'conditions'))
        children.append (self.visit (pnode.else_clause))
        return self.node (Kind.CASE, children, pnode)

    def when (self, pnode):
        children = self.visit_all (self.field (pnode, 'conditions'))
        children.append (self.visit (pnode.statements))
        return self.node (Kind.WHEN, children, pnode)

    def jump (self, pnode):
        kind = {
            'BreakNode': Kind.BREAK,
            'NextNode': Kind.NEXT,
            'ReturnNode': Kind.RETURN,
            }[pnode.type]
        args = self.visit_all (pnode.arguments)
        if len (args) > 1:
            args = [Node (Kind.ARRAY, args, self.loc (pnode))]
        return self.node (kind, args, pnode)

    def and_ (self, pnode):
        children = [self.visit (pnode.left), self.visit (pnode.right)]
        return self.node (Kind.AND, children, pnode)

    def or_ (self, pnode):
        children = [self.visit (pnode.left), self.visit (pnode.right)]
        return self.node (Kind.OR, children, pnode)

    def defined (self, pnode):
        return self.node (Kind.DEFINED, [self.visit (pnode.value)], pnode)

    #---------------------------------------------------------------------------
    # exceptions

    def begin (self, pnode):
        body = self.visit (pnode.statements)
        if pnode.rescue_clause is not None:
            children = [body]
            clause = pnode.rescue_clause
            while clause is not None:
                children.append (self.resbody (clause))
                clause = clause.subsequent
            children.append (self.visit (pnode.else_clause))
            body = self.node (Kind.RESCUE, children, pnode)
        if pnode.ensure_clause is not None:
            ensure = self.visit (pnode.ensure_clause.statements)
            body = self.node (Kind.ENSURE, [body, ensure], pnode)
        if not pnode.keyword:
            return body
        if body is None:
            children = []
        elif body.kind is Kind.BEGIN:
            children = list (body.children)
        else:
            children = [body]
        return self.node (Kind.KWBEGIN, children, pnode)

    def resbody (self, pnode):
        exceptions = None
        if pnode.exceptions:
            exceptions = Node(
                Kind.ARRAY, self.visit_all (pnode.exceptions), self.loc (pnode)
                )
        children = [
            exceptions,
            self.visit (pnode.reference),
            self.visit (pnode.statements),
            ]
        return self.node (Kind.RESBODY, children, pnode)

    def rescue_modifier (self, pnode):
        fallback = self.visit (self.field (pnode, 'rescue_expression'))
        resbody = self.node (Kind.RESBODY, [None, None, fallback], pnode)
        body = self.visit (pnode.expression)
        return self.node (Kind.RESCUE, [body, resbody, None], pnode)

    #---------------------------------------------------------------------------
    # definitions

    def def_ (self, pnode):
        args = self.visit (pnode.parameters) if pnode.parameters else \
            Node (Kind.ARGS, [])
        body = self.visit (pnode.body)
        name = self.field (pnode, 'name')
        if pnode.receiver is None:
            return self.node (Kind.DEF, [name, args, body], pnode)
        receiver = self.visit (pnode.receiver)
        return self.node (Kind.DEFS, [receiver, name, args, body], pnode)

    def parameters (self, pnode):
        return self.node (Kind.ARGS, self.visit_all (pnode.params), pnode)

    def parameter (self, pnode):
        kind = _parameter_kinds[pnode.type]
        children = [] if pnode.name is None else [pnode.name]
        if kind in (Kind.OPTARG, Kind.KWOPTARG):
            children.append (self.visit (self.field (pnode, 'value')))
        return self.node (kind, children, pnode)

    def class_ (self, pnode):
        children = [
            self.visit (self.field (pnode, 'constant_path')),
            self.visit (pnode.superclass),
            self.visit (pnode.body),
            ]
        return self.node (Kind.CLASS, children, pnode)

    def module (self, pnode):
        children = [
            self.visit (self.field (pnode, 'constant_path')),
            self.visit (pnode.body),
            ]
        return self.node (Kind.MODULE, children, pnode)
#-------------------------------------------------------------------------------
_handlers = {
    'ProgramNode'                    : Walker.program,
    'StatementsNode'                 : Walker.statements,
    'ParenthesesNode'                : Walker.parentheses,
    'IntegerNode'                    : Walker.integer,
    'FloatNode'                      : Walker.float_,
    'StringNode'                     : Walker.string,
    'InterpolatedStringNode'         : Walker.interpolated_string,
    'SymbolNode'                     : Walker.symbol,
    'RegularExpressionNode'          : Walker.regexp,
    'NilNode'                        : Walker.nil,
    'TrueNode'                       : Walker.true,
    'FalseNode'                      : Walker.false,
    'SelfNode'                       : Walker.self_,
    'ArrayNode'                      : Walker.array,
    'HashNode'                       : Walker.hash,
    'KeywordHashNode'                : Walker.hash,
    'AssocNode'                      : Walker.assoc,
    'AssocSplatNode'                 : Walker.assoc_splat,
    'RangeNode'                      : Walker.range,
    'SplatNode'                      : Walker.splat,
    'BlockArgumentNode'              : Walker.block_argument,
    'LocalVariableReadNode'          : Walker.variable_read,
    'InstanceVariableReadNode'       : Walker.variable_read,
    'ClassVariableReadNode'          : Walker.variable_read,
    'GlobalVariableReadNode'         : Walker.variable_read,
    'LocalVariableWriteNode'         : Walker.variable_write,
    'InstanceVariableWriteNode'      : Walker.variable_write,
    'ClassVariableWriteNode'         : Walker.variable_write,
    'GlobalVariableWriteNode'        : Walker.variable_write,
    'LocalVariableTargetNode'        : Walker.variable_target,
    'InstanceVariableTargetNode'     : Walker.variable_target,
    'ClassVariableTargetNode'        : Walker.variable_target,
    'GlobalVariableTargetNode'       : Walker.variable_target,
    'ConstantReadNode'               : Walker.constant_read,
    'ConstantPathNode'               : Walker.constant_path,
    'ConstantWriteNode'              : Walker.constant_write,
    'ConstantTargetNode'             : Walker.constant_target,
    'ConstantPathWriteNode'          : Walker.constant_path_write,
    'ConstantPathTargetNode'         : Walker.constant_path_target,
    'MultiWriteNode'                 : Walker.multi_write,
    'MultiTargetNode'                : Walker.multi_target,
    'CallNode'                       : Walker.call,
    'LambdaNode'                     : Walker.lambda_,
    'SuperNode'                      : Walker.super_,
    'ForwardingSuperNode'            : Walker.forwarding_super,
    'YieldNode'                      : Walker.yield_,
    'IfNode'                         : Walker.if_,
    'UnlessNode'                     : Walker.unless,
    'ElseNode'                       : Walker.else_,
    'WhileNode'                      : Walker.loop,
    'UntilNode'                      : Walker.loop,
    'ForNode'                        : Walker.for_,
    'CaseNode'                       : Walker.case,
    'WhenNode'                       : Walker.when,
    'BreakNode'                      : Walker.jump,
    'NextNode'                       : Walker.jump,
    'ReturnNode'                     : Walker.jump,
    'AndNode'                        : Walker.and_,
    'OrNode'                         : Walker.or_,
    'DefinedNode'                    : Walker.defined,
    'BeginNode'                      : Walker.begin,
    'RescueModifierNode'             : Walker.rescue_modifier,
    'DefNode'                        : Walker.def_,
    'ParametersNode'                 : Walker.parameters,
    'ClassNode'                      : Walker.class_,
    'ModuleNode'                     : Walker.module,
}

for _ptype in _parameter_kinds:
    _handlers[_ptype] = Walker.parameter

for _prefix in (
    'LocalVariable', 'InstanceVariable', 'ClassVariable', 'GlobalVariable',
    'Constant', 'ConstantPath', 'Call', 'Index'
    ):
    _handlers[f'{_prefix}OperatorWriteNode'] = Walker.operator_write
    _handlers[f'{_prefix}OrWriteNode'] = Walker.or_write
    _handlers[f'{_prefix}AndWriteNode'] = Walker.and_write
