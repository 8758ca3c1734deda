import re
import ply.yacc as yacc
from lexer import tokens, CompileError, RubyLexer

# Grammar for the supported Ruby subset, shaped after MRI's parse.y. Node
# types and field names follow the Prism parse tree, the walker maps them
# to the canonical AST.

class ParseNode:
    def __init__(self, ntype, start=None, end=None, **fields):
        self.type = ntype
        self.start = start
        self.end = end
        self.fields = list (fields.keys())
        for k, v in fields.items():
            setattr (self, k, v)

    def __str__ (self):
        return '\n'.join (self.debug_iterate([]))

    def __repr__ (self):
        return f'{self.type}({self.start}..{self.end})'

    def debug_iterate (self, out, depth=0):
        indent = ' ' * depth * 2
        indent1 = ' ' * ((depth * 2) + 2)

        out.append (f"{indent}'{self.type}'")
        for f in self.fields:
            v = getattr (self, f)
            if type (v) is ParseNode:
                out.append (f'{indent1}{f}:')
                v.debug_iterate (out, depth + 2)
            elif type (v) is list:
                out.append (f'{indent1}{f}: [{len (v)}]')
                for n in v:
                    n.debug_iterate (out, depth + 2)
            else:
                out.append (f'{indent1}{f}: {v!r}')
        return out

    def children (self):
        for f in self.fields:
            v = getattr (self, f)
            if type (v) is ParseNode:
                yield v
            elif type (v) is list:
                yield from v
#-------------------------------------------------------------------------------
def _start (p, n):
    sym = p.slice[n]
    if hasattr (sym, 'endpos'):
        return sym.lexpos
    v = p[n]
    if type (v) is list:
        v = v[0] if v else None
    return v.start if type (v) is ParseNode else None

def _end (p, n):
    sym = p.slice[n]
    if hasattr (sym, 'endpos'):
        return sym.endpos
    v = p[n]
    if type (v) is list:
        v = v[-1] if v else None
    return v.end if type (v) is ParseNode else None

def _tok_loc (p, n):
    return (p.lexpos (n), p.slice[n].endpos)

def _node (ntype, p, first, last, **fields):
    return ParseNode (ntype, _start (p, first), _end (p, last), **fields)

def _statements (body, start=None, end=None):
    if body:
        start = body[0].start
        end = body[-1].end
    return ParseNode ('StatementsNode', start, end, body=body)

def _call (p, first, last, receiver, name, arguments=None, block=None,
    message_loc=None, safe_navigation=False, variable_call=False):
    return _node(
        'CallNode', p, first, last,
        receiver=receiver,
        name=name,
        arguments=arguments or [],
        block=block,
        message_loc=message_loc,
        safe_navigation=safe_navigation,
        variable_call=variable_call
        )

def _call_arguments (items):
    # keyword pairs gather in one KeywordHashNode, "&blk" goes to the block
    args = []
    block = None
    kwhash = None
    for item in items:
        if item.type in ('AssocNode', 'AssocSplatNode'):
            if kwhash is None:
                kwhash = ParseNode(
                    'KeywordHashNode', item.start, item.end, elements=[]
                    )
                args.append (kwhash)
            kwhash.elements.append (item)
            kwhash.end = item.end
        elif item.type == 'BlockArgumentNode':
            block = item
        else:
            args.append (item)
    return args, block

_variable_prefix = {
    'IDENTIFIER' : 'LocalVariable',
    'IVAR'       : 'InstanceVariable',
    'CVAR'       : 'ClassVariable',
    'GVAR'       : 'GlobalVariable',
    'CONSTANT'   : 'Constant',
}

def _read (var):
    if var.token == 'IDENTIFIER':
        # a local or a method called without arguments, decided later
        return ParseNode(
            'CallNode', var.start, var.end,
            receiver=None,
            name=var.name,
            arguments=[],
            block=None,
            message_loc=(var.start, var.end),
            safe_navigation=False,
            variable_call=True
            )
    prefix = _variable_prefix[var.token]
    return ParseNode (f'{prefix}ReadNode', var.start, var.end, name=var.name)

def _target (var):
    prefix = _variable_prefix[var.token]
    return ParseNode (f'{prefix}TargetNode', var.start, var.end, name=var.name)

def _write (target, value, op='='):
    # assignment target plus operator to the matching write node
    start = target.start
    end = value.end
    ttype = target.type
    if op == '=':
        if ttype == 'CallTargetNode':
            return ParseNode(
                'CallNode', start, end,
                receiver=target.receiver,
                name=target.name + '=',
                arguments=[value],
                block=None,
                message_loc=target.message_loc,
                safe_navigation=target.safe_navigation,
                variable_call=False
                )
        if ttype == 'IndexTargetNode':
            return ParseNode(
                'CallNode', start, end,
                receiver=target.receiver,
                name='[]=',
                arguments=target.arguments + [value],
                block=None,
                message_loc=target.message_loc,
                safe_navigation=False,
                variable_call=False
                )
        if ttype == 'ConstantPathTargetNode':
            return ParseNode(
                'ConstantPathWriteNode', start, end, target=target, value=value
                )
        prefix = ttype[:-len ('TargetNode')]
        return ParseNode(
            f'{prefix}WriteNode', start, end, name=target.name, value=value
            )

    if op == '||':
        suffix = 'OrWriteNode'
        extra = {}
    elif op == '&&':
        suffix = 'AndWriteNode'
        extra = {}
    else:
        suffix = 'OperatorWriteNode'
        extra = {'binary_operator': op}

    if ttype == 'CallTargetNode':
        return ParseNode(
            f'Call{suffix}', start, end,
            receiver=target.receiver,
            read_name=target.name,
            message_loc=target.message_loc,
            safe_navigation=target.safe_navigation,
            value=value,
            **extra
            )
    if ttype == 'IndexTargetNode':
        return ParseNode(
            f'Index{suffix}', start, end,
            receiver=target.receiver,
            arguments=target.arguments,
            value=value,
            **extra
            )
    if ttype == 'ConstantPathTargetNode':
        return ParseNode(
            f'ConstantPath{suffix}', start, end,
            target=target, value=value, **extra
            )
    prefix = ttype[:-len ('TargetNode')]
    return ParseNode(
        f'{prefix}{suffix}', start, end, name=target.name, value=value, **extra
        )
#-------------------------------------------------------------------------------
start = 'program'

precedence = (
    ('nonassoc', 'IF_MOD', 'UNLESS_MOD', 'WHILE_MOD', 'UNTIL_MOD'),
    ('left', 'OR', 'AND'),
    ('right', 'NOT'),
    ('nonassoc', 'DEFINED'),
    ('right', '=', 'OP_ASGN'),
    ('left', 'RESCUE_MOD'),
    ('right', '?', ':'),
    ('nonassoc', 'DOT2', 'DOT3'),
    ('left', 'OROP'),
    ('left', 'ANDOP'),
    ('nonassoc', 'CMP', 'EQ', 'EQQ', 'NEQ', 'MATCH', 'NMATCH'),
    ('left', '>', 'GEQ', '<', 'LEQ'),
    ('left', '|', '^'),
    ('left', '&'),
    ('left', 'LSHFT', 'RSHFT'),
    ('left', '+', '-'),
    ('left', '*', '/', '%'),
    ('right', 'UMINUS'),
    ('right', 'POW'),
    ('right', '!', '~'),
)

# -------------- RULES ----------------
def p_program(p):
    '''program : compstmt'''
    p[0] = ParseNode ('ProgramNode', 0, len (p.lexer.source), statements=p[1])

def p_compstmt(p):
    '''compstmt : stmts opt_terms'''
    p[0] = _statements (p[1])

def p_stmts_1(p):
    '''stmts : empty'''
    p[0] = []

def p_stmts_2(p):
    '''stmts : stmt'''
    p[0] = [p[1]]

def p_stmts_3(p):
    '''stmts : stmts terms stmt'''
    p[0] = p[1] + [p[3]]

def p_opt_terms(p):
    '''opt_terms : empty
                 | terms'''
    pass

def p_terms(p):
    '''terms : term
             | terms term'''
    pass

def p_term(p):
    '''term : NEWLINE
            | ';' '''
    pass

def p_empty(p):
    '''empty :'''
    pass

def p_stmt_if_mod(p):
    '''stmt : stmt IF_MOD expr'''
    p[0] = _node(
        'IfNode', p, 1, 3,
        predicate=p[3], statements=_statements ([p[1]]), subsequent=None
        )

def p_stmt_unless_mod(p):
    '''stmt : stmt UNLESS_MOD expr'''
    p[0] = _node(
        'UnlessNode', p, 1, 3,
        predicate=p[3], statements=_statements ([p[1]]), else_clause=None
        )

def p_stmt_loop_mod(p):
    '''stmt : stmt WHILE_MOD expr
            | stmt UNTIL_MOD expr'''
    ntype = 'WhileNode' if p.slice[2].type == 'WHILE_MOD' else 'UntilNode'
    body = p[1]
    # "begin ... end while x" runs the body at least once
    post = body.type == 'BeginNode' and body.keyword
    p[0] = _node(
        ntype, p, 1, 3,
        predicate=p[3], statements=_statements ([body]), begin_modifier=post
        )

def p_stmt_assign_command(p):
    '''stmt : lhs '=' command_call'''
    p[0] = _write (p[1], p[3])

def p_stmt_op_assign_command(p):
    '''stmt : lhs OP_ASGN command_call'''
    p[0] = _write (p[1], p[3], p[2])

def p_stmt_masgn(p):
    '''stmt : mlhs '=' mrhs'''
    p[0] = _node ('MultiWriteNode', p, 1, 3, targets=p[1], value=p[3])

def p_stmt_expr(p):
    '''stmt : expr'''
    p[0] = p[1]

def p_mrhs(p):
    '''mrhs : call_args'''
    items = p[1]
    if len (items) == 1 and items[0].type != 'SplatNode':
        p[0] = items[0]
    else:
        p[0] = _node ('ArrayNode', p, 1, 1, elements=items)

def p_mlhs_1(p):
    '''mlhs : mlhs_item ',' mlhs_item'''
    p[0] = [p[1], p[3]]

def p_mlhs_2(p):
    '''mlhs : mlhs ',' mlhs_item'''
    p[0] = p[1] + [p[3]]

def p_mlhs_item_1(p):
    '''mlhs_item : user_var'''
    p[0] = _target (p[1])

def p_mlhs_item_2(p):
    '''mlhs_item : '*' user_var'''
    p[0] = _node ('SplatNode', p, 1, 2, expression=_target (p[2]))

def p_expr_1(p):
    '''expr : command_call
            | arg'''
    p[0] = p[1]

def p_expr_2(p):
    '''expr : expr AND expr
            | expr OR expr'''
    ntype = 'AndNode' if p.slice[2].type == 'AND' else 'OrNode'
    p[0] = _node (ntype, p, 1, 3, left=p[1], right=p[3])

def p_expr_3(p):
    '''expr : NOT expr'''
    p[0] = _call (p, 1, 2, p[2], '!', message_loc=_tok_loc (p, 1))
#-------------------------------------------------------------------------------
# commands, calls with arguments not in parentheses

def p_command_call(p):
    '''command_call : command
                    | block_command'''
    p[0] = p[1]

def p_block_command(p):
    '''block_command : command do_block'''
    node = p[1]
    if 'block' not in node.fields:
        raise CompileError(
            f'a block cannot be given to {node.type}', node.start,
            p.lexer.lineno
            )
    node.block = p[2]
    node.end = p[2].end
    p[0] = node

def p_do_block(p):
    '''do_block : DO_BLOCK opt_block_param bodystmt END'''
    p[0] = _node ('BlockNode', p, 1, 4, parameters=p[2], body=p[3])

def p_command_1(p):
    '''command : CMD command_args'''
    args, block = _call_arguments (p[2])
    p[0] = _call (p, 1, 2, None, p[1], args, block, _tok_loc (p, 1))

def p_command_2(p):
    '''command : primary call_op CMD command_args'''
    args, block = _call_arguments (p[4])
    p[0] = _call(
        p, 1, 4, p[1], p[3], args, block, _tok_loc (p, 3), p[2] == '&.'
        )

def p_command_3(p):
    '''command : SUPER command_args'''
    args, block = _call_arguments (p[2])
    p[0] = _node(
        'SuperNode', p, 1, 2, arguments=args, block=block, parentheses=False
        )

def p_command_4(p):
    '''command : YIELD command_args'''
    p[0] = _node ('YieldNode', p, 1, 2, arguments=p[2])

def p_command_5(p):
    '''command : RETURN call_args
               | BREAK call_args
               | NEXT call_args'''
    ntype = p.slice[1].type.capitalize() + 'Node'
    p[0] = _node (ntype, p, 1, 2, arguments=p[2])

def p_command_args_1(p):
    '''command_args : call_args'''
    p[0] = p[1]

def p_command_args_2(p):
    '''command_args : command'''
    p[0] = [p[1]]

def p_call_op(p):
    '''call_op : '.'
               | ANDDOT'''
    p[0] = p[1]
#-------------------------------------------------------------------------------
# arguments

def p_call_args_1(p):
    '''call_args : call_arg'''
    p[0] = [p[1]]

def p_call_args_2(p):
    '''call_args : call_args ',' call_arg'''
    p[0] = p[1] + [p[3]]

def p_opt_call_args(p):
    '''opt_call_args : empty
                     | call_args
                     | call_args ',' '''
    p[0] = p[1] or []

def p_call_arg_1(p):
    '''call_arg : arg
                | assoc'''
    p[0] = p[1]

def p_call_arg_2(p):
    '''call_arg : '*' arg'''
    p[0] = _node ('SplatNode', p, 1, 2, expression=p[2])

def p_call_arg_3(p):
    '''call_arg : '&' arg'''
    p[0] = _node ('BlockArgumentNode', p, 1, 2, expression=p[2])

def p_paren_args(p):
    '''paren_args : LPAREN_CALL opt_call_args ')' '''
    p[0] = _node ('Arguments', p, 1, 3, items=p[2])

def p_assoc_1(p):
    '''assoc : LABEL arg'''
    key = ParseNode(
        'SymbolNode', p.lexpos (1), p.slice[1].endpos, value=p[1]
        )
    p[0] = _node ('AssocNode', p, 1, 2, key=key, value=p[2])

def p_assoc_2(p):
    '''assoc : arg ASSOC arg'''
    p[0] = _node ('AssocNode', p, 1, 3, key=p[1], value=p[3])

def p_assoc_3(p):
    '''assoc : POW arg'''
    p[0] = _node ('AssocSplatNode', p, 1, 2, value=p[2])

def p_opt_assocs(p):
    '''opt_assocs : empty
                  | assocs
                  | assocs ',' '''
    p[0] = p[1] or []

def p_assocs_1(p):
    '''assocs : assoc'''
    p[0] = [p[1]]

def p_assocs_2(p):
    '''assocs : assocs ',' assoc'''
    p[0] = p[1] + [p[3]]
#-------------------------------------------------------------------------------
# operators

def p_arg_assign(p):
    '''arg : lhs '=' arg'''
    p[0] = _write (p[1], p[3])

def p_arg_op_assign(p):
    '''arg : lhs OP_ASGN arg'''
    p[0] = _write (p[1], p[3], p[2])

def p_arg_binary(p):
    '''arg : arg '+' arg
           | arg '-' arg
           | arg '*' arg
           | arg '/' arg
           | arg '%' arg
           | arg POW arg
           | arg '|' arg
           | arg '^' arg
           | arg '&' arg
           | arg LSHFT arg
           | arg RSHFT arg
           | arg '>' arg
           | arg GEQ arg
           | arg '<' arg
           | arg LEQ arg
           | arg CMP arg
           | arg EQ arg
           | arg EQQ arg
           | arg NEQ arg
           | arg MATCH arg
           | arg NMATCH arg'''
    p[0] = _call (p, 1, 3, p[1], p[2], [p[3]], message_loc=_tok_loc (p, 2))

def p_arg_logical(p):
    '''arg : arg ANDOP arg
           | arg OROP arg'''
    ntype = 'AndNode' if p.slice[2].type == 'ANDOP' else 'OrNode'
    p[0] = _node (ntype, p, 1, 3, left=p[1], right=p[3])

def p_arg_uminus(p):
    '''arg : '-' arg %prec UMINUS
           | '+' arg %prec UMINUS'''
    operand = p[2]
    if operand.type in ('IntegerNode', 'FloatNode') and \
        p.slice[1].endpos == operand.start:
        # "-1" is a literal, not a call
        value = -operand.value if p[1] == '-' else operand.value
        p[0] = _node (operand.type, p, 1, 2, value=value)
        return
    p[0] = _call (p, 1, 2, operand, p[1] + '@', message_loc=_tok_loc (p, 1))

def p_arg_unary(p):
    '''arg : '!' arg
           | '~' arg'''
    p[0] = _call (p, 1, 2, p[2], p[1], message_loc=_tok_loc (p, 1))

def p_arg_defined(p):
    '''arg : DEFINED arg'''
    p[0] = _node ('DefinedNode', p, 1, 2, value=p[2])

def p_arg_ternary(p):
    '''arg : arg '?' arg ':' arg'''
    else_clause = _node ('ElseNode', p, 4, 5, statements=_statements ([p[5]]))
    p[0] = _node(
        'IfNode', p, 1, 5,
        predicate=p[1],
        statements=_statements ([p[3]]),
        subsequent=else_clause
        )

def p_arg_rescue_mod(p):
    '''arg : arg RESCUE_MOD arg'''
    p[0] = _node(
        'RescueModifierNode', p, 1, 3, expression=p[1], rescue_expression=p[3]
        )

def p_arg_range(p):
    '''arg : arg DOT2 arg
           | arg DOT3 arg'''
    p[0] = _node(
        'RangeNode', p, 1, 3,
        left=p[1], right=p[3], exclude_end=p.slice[2].type == 'DOT3'
        )

def p_arg_primary(p):
    '''arg : primary'''
    p[0] = p[1]
#-------------------------------------------------------------------------------
# variables

def p_user_var(p):
    '''user_var : IDENTIFIER
                | IVAR
                | CVAR
                | GVAR
                | CONSTANT'''
    p[0] = _node ('UserVar', p, 1, 1, token=p.slice[1].type, name=p[1])

def p_lhs_1(p):
    '''lhs : user_var'''
    p[0] = _target (p[1])

def p_lhs_2(p):
    '''lhs : primary call_op IDENTIFIER'''
    p[0] = _node(
        'CallTargetNode', p, 1, 3,
        receiver=p[1],
        name=p[3],
        message_loc=_tok_loc (p, 3),
        safe_navigation=p[2] == '&.'
        )

def p_lhs_3(p):
    '''lhs : primary LBRACK_INDEX opt_call_args ']' '''
    p[0] = _node(
        'IndexTargetNode', p, 1, 4,
        receiver=p[1],
        arguments=p[3],
        message_loc=(p.lexpos (2), p.slice[4].endpos)
        )

def p_lhs_4(p):
    '''lhs : primary COLON2 CONSTANT'''
    p[0] = _node ('ConstantPathTargetNode', p, 1, 3, parent=p[1], name=p[3])

def p_lhs_5(p):
    '''lhs : COLON3 CONSTANT'''
    p[0] = _node ('ConstantPathTargetNode', p, 1, 2, parent=None, name=p[2])

def p_var_ref_1(p):
    '''var_ref : user_var'''
    p[0] = _read (p[1])

def p_var_ref_2(p):
    '''var_ref : NIL
               | SELF
               | TRUE
               | FALSE'''
    ntype = p.slice[1].type.capitalize() + 'Node'
    p[0] = _node (ntype, p, 1, 1)
#-------------------------------------------------------------------------------
# primaries

def p_primary_var_ref(p):
    '''primary : var_ref
               | strings
               | method_call
               | lambda'''
    p[0] = p[1]

def p_primary_integer(p):
    '''primary : INTEGER'''
    p[0] = _node ('IntegerNode', p, 1, 1, value=p[1])

def p_primary_float(p):
    '''primary : FLOAT'''
    p[0] = _node ('FloatNode', p, 1, 1, value=p[1])

def p_primary_symbol(p):
    '''primary : SYMBOL'''
    p[0] = _node ('SymbolNode', p, 1, 1, value=p[1])

def p_primary_regexp(p):
    '''primary : REGEXP'''
    content, flags = p[1]
    p[0] = _node ('RegularExpressionNode', p, 1, 1, content=content, flags=flags)

def p_primary_words(p):
    '''primary : WORDS
               | SYMBOLS'''
    ntype = 'StringNode' if p.slice[1].type == 'WORDS' else 'SymbolNode'
    field = 'unescaped' if ntype == 'StringNode' else 'value'
    start, end = _tok_loc (p, 1)
    elements = [ParseNode (ntype, start, end, **{field: w}) for w in p[1]]
    p[0] = _node ('ArrayNode', p, 1, 1, elements=elements)

def p_primary_block_call(p):
    '''primary : method_call brace_block'''
    node = p[1]
    if node.block is not None:
        raise CompileError(
            'both block argument and literal block are passed', p[2].start,
            p.lexer.lineno
            )
    node.block = p[2]
    node.end = p[2].end
    p[0] = node

def p_primary_fid(p):
    '''primary : FID brace_block'''
    p[0] = _call (p, 1, 2, None, p[1], block=p[2], message_loc=_tok_loc (p, 1))

def p_primary_parens(p):
    '''primary : '(' compstmt ')' '''
    body = p[2] if p[2].body else None
    p[0] = _node ('ParenthesesNode', p, 1, 3, body=body)

def p_primary_colon2(p):
    '''primary : primary COLON2 CONSTANT'''
    p[0] = _node ('ConstantPathNode', p, 1, 3, parent=p[1], name=p[3])

def p_primary_colon3(p):
    '''primary : COLON3 CONSTANT'''
    p[0] = _node ('ConstantPathNode', p, 1, 2, parent=None, name=p[2])

def p_primary_array(p):
    '''primary : '[' opt_call_args ']' '''
    elements, block = _call_arguments (p[2])
    if block is not None:
        raise CompileError ('block argument in array', block.start, 0)
    p[0] = _node ('ArrayNode', p, 1, 3, elements=elements)

def p_primary_hash(p):
    '''primary : '{' opt_assocs '}' '''
    p[0] = _node ('HashNode', p, 1, 3, elements=p[2])

def p_primary_jump(p):
    '''primary : RETURN
               | BREAK
               | NEXT'''
    ntype = p.slice[1].type.capitalize() + 'Node'
    p[0] = _node (ntype, p, 1, 1, arguments=[])

def p_primary_yield_1(p):
    '''primary : YIELD'''
    p[0] = _node ('YieldNode', p, 1, 1, arguments=[])

def p_primary_yield_2(p):
    '''primary : YIELD paren_args'''
    p[0] = _node ('YieldNode', p, 1, 2, arguments=p[2].items)

def p_primary_super_1(p):
    '''primary : SUPER'''
    p[0] = _node ('ForwardingSuperNode', p, 1, 1, block=None)

def p_primary_super_2(p):
    '''primary : SUPER paren_args'''
    args, block = _call_arguments (p[2].items)
    p[0] = _node(
        'SuperNode', p, 1, 2, arguments=args, block=block, parentheses=True
        )

def p_primary_defined(p):
    '''primary : DEFINED LPAREN_CALL expr ')' '''
    p[0] = _node ('DefinedNode', p, 1, 4, value=p[3])
#-------------------------------------------------------------------------------
# method calls

def _paren_call (p, receiver, name, name_idx, args_idx, safe=False):
    args, block = _call_arguments (p[args_idx].items)
    return _node(
        'CallNode', p, 1, args_idx,
        receiver=receiver,
        name=name,
        arguments=args,
        block=block,
        message_loc=_tok_loc (p, name_idx),
        safe_navigation=safe,
        variable_call=False
        )

def p_method_call_1(p):
    '''method_call : IDENTIFIER paren_args
                   | CONSTANT paren_args'''
    p[0] = _paren_call (p, None, p[1], 1, 2)

def p_method_call_2(p):
    '''method_call : primary call_op IDENTIFIER'''
    p[0] = _call(
        p, 1, 3, p[1], p[3],
        message_loc=_tok_loc (p, 3), safe_navigation=p[2] == '&.'
        )

def p_method_call_3(p):
    '''method_call : primary call_op IDENTIFIER paren_args'''
    p[0] = _paren_call (p, p[1], p[3], 3, 4, p[2] == '&.')

def p_method_call_4(p):
    '''method_call : primary COLON2 IDENTIFIER paren_args'''
    p[0] = _paren_call (p, p[1], p[3], 3, 4)

def p_method_call_5(p):
    '''method_call : primary LBRACK_INDEX opt_call_args ']' '''
    args, block = _call_arguments (p[3])
    p[0] = _call(
        p, 1, 4, p[1], '[]', args, block,
        message_loc=(p.lexpos (2), p.slice[4].endpos)
        )

def p_brace_block_1(p):
    '''brace_block : LBRACE_BLOCK opt_block_param compstmt '}' '''
    body = p[3] if p[3].body else None
    p[0] = _node ('BlockNode', p, 1, 4, parameters=p[2], body=body)

def p_brace_block_2(p):
    '''brace_block : DO opt_block_param bodystmt END'''
    body = p[3] if p[3].type != 'StatementsNode' or p[3].body else None
    p[0] = _node ('BlockNode', p, 1, 4, parameters=p[2], body=body)

def p_lambda(p):
    '''lambda : LAMBDA lambda_params lambda_body'''
    p[0] = _node ('LambdaNode', p, 1, 3, parameters=p[2], body=p[3])

def p_lambda_params_1(p):
    '''lambda_params : empty'''
    p[0] = None

def p_lambda_params_2(p):
    '''lambda_params : LPAREN_CALL f_args ')'
                     | '(' f_args ')' '''
    p[0] = p[2]

def p_lambda_body_1(p):
    '''lambda_body : LBRACE_BLOCK compstmt '}' '''
    p[0] = p[2] if p[2].body else None
    if p[0] is not None:
        p[0].end = p.slice[3].endpos

def p_lambda_body_2(p):
    '''lambda_body : DO bodystmt END'''
    p[0] = p[2]
    if p[0].type == 'StatementsNode' and not p[0].body:
        p[0] = None
    if p[0] is not None:
        p[0].end = p.slice[3].endpos
#-------------------------------------------------------------------------------
# control flow

def p_then(p):
    '''then : term
            | THEN
            | term THEN'''
    pass

def p_do(p):
    '''do : term
          | DO_COND'''
    pass

def p_primary_if(p):
    '''primary : IF expr then compstmt if_tail END'''
    p[0] = _node(
        'IfNode', p, 1, 6, predicate=p[2], statements=p[4], subsequent=p[5]
        )

def p_primary_unless(p):
    '''primary : UNLESS expr then compstmt opt_else END'''
    p[0] = _node(
        'UnlessNode', p, 1, 6, predicate=p[2], statements=p[4], else_clause=p[5]
        )

def p_if_tail_1(p):
    '''if_tail : opt_else'''
    p[0] = p[1]

def p_if_tail_2(p):
    '''if_tail : ELSIF expr then compstmt if_tail'''
    p[0] = _node(
        'IfNode', p, 1, 5, predicate=p[2], statements=p[4], subsequent=p[5]
        )
    if p[5] is None:
        p[0].end = p[4].end if p[4].body else _end (p, 2)

def p_opt_else_1(p):
    '''opt_else : empty'''
    p[0] = None

def p_opt_else_2(p):
    '''opt_else : ELSE compstmt'''
    p[0] = ParseNode(
        'ElseNode', p.lexpos (1), p[2].end or p.slice[1].endpos,
        statements=p[2]
        )

def p_primary_while(p):
    '''primary : WHILE expr do compstmt END
               | UNTIL expr do compstmt END'''
    ntype = 'WhileNode' if p.slice[1].type == 'WHILE' else 'UntilNode'
    p[0] = _node(
        ntype, p, 1, 5, predicate=p[2], statements=p[4], begin_modifier=False
        )

def p_primary_case_1(p):
    '''primary : CASE expr opt_terms case_body END'''
    conditions, else_clause = p[4]
    p[0] = _node(
        'CaseNode', p, 1, 5,
        predicate=p[2], conditions=conditions, else_clause=else_clause
        )

def p_primary_case_2(p):
    '''primary : CASE opt_terms case_body END'''
    conditions, else_clause = p[3]
    p[0] = _node(
        'CaseNode', p, 1, 4,
        predicate=None, conditions=conditions, else_clause=else_clause
        )

def p_case_body(p):
    '''case_body : WHEN call_args then compstmt cases'''
    when = ParseNode(
        'WhenNode', p.lexpos (1), p[4].end or _end (p, 2),
        conditions=p[2], statements=p[4]
        )
    conditions, else_clause = p[5]
    p[0] = ([when] + conditions, else_clause)

def p_cases_1(p):
    '''cases : opt_else'''
    p[0] = ([], p[1])

def p_cases_2(p):
    '''cases : case_body'''
    p[0] = p[1]

def p_primary_for(p):
    '''primary : FOR for_var IN expr do compstmt END'''
    p[0] = _node(
        'ForNode', p, 1, 7, index=p[2], collection=p[4], statements=p[6]
        )

def p_for_var_1(p):
    '''for_var : user_var'''
    p[0] = _target (p[1])

def p_for_var_2(p):
    '''for_var : mlhs'''
    p[0] = _node ('MultiTargetNode', p, 1, 1, targets=p[1])
#-------------------------------------------------------------------------------
# exceptions

def p_primary_begin(p):
    '''primary : BEGIN bodystmt END'''
    body = p[2]
    if body.type == 'BeginNode':
        body.start = p.lexpos (1)
        body.end = p.slice[3].endpos
        body.keyword = True
        p[0] = body
        return
    p[0] = _node(
        'BeginNode', p, 1, 3,
        statements=body,
        rescue_clause=None,
        else_clause=None,
        ensure_clause=None,
        keyword=True
        )

def p_bodystmt(p):
    '''bodystmt : compstmt opt_rescue opt_else opt_ensure'''
    body, rescue, else_clause, ensure = p[1], p[2], p[3], p[4]
    if rescue is None and else_clause is None and ensure is None:
        p[0] = body
        return
    last = ensure or else_clause or rescue
    while last.type == 'RescueNode' and last.subsequent is not None:
        last = last.subsequent
    p[0] = ParseNode(
        'BeginNode', body.start if body.body else rescue and rescue.start,
        last.end,
        statements=body,
        rescue_clause=rescue,
        else_clause=else_clause,
        ensure_clause=ensure,
        keyword=False
        )

def p_opt_rescue_1(p):
    '''opt_rescue : empty'''
    p[0] = None

def p_opt_rescue_2(p):
    '''opt_rescue : RESCUE exc_list exc_var then compstmt opt_rescue'''
    end = p[5].end or _end (p, 3) or _end (p, 2) or p.slice[1].endpos
    p[0] = ParseNode(
        'RescueNode', p.lexpos (1), end,
        exceptions=p[2],
        reference=p[3],
        statements=p[5],
        subsequent=p[6]
        )

def p_exc_list(p):
    '''exc_list : empty
                | exc_classes'''
    p[0] = p[1] or []

# class names only, "rescue A => e" is not a hash argument
def p_exc_classes_1(p):
    '''exc_classes : primary'''
    p[0] = [p[1]]

def p_exc_classes_2(p):
    '''exc_classes : exc_classes ',' primary'''
    p[0] = p[1] + [p[3]]

def p_exc_var_1(p):
    '''exc_var : empty'''
    p[0] = None

def p_exc_var_2(p):
    '''exc_var : ASSOC user_var'''
    p[0] = _target (p[2])

def p_opt_ensure_1(p):
    '''opt_ensure : empty'''
    p[0] = None

def p_opt_ensure_2(p):
    '''opt_ensure : ENSURE compstmt'''
    p[0] = ParseNode(
        'EnsureNode', p.lexpos (1), p[2].end or p.slice[1].endpos,
        statements=p[2]
        )
#-------------------------------------------------------------------------------
# definitions

def p_primary_class(p):
    '''primary : CLASS cpath superclass bodystmt END'''
    p[0] = _node(
        'ClassNode', p, 1, 5, constant_path=p[2], superclass=p[3], body=p[4]
        )

def p_primary_module(p):
    '''primary : MODULE cpath bodystmt END'''
    p[0] = _node ('ModuleNode', p, 1, 4, constant_path=p[2], body=p[3])

def p_cpath_1(p):
    '''cpath : CONSTANT'''
    p[0] = _node ('ConstantReadNode', p, 1, 1, name=p[1])

def p_cpath_2(p):
    '''cpath : COLON3 CONSTANT'''
    p[0] = _node ('ConstantPathNode', p, 1, 2, parent=None, name=p[2])

def p_cpath_3(p):
    '''cpath : cpath COLON2 CONSTANT'''
    p[0] = _node ('ConstantPathNode', p, 1, 3, parent=p[1], name=p[3])

def p_superclass_1(p):
    '''superclass : '<' expr term'''
    p[0] = p[2]

def p_superclass_2(p):
    '''superclass : term'''
    p[0] = None

def p_primary_def_1(p):
    '''primary : DEF FNAME f_arglist bodystmt END'''
    p[0] = _node(
        'DefNode', p, 1, 5,
        name=p[2],
        receiver=None,
        parameters=p[3],
        body=p[4],
        name_loc=_tok_loc (p, 2)
        )

def p_primary_def_2(p):
    '''primary : DEF SELF_DOT FNAME f_arglist bodystmt END'''
    start, end = _tok_loc (p, 2)
    p[0] = _node(
        'DefNode', p, 1, 6,
        name=p[3],
        receiver=ParseNode ('SelfNode', start, end - 1),
        parameters=p[4],
        body=p[5],
        name_loc=_tok_loc (p, 3)
        )

def p_f_arglist_1(p):
    '''f_arglist : LPAREN_CALL f_args ')'
                 | '(' f_args ')' '''
    p[0] = p[2]

def p_f_arglist_2(p):
    '''f_arglist : f_args term'''
    p[0] = p[1]

def p_f_args_1(p):
    '''f_args : empty'''
    p[0] = None

def p_f_args_2(p):
    '''f_args : f_arg_list'''
    p[0] = _node ('ParametersNode', p, 1, 1, params=p[1])

def p_f_arg_list_1(p):
    '''f_arg_list : f_arg'''
    p[0] = [p[1]]

def p_f_arg_list_2(p):
    '''f_arg_list : f_arg_list ',' f_arg'''
    p[0] = p[1] + [p[3]]

def p_f_arg_1(p):
    '''f_arg : IDENTIFIER'''
    p[0] = _node ('RequiredParameterNode', p, 1, 1, name=p[1])

def p_f_arg_2(p):
    '''f_arg : IDENTIFIER '=' arg'''
    p[0] = _node ('OptionalParameterNode', p, 1, 3, name=p[1], value=p[3])

def p_f_arg_3(p):
    '''f_arg : LABEL'''
    p[0] = _node ('RequiredKeywordParameterNode', p, 1, 1, name=p[1])

def p_f_arg_4(p):
    '''f_arg : LABEL arg'''
    p[0] = _node(
        'OptionalKeywordParameterNode', p, 1, 2, name=p[1], value=p[2]
        )

def p_f_arg_5(p):
    '''f_arg : '*' IDENTIFIER
             | '*'
             | POW IDENTIFIER
             | POW
             | '&' IDENTIFIER
             | '&' '''
    ntype = {
        '*'  : 'RestParameterNode',
        '**' : 'KeywordRestParameterNode',
        '&'  : 'BlockParameterNode',
        }[p[1]]
    name = p[2] if len (p) == 3 else None
    p[0] = _node (ntype, p, 1, len (p) - 1, name=name)

def p_f_arg_6(p):
    '''f_arg : '(' f_arg_list ')' '''
    p[0] = _node ('MultiTargetNode', p, 1, 3, targets=p[2])
#-------------------------------------------------------------------------------
# block parameters, "|a, (b, c), *d; e|"

def p_opt_block_param_1(p):
    '''opt_block_param : empty
                       | OROP'''
    p[0] = None

def p_opt_block_param_2(p):
    '''opt_block_param : '|' block_params '|'
                       | '|' block_params ';' block_locals '|' '''
    params = None
    if p[2]:
        params = _node ('ParametersNode', p, 2, 2, params=p[2])
    local_vars = p[4] if len (p) == 6 else []
    p[0] = _node(
        'BlockParametersNode', p, 1, len (p) - 1,
        parameters=params, locals=local_vars
        )

def p_block_params(p):
    '''block_params : empty
                    | block_param_list'''
    p[0] = p[1] or []

def p_block_param_list_1(p):
    '''block_param_list : block_param'''
    p[0] = [p[1]]

def p_block_param_list_2(p):
    '''block_param_list : block_param_list ',' block_param'''
    p[0] = p[1] + [p[3]]

def p_block_param_1(p):
    '''block_param : IDENTIFIER'''
    p[0] = _node ('RequiredParameterNode', p, 1, 1, name=p[1])

def p_block_param_2(p):
    '''block_param : LABEL'''
    p[0] = _node ('RequiredKeywordParameterNode', p, 1, 1, name=p[1])

def p_block_param_3(p):
    '''block_param : '*' IDENTIFIER
                   | '*'
                   | '&' IDENTIFIER'''
    ntype = 'RestParameterNode' if p[1] == '*' else 'BlockParameterNode'
    name = p[2] if len (p) == 3 else None
    p[0] = _node (ntype, p, 1, len (p) - 1, name=name)

def p_block_param_4(p):
    '''block_param : '(' block_param_list ')' '''
    p[0] = _node ('MultiTargetNode', p, 1, 3, targets=p[2])

def p_block_locals_1(p):
    '''block_locals : IDENTIFIER'''
    p[0] = [_node ('BlockLocalVariableNode', p, 1, 1, name=p[1])]

def p_block_locals_2(p):
    '''block_locals : block_locals ',' IDENTIFIER'''
    p[0] = p[1] + [_node ('BlockLocalVariableNode', p, 3, 3, name=p[3])]
#-------------------------------------------------------------------------------
# strings

def p_strings_1(p):
    '''strings : STRING'''
    p[0] = _node ('StringNode', p, 1, 1, unescaped=p[1])

def p_strings_2(p):
    '''strings : DSTRING_BEG string_contents DSTRING_END'''
    parts = p[2]
    if all (part.type == 'StringNode' for part in parts):
        text = ''.join (part.unescaped for part in parts)
        p[0] = _node ('StringNode', p, 1, 3, unescaped=text)
    else:
        p[0] = _node ('InterpolatedStringNode', p, 1, 3, parts=parts)

def p_string_contents_1(p):
    '''string_contents : empty'''
    p[0] = []

def p_string_contents_2(p):
    '''string_contents : string_contents string_content'''
    p[0] = p[1] + [p[2]]

def p_string_content_1(p):
    '''string_content : STRING_CONTENT'''
    p[0] = _node ('StringNode', p, 1, 1, unescaped=p[1])

def p_string_content_2(p):
    '''string_content : INTERP_BEG compstmt INTERP_END'''
    p[0] = _node ('EmbeddedStatementsNode', p, 1, 3, statements=p[2])

def p_error(p):
    if p is None:
        raise CompileError ('unexpected end of input', -1, -1)
    value = p.value if type (p.value) is str else p.type
    raise CompileError (f"Syntax error at '{value}'", p.lexpos, p.lineno)

# -------------- RULES END ----------------
#-------------------------------------------------------------------------------
# Ruby only knows after the fact whether "foo" reads a local or calls a
# method: it is a local once an assignment to it has been seen in the
# current scope.

class _Scope:
    def __init__(self, parent=None):
        self.parent = parent
        self.names = set()

    def declare (self, name):
        if name is not None:
            self.names.add (name)

    def __contains__ (self, name):
        scope = self
        while scope is not None:
            if name in scope.names:
                return True
            scope = scope.parent
        return False

_declaring = {
    'LocalVariableWriteNode',
    'LocalVariableOperatorWriteNode',
    'LocalVariableOrWriteNode',
    'LocalVariableAndWriteNode',
    'LocalVariableTargetNode',
    'RequiredParameterNode',
    'OptionalParameterNode',
    'RestParameterNode',
    'RequiredKeywordParameterNode',
    'OptionalKeywordParameterNode',
    'KeywordRestParameterNode',
    'BlockParameterNode',
    'BlockLocalVariableNode',
}

_scope_owners = {'DefNode', 'ClassNode', 'ModuleNode'}
_block_owners = {'BlockNode', 'LambdaNode'}

_numbered_re = re.compile (r'_[1-9]$')

def _numbered_parameters (node):
    top = 0
    for c in node.children():
        if c.type in _scope_owners or c.type in _block_owners:
            continue
        if c.type == 'CallNode' and c.variable_call and \
            _numbered_re.match (c.name):
            top = max (top, int (c.name[1]))
        top = max (top, _numbered_parameters (c))
    return top

def _resolve_fields (node, scope):
    for f in node.fields:
        v = getattr (node, f)
        if type (v) is ParseNode:
            setattr (node, f, _resolve (v, scope))
        elif type (v) is list:
            setattr (node, f, [
                _resolve (n, scope) if type (n) is ParseNode else n for n in v
                ])

def _resolve (node, scope):
    t = node.type
    if t == 'CallNode' and node.variable_call and node.name in scope:
        return ParseNode(
            'LocalVariableReadNode', node.start, node.end, name=node.name
            )
    if t in _scope_owners:
        if t != 'DefNode':
            node.constant_path = _resolve (node.constant_path, scope)
            if t == 'ClassNode' and node.superclass is not None:
                node.superclass = _resolve (node.superclass, scope)
        inner = _Scope()
        for f in ('parameters', 'body'):
            v = getattr (node, f, None)
            if v is not None:
                setattr (node, f, _resolve (v, inner))
        return node
    if t in _block_owners:
        inner = _Scope (scope)
        if t == 'BlockNode' and node.parameters is None and \
            node.body is not None:
            count = _numbered_parameters (node.body)
            if count:
                node.parameters = ParseNode(
                    'NumberedParametersNode', node.start, node.start,
                    maximum=count
                    )
                for i in range (1, count + 1):
                    inner.declare (f'_{i}')
        _resolve_fields (node, inner)
        return node
    if t in _declaring:
        # "x = x" reads the new, still nil, local
        scope.declare (node.name)
    _resolve_fields (node, scope)
    return node
#-------------------------------------------------------------------------------
parser = yacc.yacc (debug=False, write_tables=False, errorlog=yacc.NullLogger())

def parse (source, debug=False):
    # returns the ProgramNode and the comments found while lexing
    lexer = RubyLexer()
    try:
        tree = parser.parse (source, lexer=lexer, debug=debug)
    except CompileError as ce:
        if ce.idx >= 0:
            raise
        raise CompileError (str (ce), len (source), lexer.lineno) from None
    return _resolve (tree, _Scope()), lexer.comments
