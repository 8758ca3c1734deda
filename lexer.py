import re
import ply.lex as lex
from comments import Comment

class CompileError(Exception):
    def __init__(self, message, char_idx, line):
        super(CompileError, self).__init__(message)
        self.idx = char_idx
        self.line = line

# Ruby's lexer decides many token types from what came before (is "-1" an
# argument or a subtraction, does "do" bind to the command or to the last
# call, ...). The ply rules below produce raw tokens, "RubyLexer" wraps the
# ply lexer and refines the types from the token history.

reserved = {
    'and'      : 'AND',
    'begin'    : 'BEGIN',
    'break'    : 'BREAK',
    'case'     : 'CASE',
    'class'    : 'CLASS',
    'def'      : 'DEF',
    'defined?' : 'DEFINED',
    'do'       : 'DO',
    'else'     : 'ELSE',
    'elsif'    : 'ELSIF',
    'end'      : 'END',
    'ensure'   : 'ENSURE',
    'false'    : 'FALSE',
    'for'      : 'FOR',
    'if'       : 'IF',
    'in'       : 'IN',
    'module'   : 'MODULE',
    'next'     : 'NEXT',
    'nil'      : 'NIL',
    'not'      : 'NOT',
    'or'       : 'OR',
    'rescue'   : 'RESCUE',
    'return'   : 'RETURN',
    'self'     : 'SELF',
    'super'    : 'SUPER',
    'then'     : 'THEN',
    'true'     : 'TRUE',
    'unless'   : 'UNLESS',
    'until'    : 'UNTIL',
    'when'     : 'WHEN',
    'while'    : 'WHILE',
    'yield'    : 'YIELD',
}

operators = {
    '**'  : 'POW',
    '<=>' : 'CMP',
    '===' : 'EQQ',
    '=='  : 'EQ',
    '=~'  : 'MATCH',
    '!~'  : 'NMATCH',
    '!='  : 'NEQ',
    '<='  : 'LEQ',
    '>='  : 'GEQ',
    '<<'  : 'LSHFT',
    '>>'  : 'RSHFT',
    '&&'  : 'ANDOP',
    '||'  : 'OROP',
    '..'  : 'DOT2',
    '...' : 'DOT3',
    '::'  : 'COLON2',
    '->'  : 'LAMBDA',
    '=>'  : 'ASSOC',
    '&.'  : 'ANDDOT',
}

literals = '+-*/%=<>!&|^~?:,.;()[]{}'

states = (
    ('dstring', 'exclusive'),
    ('fname', 'exclusive'),
)

# token types after which the next token starts a new operand
VALUE_END = {
    'IDENTIFIER', 'CONSTANT', 'IVAR', 'CVAR', 'GVAR', 'INTEGER', 'FLOAT',
    'STRING', 'DSTRING_END', 'SYMBOL', 'SYMBOLS', 'WORDS', 'REGEXP', 'END',
    'SELF', 'NIL', 'TRUE', 'FALSE', ')', ']', '}',
}

# "return if x" is a modifier, "return -1" an argument
MODIFIER_AFTER = VALUE_END | {'RETURN', 'BREAK', 'NEXT', 'YIELD', 'SUPER'}

# a newline after these does not end the statement
CONTINUATION = {
    '+', '-', '*', '/', '%', '=', '<', '>', '!', '&', '|', '^', '~', '?', ':',
    ',', '.', '(', '[', '{', 'LPAREN_CALL', 'LBRACK_INDEX', 'LBRACE_BLOCK',
    'POW', 'CMP', 'EQQ', 'EQ', 'MATCH', 'NMATCH', 'NEQ', 'LEQ', 'GEQ',
    'LSHFT', 'RSHFT', 'ANDOP', 'OROP', 'COLON2', 'COLON3', 'LAMBDA', 'ASSOC',
    'ANDDOT', 'OP_ASGN', 'LABEL', 'AND', 'OR', 'NOT',
}

# "(" glued to these opens an argument list
CALLABLE = {
    'IDENTIFIER', 'CONSTANT', 'FNAME', 'SUPER', 'YIELD', 'DEFINED', 'LAMBDA',
}

# "{" after these opens a block, otherwise a hash
BLOCK_OWNERS = {'IDENTIFIER', 'FID', ')', 'LAMBDA'}

# keywords that may start a command argument ("puts nil")
ARG_KEYWORDS = {
    'nil', 'true', 'false', 'self', 'not', 'defined?', 'super', 'yield',
}

# keywords closed by "end"
BODY_KEYWORDS = {'DEF', 'CLASS', 'MODULE', 'BEGIN', 'CASE', 'FOR'}

ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', '0': '\0', 's': ' ', 'e': '\x1b',
    'a': '\a', 'b': '\b', 'f': '\f', 'v': '\v',
}

_escape_re = re.compile (
    r'\\(u\{[0-9a-fA-F ]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{1,2}|[\s\S])'
    )
_word_re = re.compile (r'[A-Za-z_]\w*[?!]?')
_leading_dot_re = re.compile (r'[ \t\r\n]*(?:\.(?!\.)|&\.)')
_block_re = re.compile (r'[ \t]*(\{|do\b)')
_comma_re = re.compile (r'[ \t]*,')
_assignment_re = re.compile (
    r'[ \t]*(?:=(?![=~>])|(?:\*\*|\|\||&&|<<|>>|[-+*/%|&^])=)'
    )

def unescape (text):
    def repl (m):
        esc = m.group (1)
        if esc[0] == 'u' and len (esc) > 1:
            digits = esc[1:].strip ('{}').split()
            return ''.join (chr (int (d, 16)) for d in digits)
        if esc[0] == 'x' and len (esc) > 1:
            return chr (int (esc[1:], 16))
        if esc == '\n':
            return '' # line continuation inside the literal
        return ESCAPES.get (esc, esc)
    return _escape_re.sub (repl, text)

def _single_quote_unescape (text):
    return re.sub (r"\\([\\'])", r'\1', text)

def _count_lines (t):
    t.lexer.lineno += t.value.count ('\n') if type (t.value) is str else 0
#-------------------------------------------------------------------------------
# "=begin" / "=end" blocks, only at the start of a line
def t_BLOCK_COMMENT(t):
    r'^=begin\b[\s\S]*?^=end\b[^\n]*'
    t.lexer.comments.append(
        Comment (t.value, t.lexpos, t.lexpos + len (t.value))
        )
    _count_lines (t)

def t_COMMENT(t):
    r'\#[^\n]*'
    t.lexer.comments.append(
        Comment (t.value, t.lexpos, t.lexpos + len (t.value))
        )

def t_CONTINUATION(t):
    r'\\\n'
    t.lexer.lineno += 1

def t_NEWLINE(t):
    r'\n'
    t.lexer.lineno += 1
    return t

def t_FLOAT(t):
    r'\d[\d_]*(?:\.\d[\d_]*(?:[eE][+-]?\d+)?|[eE][+-]?\d+)'
    t.value = float (t.value.replace ('_', ''))
    return t

def t_INTEGER(t):
    r'0[xX][0-9a-fA-F_]+|0[bB][01_]+|0[oO]?[0-7_]+|\d[\d_]*'
    text = t.value.replace ('_', '').lower()
    if text.startswith ('0x'):
        t.value = int (text[2:], 16)
    elif text.startswith ('0b'):
        t.value = int (text[2:], 2)
    elif text.startswith ('0o'):
        t.value = int (text[2:], 8)
    elif len (text) > 1 and text.startswith ('0'):
        t.value = int (text[1:], 8)
    else:
        t.value = int (text)
    return t

def t_CVAR(t):
    r'@@[A-Za-z_]\w*'
    return t

def t_IVAR(t):
    r'@[A-Za-z_]\w*'
    return t

def t_GVAR(t):
    r'\$(?:[A-Za-z_]\w*|[!@&~0-9])'
    return t

def _ternary_pending (lexer):
    return lexer.ternaries and lexer.ternaries[-1] == len (lexer.brackets)

# "key: value" in hashes, keyword arguments and keyword parameters
def t_LABEL(t):
    r'[A-Za-z_]\w*:(?!:)'
    if _ternary_pending (t.lexer) or t.lexer.last_type in ('.', 'ANDDOT'):
        # "cond ? a:b", give the colon back
        t.lexer.lexpos = t.lexpos + len (t.value) - 1
        t.value = t.value[:-1]
        t.type = _word_type (t)
        return t
    t.value = t.value[:-1]
    return t

def _word_type (t):
    if t.value[0].isupper():
        return 'CONSTANT'
    if t.lexer.last_type in ('.', 'ANDDOT'):
        return 'IDENTIFIER' # method names, "x.class"
    return reserved.get (t.value, 'IDENTIFIER')

def t_IDENTIFIER(t):
    r'[A-Za-z_]\w*(?:[?!](?![=~]))?'
    t.type = _word_type (t)
    if t.type == 'DEF':
        t.lexer.push_state ('fname')
    return t

def t_DSTRING_BEG(t):
    r'"'
    t.lexer.push_state ('dstring')
    return t

def t_STRING(t):
    r"'(?:[^'\\]|\\[\s\S])*'"
    _count_lines (t)
    t.value = _single_quote_unescape (t.value[1:-1])
    return t

def t_SYMBOL(t):
    r''':(?:"(?:[^"\\]|\\[\s\S])*"|[A-Za-z_]\w*(?:[?!]|=(?![=~>]))?|\[\]=?|<=>|===?|=~|!=|\*\*|[+\-]@|<<|>>|<=|>=|[+\-*/%<>!~^&|])'''
    value = t.value[1:]
    if value.startswith ('"'):
        value = unescape (value[1:-1])
    t.value = value
    return t

_percent_closers = {'[': ']', '(': ')', '{': '}', '<': '>'}

def _scan_delimited (t, start, opener):
    # index just past the closer matching "opener" at data[start]
    closer = _percent_closers.get (opener, opener)
    data = t.lexer.lexdata
    depth = 1
    i = start + 1
    while i < len (data):
        c = data[i]
        if c == '\\':
            i += 2
            continue
        if c == opener and closer != opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise CompileError ('unterminated literal', t.lexpos, t.lexer.lineno)

def _starts_operand (t):
    last = t.lexer.last_type
    return last not in VALUE_END

# %w[] %i[] %r{}
def t_PERCENT(t):
    r'%[wWiIr]?[\[({<|!/]?'
    data = t.lexer.lexdata
    if len (t.value) != 3 or not _starts_operand (t):
        # modulo operator or "%=", give the rest back
        t.lexer.lexpos = t.lexpos + 1
        if data.startswith ('=', t.lexpos + 1):
            t.lexer.lexpos += 1
            t.type = 'OP_ASGN'
            t.value = '%'
        else:
            t.type = '%'
            t.value = '%'
        return t
    kind = t.value[1]
    end = _scan_delimited (t, t.lexpos + 2, t.value[2])
    body = data[t.lexpos + 3:end - 1]
    if kind == 'r':
        flags = re.match (r'[a-z]*', data[end:]).group()
        end += len (flags)
        t.type = 'REGEXP'
        t.value = (body, flags)
    else:
        t.type = 'WORDS' if kind in 'wW' else 'SYMBOLS'
        t.value = body.split()
    t.lexer.lineno += data[t.lexpos:end].count ('\n')
    t.lexer.lexpos = end
    return t

# regular expression literal or division
def t_SLASH(t):
    r'/'
    data = t.lexer.lexdata
    if not _starts_operand (t):
        if data.startswith ('=', t.lexer.lexpos):
            t.lexer.lexpos += 1
            t.type = 'OP_ASGN'
        else:
            t.type = '/'
        return t
    end = _scan_delimited (t, t.lexpos, '/')
    flags = re.match (r'[a-z]*', data[end:]).group()
    t.type = 'REGEXP'
    t.value = (data[t.lexpos + 1:end - 1], flags)
    t.lexer.lineno += t.value[0].count ('\n')
    t.lexer.lexpos = end + len (flags)
    return t

def t_OPERATOR(t):
    r'\*\*=|<<=|>>=|&&=|\|\|=|[-+*%|&^]=|\.\.\.|<=>|===|\*\*|==|=~|!~|!=|<=|>=|<<|>>|&&|\|\||\.\.|::|->|=>|&\.|[-+*%=<>!&|^~?:,.;()\[\]{}]'
    value = t.value
    if len (value) > 1 and value.endswith ('=') and \
        value not in operators and value not in ('<=', '>='):
        t.type = 'OP_ASGN'
        t.value = value[:-1]
    elif value in operators:
        t.type = operators[value]
    else:
        t.type = value
    return t

t_ignore = ' \t\r'

def t_error(t):
    raise CompileError(
        f"Illegal character: '{t.value[0]}'", t.lexpos, t.lexer.lineno)
#-------------------------------------------------------------------------------
# double quoted strings, "#{}" switches back to INITIAL until the
# matching "}"

def t_dstring_INTERP_BEG(t):
    r'\#\{'
    t.lexer.push_state ('INITIAL')
    return t

def t_dstring_STRING_CONTENT(t):
    r'(?:[^"\\\#]|\\[\s\S]|\#(?!\{))+'
    _count_lines (t)
    t.value = unescape (t.value)
    return t

def t_dstring_DSTRING_END(t):
    r'"'
    t.lexer.pop_state()
    return t

t_dstring_ignore = ''

def t_dstring_error(t):
    raise CompileError ('unterminated string', t.lexpos, t.lexer.lineno)
#-------------------------------------------------------------------------------
# method name after "def"

def t_fname_SELF_DOT(t):
    r'self\.'
    return t

def t_fname_FNAME(t):
    r'[A-Za-z_]\w*(?:[?!]|=(?![=~>]))?|\[\]=?|<=>|===?|=~|!=|\*\*|[+\-]@|<<|>>|<=|>=|[+\-*/%<>!~^&|]'
    t.lexer.pop_state()
    return t

t_fname_ignore = ' \t'

def t_fname_error(t):
    raise CompileError ('method name expected', t.lexpos, t.lexer.lineno)
#-------------------------------------------------------------------------------
tokens = [
    'NEWLINE',
    'INTEGER',
    'FLOAT',
    'STRING',
    'DSTRING_BEG',
    'STRING_CONTENT',
    'INTERP_BEG',
    'INTERP_END',
    'DSTRING_END',
    'SYMBOL',
    'SYMBOLS',
    'WORDS',
    'REGEXP',
    'IDENTIFIER',
    'CONSTANT',
    'IVAR',
    'CVAR',
    'GVAR',
    'LABEL',
    'CMD',
    'FID',
    'FNAME',
    'SELF_DOT',
    'LPAREN_CALL',
    'LBRACK_INDEX',
    'LBRACE_BLOCK',
    'COLON3',
    'OP_ASGN',
    'DO_COND',
    'DO_BLOCK',
    'IF_MOD',
    'UNLESS_MOD',
    'WHILE_MOD',
    'UNTIL_MOD',
    'RESCUE_MOD',
] + list (operators.values()) + list (reserved.values())

# Build the lexer
lexer = lex.lex (reflags=re.VERBOSE | re.MULTILINE)
#-------------------------------------------------------------------------------
class RubyLexer:
    def __init__(self):
        self.lexer = lexer.clone()

    def input (self, source):
        lx = self.lexer
        lx.lexstatestack = []
        lx.begin ('INITIAL')
        lx.lineno = 1
        lx.last_type = None
        lx.brackets = []   # '(', '[', '{h', '{b', 'interp', 'kw'
        lx.ternaries = []  # bracket depth of each pending '?'
        lx.comments = []
        lx.locals = set()
        lx.input (source)
        self.source = source
        self.cmdarg = None   # depth at which a command waits for "do"
        self.cond = None     # depth of a while/until/for header
        self.declaring = False
        self.pipes = False
        self.after_block_open = False

    @property
    def comments (self):
        return self.lexer.comments

    @property
    def lineno (self):
        return self.lexer.lineno

    def token (self):
        while True:
            tok = self.lexer.token()
            if tok is None:
                return None
            tok.endpos = self.lexer.lexpos
            if self._classify (tok):
                self.lexer.last_type = tok.type
                return tok

    def __iter__ (self):
        while True:
            tok = self.token()
            if tok is None:
                return
            yield tok

    def _skip_newline (self, tok):
        lx = self.lexer
        if lx.last_type in (None, 'NEWLINE', ';') or \
            lx.last_type in CONTINUATION:
            return True
        if lx.brackets and lx.brackets[-1] in ('(', '[', '{h'):
            return True
        # a method chain continued by a leading dot
        return _leading_dot_re.match (lx.lexdata, tok.endpos) is not None

    def _statement_end (self):
        depth = len (self.lexer.brackets)
        if self.cmdarg is not None and self.cmdarg >= depth:
            self.cmdarg = None
        if self.cond is not None and self.cond >= depth:
            self.cond = None
        self.lexer.ternaries = [d for d in self.lexer.ternaries if d < depth]
        self.declaring = False

    def _adjacent (self, tok):
        data = self.lexer.lexdata
        return tok.lexpos > 0 and data[tok.lexpos - 1] not in ' \t\n'

    def _command_follows (self, tok):
        # "name arg": a space and something that starts an argument
        data = self.lexer.lexdata
        pos = tok.endpos
        if pos >= len (data) or data[pos] not in ' \t':
            return False
        while pos < len (data) and data[pos] in ' \t':
            pos += 1
        if pos >= len (data):
            return False
        c = data[pos]
        nxt = data[pos + 1] if pos + 1 < len (data) else ''
        if c.isalnum() or c in '_@$"\'':
            word = _word_re.match (data, pos)
            if word and word.group() in reserved:
                return word.group() in ARG_KEYWORDS
            return True
        if c == ':':
            return nxt == '"' or nxt.isalpha() or nxt == '_'
        if c == '-' and nxt == '>':
            return True
        if c in '[(':
            return True
        if c == '%':
            return nxt in 'wWiI'
        if c in '-+*&/!' and nxt not in ' \t\n=' and nxt != c:
            return True
        return False

    def _block_follows (self, tok):
        m = _block_re.match (self.lexer.lexdata, tok.endpos)
        if m is None:
            return False
        return m.group (1) == '{' or self.cmdarg is None

    def _identifier_type (self, tok):
        lx = self.lexer
        data = lx.lexdata
        if lx.last_type in ('.', 'ANDDOT'):
            return 'CMD' if self._command_follows (tok) else 'IDENTIFIER'
        if self.pipes or self.declaring or \
            _assignment_re.match (data, tok.endpos):
            lx.locals.add (tok.value)
        elif lx.last_type in (None, 'NEWLINE', ';') and \
            _comma_re.match (data, tok.endpos):
            lx.locals.add (tok.value) # "a, b = ..."
        if tok.value in lx.locals:
            return 'IDENTIFIER'
        if self._block_follows (tok):
            return 'FID'
        if self._command_follows (tok):
            return 'CMD'
        return 'IDENTIFIER'

    def _classify (self, tok):
        lx = self.lexer
        t = tok.type
        last = lx.last_type
        opens_block = False

        if t == 'NEWLINE':
            if self._skip_newline (tok):
                return False
            self._statement_end()
            return True
        elif t == ';':
            self._statement_end()
        elif t == 'IDENTIFIER':
            tok.type = self._identifier_type (tok)
            if tok.type == 'CMD' and self.cmdarg is None:
                self.cmdarg = len (lx.brackets)
        elif t in ('IF', 'UNLESS', 'WHILE', 'UNTIL', 'RESCUE'):
            if last in MODIFIER_AFTER:
                tok.type = t + '_MOD'
            elif t == 'RESCUE':
                self.declaring = True # "rescue Foo => e"
            else:
                lx.brackets.append ('kw')
                if t in ('WHILE', 'UNTIL'):
                    self.cond = len (lx.brackets)
        elif t in BODY_KEYWORDS:
            lx.brackets.append ('kw')
            if t == 'FOR':
                self.cond = len (lx.brackets)
                self.declaring = True
            elif t == 'DEF':
                self.declaring = True
        elif t == 'LABEL':
            if self.declaring or self.pipes:
                lx.locals.add (tok.value) # keyword parameter
        elif t == 'IN':
            self.declaring = False
        elif t == 'DO':
            depth = len (lx.brackets)
            if self.cond == depth:
                tok.type = 'DO_COND'
                self.cond = None
            else:
                if self.cmdarg == depth:
                    tok.type = 'DO_BLOCK'
                    self.cmdarg = None
                lx.brackets.append ('kw')
                opens_block = True
        elif t == 'END':
            if lx.brackets and lx.brackets[-1] == 'kw':
                lx.brackets.pop()
        elif t == '(':
            if last in CALLABLE and self._adjacent (tok):
                tok.type = 'LPAREN_CALL'
            lx.brackets.append ('(')
        elif t == '[':
            if last in VALUE_END:
                tok.type = 'LBRACK_INDEX'
            lx.brackets.append ('[')
        elif t == '{':
            if last in BLOCK_OWNERS:
                tok.type = 'LBRACE_BLOCK'
                lx.brackets.append ('{b')
                opens_block = True
            else:
                lx.brackets.append ('{h')
        elif t in (')', ']'):
            if lx.brackets and lx.brackets[-1] in ('(', '['):
                lx.brackets.pop()
            if t == ')' and self.declaring and last != ',':
                self.declaring = False # end of "def name(...)"
        elif t == '}':
            top = lx.brackets.pop() if lx.brackets else None
            if top == 'interp':
                tok.type = 'INTERP_END'
                lx.pop_state()
        elif t == 'INTERP_BEG':
            lx.brackets.append ('interp')
        elif t == 'COLON2':
            if not (last in VALUE_END and self._adjacent (tok)):
                tok.type = 'COLON3'
        elif t == '|':
            if self.after_block_open:
                self.pipes = True
            elif self.pipes:
                self.pipes = False
        elif t == '?':
            lx.ternaries.append (len (lx.brackets))
        elif t == ':':
            if _ternary_pending (lx):
                lx.ternaries.pop()

        self.after_block_open = opens_block
        return True

def tokenize (source):
    lx = RubyLexer()
    lx.input (source)
    return list (lx)
