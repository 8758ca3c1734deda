# Line oriented output buffer. The generator appends tokens, then the
# buffer is reindented from bracket nesting and blank lines are inserted
# around indented blocks and comments before rendering.

INDENT = 2

class Token(str):
    # a text fragment, remembers the node that produced it
    def __new__ (cls, text, node=None):
        tok = super(Token, cls).__new__ (cls, '' if text is None else text)
        tok.node = node
        return tok
#-------------------------------------------------------------------------------
class Line(list):
    def __init__(self, *tokens):
        super(Line, self).__init__(
            t if type (t) is Token else Token (t) for t in tokens
            )
        self.indent = 0

    def first_token (self):
        for t in self:
            if t != '':
                return t
        return None

    def last_token (self):
        for t in reversed (self):
            if t != '':
                return t
        return None

    @property
    def is_empty (self):
        return self.first_token() is None

    @property
    def is_comment (self):
        first = self.first_token()
        return first is not None and first.startswith ('//')

    def __str__ (self):
        if self.is_empty:
            return ''
        # switch labels sit one level out from the statements they select
        if len (self) and self[0] in ('case ', 'default:'):
            return ' ' * max (0, self.indent - INDENT) + ''.join (self)
        return ' ' * self.indent + ''.join (self)
#-------------------------------------------------------------------------------
class Serializer:
    def __init__(self, lines=None, indent=INDENT):
        self.indent_unit = indent
        self.node = None # node currently being generated, tags tokens
        if lines:
            self.lines = [Line (text) for text in lines]
        else:
            self.lines = [Line()]
        self.line = self.lines[-1]

    def _token (self, text):
        return Token (text, self.node)

    # add a single token to the current line
    def put (self, text):
        if '\n' not in text:
            self.line.append (self._token (text))
            return
        parts = text.split ('\n')
        self.line.append (self._token (parts[0]))
        for part in parts[1:]:
            self.lines.append (Line (self._token (part)))
        self.line = self.lines[-1]

    # add a single token, then advance to the next line
    def puts (self, text):
        self.put (text)
        self.line = Line()
        self.lines.append (self.line)

    # current location: (line index, token index)
    def output_location (self):
        return (len (self.lines) - 1, len (self.line))

    def insert (self, mark, text):
        lineno, tokno = mark
        if tokno == 0:
            self.lines.insert (lineno, Line (self._token (text.rstrip ('\n'))))
        else:
            self.lines[lineno].insert (tokno, self._token (text))

    def close (self):
        # the last statement leaves an empty line behind
        while len (self.lines) > 1 and self.lines[-1].is_empty:
            self.lines.pop()
        self.line = self.lines[-1]

    def reindent (self):
        depth = 0
        for line in self.lines:
            first = line.first_token()
            if first is None:
                line.indent = depth
                continue
            last = line.last_token()
            if first[0] in ')}]':
                depth = max (0, depth - self.indent_unit)
            line.indent = depth
            if last[-1] in '({[':
                depth += self.indent_unit

    def respace (self):
        self.reindent()
        lines = self.lines
        # bottom up, insertions never shift the lines still to visit
        for i in range (len (lines) - 3, -1, -1):
            a, b, c = lines[i], lines[i + 1], lines[i + 2]
            if a.is_empty or b.is_empty:
                continue
            if b.is_comment and not a.is_comment and a.indent == b.indent:
                # before a comment
                lines.insert (i + 1, self._blank (a))
            elif c.is_empty:
                continue
            elif a.indent == b.indent and b.indent < c.indent and \
                not a.is_comment:
                # start of an indented block
                lines.insert (i + 1, self._blank (a))
            elif a.indent > b.indent and b.indent == c.indent:
                # end of an indented block
                lines.insert (i + 2, self._blank (b))

    def _blank (self, after):
        line = Line()
        line.indent = after.indent
        return line

    def render (self, respace=True):
        if respace:
            self.respace()
        else:
            self.reindent()
        return '\n'.join (str (line) for line in self.lines)
