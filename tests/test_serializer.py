import pytest
from serializer import Serializer, Line

def _indents (lines):
    s = Serializer (lines)
    s.reindent()
    return [l.indent for l in s.lines]

@pytest.mark.parametrize ('lines, expected', [
    (['{', 'content', '}'], [0, 2, 0]),
    (['{', '{', 'inner', '}', '}'], [0, 2, 4, 2, 0]),
    (['f(', 'a,', 'b', ')'], [0, 2, 2, 0]),
    (['} else {', 'x', '}'], [0, 2, 0]),
    ])
def test_reindent (lines, expected):
    assert _indents (lines) == expected

def test_respace_before_a_block():
    s = Serializer (['x()', 'if (true) {', 'a()', '}'])
    assert s.render() == 'x()\n\nif (true) {\n  a()\n}'

def test_respace_after_a_block():
    s = Serializer (['if (a) {', 'b()', '}', 'c()'])
    assert s.render() == 'if (a) {\n  b()\n}\n\nc()'

def test_respace_keeps_block_runs_together():
    s = Serializer (['f() {', 'a();', 'b();', '}'])
    assert s.render() == 'f() {\n  a();\n  b();\n}'

def test_respace_before_comments():
    s = Serializer (['a();', '// note', 'b();'])
    assert s.render() == 'a();\n\n// note\nb();'

def test_comment_right_after_an_opening_brace():
    s = Serializer (['if (a) {', '// note', 'b()', '}'])
    assert s.render() == 'if (a) {\n  // note\n  b()\n}'

def test_respace_is_idempotent():
    s = Serializer ([
        'x()', 'if (true) {', 'a()', '}', 'y()', '// done', 'while (z) {',
        'w()', '}',
        ])
    s.respace()
    once = [str (l) for l in s.lines]
    s.respace()
    assert [str (l) for l in s.lines] == once

def test_no_respace():
    s = Serializer (['x()', 'if (true) {', 'a()', '}'])
    assert s.render (respace=False) == 'x()\nif (true) {\n  a()\n}'

def test_switch_labels_outdented():
    s = Serializer()
    s.puts ('switch (x) {')
    s.put ('case ')
    s.put ('1')
    s.puts (':')
    for text in ('a();', 'break;', '}'):
        s.puts (text)
    s.close()
    assert s.render() == 'switch (x) {\ncase 1:\n  a();\n  break;\n}'

def test_put_and_location():
    s = Serializer()
    s.put ('a')
    s.put ('b')
    assert s.output_location() == (0, 2)
    s.puts (';')
    assert s.output_location() == (1, 0)
    s.put ('c')
    assert [''.join (l) for l in s.lines] == ['ab;', 'c']

def test_put_splits_newlines():
    s = Serializer()
    s.put ('a\nb')
    assert [''.join (l) for l in s.lines] == ['a', 'b']

def test_insert_line_and_token():
    s = Serializer()
    s.puts ('x = 1;')
    s.put ('y')
    s.insert ((0, 0), 'let x;\n')
    s.insert ((2, 0), 'z')
    s.insert ((2, 1), '2')
    assert [''.join (l) for l in s.lines] == ['let x;', 'x = 1;', 'z2', 'y']

def test_tokens_remember_their_node():
    s = Serializer()
    s.node = 'marker'
    s.put ('x')
    assert s.lines[0][0].node == 'marker'

def test_empty_line():
    line = Line()
    assert line.is_empty
    assert str (line) == ''
    assert Line ('// hi').is_comment
