import pytest
from lexer import tokenize, CompileError
from parser import parse
from comments import Comment

def test_assignment_tokens():
    assert [t.value for t in tokenize ('x = 1')] == ['x', '=', 1]
    assert tokenize ('x = 1')[0].type == 'IDENTIFIER'

def test_command_call_token():
    assert tokenize ('puts 1')[0].type == 'CMD'

@pytest.mark.parametrize ('source, value', [
    ('0x1f', 31),
    ('0b101', 5),
    ('1_000', 1000),
    ('017', 15),
    ])
def test_integer_literals (source, value):
    assert tokenize (source)[0].value == value

def test_ivar_keeps_sigil():
    assert tokenize ('@a')[0].value == '@a'

def test_program_and_comments():
    source = 'x = 1 # note\n'
    tree, comments = parse (source)
    assert tree.type == 'ProgramNode'
    assert comments == [Comment ('# note', 6, 12)]

def test_block_comment():
    source = '=begin\nhello\n=end\nx = 1\n'
    _, comments = parse (source)
    assert len (comments) == 1
    assert comments[0].text.startswith ('=begin')

def test_syntax_error_position():
    with pytest.raises (CompileError) as ce:
        parse ('x = )')
    assert ce.value.idx == 4

def test_unexpected_end_of_input():
    source = 'x = '
    with pytest.raises (CompileError) as ce:
        parse (source)
    assert ce.value.idx == len (source)

def test_grammar_has_no_reduce_reduce_conflicts():
    import io
    import ply.yacc as yacc
    import parser as ruby_parser
    log = io.StringIO()
    yacc.yacc(
        module=ruby_parser,
        debug=True,
        debuglog=yacc.NullLogger(),
        errorlog=yacc.PlyLogger (log),
        write_tables=False,
        )
    assert 'reduce/reduce' not in log.getvalue()

@pytest.mark.parametrize ('source', [
    'if a\n  b\nend\n',
    'unless a\n  b\nend\n',
    'if a then b end\n',
    'if a; b; end\n',
    'while a\n  b\nend\n',
    'case x\nwhen 1\n  a\nend\n',
    'y = foo\n',
    'a = b.c\n',
    'x = 1\nx.size\n',
    'begin\n  a\nrescue A, B => e\n  b\nend\n',
    ])
def test_statements_ending_in_a_name (source):
    tree, _ = parse (source)
    assert tree.type == 'ProgramNode'
