import pytest
from generator import convert, Options

def test_greet():
    assert convert ('def greet(name); puts name; end') == \
        'function greet(name) {\n  return console.log(name);\n}'

@pytest.mark.parametrize ('source, expected', [
    ('42', '42;'),
    ('"hello"', '"hello";'),
    ('nil', 'null;'),
    ])
def test_literals (source, expected):
    assert convert (source) == expected

def test_locals():
    assert convert ('x = 1\nx += 2\n') == 'let x = 1;\nx += 2;'

def test_interpolation():
    assert convert ('x = 1\n"a#{x}c"\n') == 'let x = 1;\n`a${x}c`;'

@pytest.mark.parametrize ('comparison, expected', [
    ('equality', 'if (a == b) {\n  c;\n}'),
    ('identity', 'if (a === b) {\n  c;\n}'),
    ])
def test_condition (comparison, expected):
    source = 'if a == b\n  c\nend\n'
    assert convert (source, Options (comparison=comparison)) == expected

def test_else_if_chain():
    source = 'if a\n  b\nelsif c\n  d\nelse\n  e\nend\n'
    assert convert (source) == \
        'if (a) {\n  b;\n} else if (c) {\n  d;\n} else {\n  e;\n}'

def test_while_loop():
    source = 'x = 10\nwhile x > 0\n  x -= 1\nend\n'
    assert convert (source) == \
        'let x = 10;\n\nwhile (x > 0) {\n  x -= 1;\n}'
    assert convert (source, Options (respace=False)) == \
        'let x = 10;\nwhile (x > 0) {\n  x -= 1;\n}'

def test_property_compound_assignment():
    assert convert ('self.p ||= 1') == 'this.p = this.p || 1;'
    assert convert ('self.p ||= 1', Options (eslevel=2021)) == 'this.p ||= 1;'

def test_each_callback():
    assert convert ('[1, 2].each { |v| puts v }') == \
        '[1, 2].forEach((v) => console.log(v));'

def test_times_loop():
    assert convert ('3.times { |i| puts i }') == \
        'for (let i = 0; i < 3; i++) {\n  console.log(i);\n}'

def test_method_rewrites():
    assert convert ('a = []\na.size\n') == 'let a = [];\na.length;'
    assert convert ('s = "x"\ns.upcase\n') == 'let s = "x";\ns.toUpperCase();'

def test_swap():
    assert convert ('a, b = b, a') == 'let [a, b] = [b, a];'

def test_case_switch():
    source = (
        'case x\n'
        'when 1\n'
        '  a\n'
        'when 2, 3\n'
        '  b\n'
        'else\n'
        '  c\n'
        'end\n'
        )
    assert convert (source) == (
        'switch (x) {\n'
        'case 1:\n'
        '  a;\n'
        '  break;\n'
        'case 2:\n'
        'case 3:\n'
        '  b;\n'
        '  break;\n'
        'default:\n'
        '  c;\n'
        '}'
        )

def test_rescue():
    source = 'begin\n  a\nrescue => e\n  b\nend\n'
    assert convert (source) == 'try {\n  a;\n} catch (e) {\n  b;\n}'

CLASS = '''\
class Foo
  def initialize(x)
    @x = x
  end

  def x
    @x
  end
end
'''

def test_class_underscored_fields():
    assert convert (CLASS) == (
        'class Foo {\n'
        '  constructor(x) {\n'
        '    this._x = x;\n'
        '  }\n'
        '\n'
        '  get x() {\n'
        '    return this._x;\n'
        '  }\n'
        '}'
        )

def test_class_private_fields():
    assert convert (CLASS, Options (eslevel=2022)) == (
        'class Foo {\n'
        '  #x;\n'
        '\n'
        '  constructor(x) {\n'
        '    this.#x = x;\n'
        '  }\n'
        '\n'
        '  get x() {\n'
        '    return this.#x;\n'
        '  }\n'
        '}'
        )

def test_module():
    source = 'module M\n  def self.hi\n    1\n  end\nend\n'
    assert convert (source) == \
        'const M = {\n  get hi() {\n    return 1;\n  }\n}'

def test_comments_carried_over():
    assert convert ('# hello\nx = 1\n') == '// hello\nlet x = 1;'

def test_magic_comments():
    source = '# ruby2js: preset\nx = a == b\n'
    assert convert (source) == '// ruby2js: preset\nlet x = (a === b);'

def test_camelcase_filter():
    options = Options (filters=['camelcase'])
    assert convert ('first_name = 1', options) == 'let firstName = 1;'

def test_functions_filter():
    options = Options (filters=['functions'])
    assert convert ('x = 1\nx.abs\n', options) == 'let x = 1;\nMath.abs(x);'

@pytest.mark.parametrize ('source, expected', [
    ('if a\n  b\nend\n', 'if (a) {\n  b;\n}'),
    ('if a then b end\n', 'if (a) {\n  b;\n}'),
    ('unless a\n  b\nend\n', 'if (!a) {\n  b;\n}'),
    ('while a\n  b\nend\n', 'while (a) {\n  b;\n}'),
    ('y = foo\n', 'let y = foo;'),
    ('a = b.c\n', 'let a = b.c;'),
    ('x = [1]\nx.size\n', 'let x = [1];\nx.length;'),
    ])
def test_names_ending_a_line (source, expected):
    assert convert (source) == expected

def test_case_on_a_name():
    source = 'case x\nwhen 1\n  a\nend\n'
    assert convert (source) == 'switch (x) {\ncase 1:\n  a;\n  break;\n}'

def test_comment_inside_an_expression():
    assert convert ('x = [\n  # note\n  1,\n]\n') == '// note\nlet x = [1];'
