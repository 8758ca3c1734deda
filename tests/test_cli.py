import json
import sys
import pytest
import rb2js

def run (monkeypatch, capsys, tmp_path, source, *args):
    path = tmp_path / 'input.rb'
    path.write_text (source)
    monkeypatch.setattr (sys, 'argv', ['rb2js', '-f', str (path)] + list (args))
    code = rb2js.main()
    return code, capsys.readouterr().out

def test_js (monkeypatch, capsys, tmp_path):
    code, out = run (monkeypatch, capsys, tmp_path, 'puts 1\n')
    assert code == 0
    assert out == 'console.log(1);\n'

def test_options (monkeypatch, capsys, tmp_path):
    code, out = run(
        monkeypatch, capsys, tmp_path, 'x = a == b\n', '--comparison', 'identity'
        )
    assert code == 0
    assert out == 'let x = (a === b);\n'

def test_filter (monkeypatch, capsys, tmp_path):
    code, out = run(
        monkeypatch, capsys, tmp_path, 'my_var = 1\n', '--filter', 'camelcase'
        )
    assert out == 'let myVar = 1;\n'

def test_method_table (monkeypatch, capsys, tmp_path):
    table = tmp_path / 'table.json'
    table.write_text (json.dumps ({'shout': {'to': 'yell', 'kind': 'method'}}))
    code, out = run(
        monkeypatch, capsys, tmp_path, 'x = 1\nx.shout\n', '-l', str (table)
        )
    assert code == 0
    assert out == 'let x = 1;\nx.yell();\n'

def test_invalid_method_table (monkeypatch, capsys, tmp_path):
    table = tmp_path / 'table.json'
    table.write_text (json.dumps ({'shout': {'to': 1, 'kind': 'method'}}))
    code, out = run (monkeypatch, capsys, tmp_path, 'x\n', '-l', str (table))
    assert code == 1
    assert out.startswith ('invalid method table')

def test_syntax_error (monkeypatch, capsys, tmp_path):
    code, out = run (monkeypatch, capsys, tmp_path, 'x = )\n')
    assert code == 1
    assert 'input.rb:1:5: ' in out
    assert out.splitlines()[-1] == '     ^'

def test_preprocessor_mode (monkeypatch, capsys, tmp_path):
    code, out = run(
        monkeypatch, capsys, tmp_path, '# eslevel: 2021\n# or: sometimes\n',
        '-m', 'preprocessor'
        )
    assert code == 0
    assert out == "{'eslevel': 2021}\nunknown: or: sometimes\n"

def test_ast_mode (monkeypatch, capsys, tmp_path):
    code, out = run (monkeypatch, capsys, tmp_path, '1 + 2\n', '-m', 'ast')
    assert code == 0
    assert out.splitlines()[0] == '(send'

@pytest.mark.parametrize ('mode', ['lexer', 'parser'])
def test_debug_modes (monkeypatch, capsys, tmp_path, mode):
    code, out = run (monkeypatch, capsys, tmp_path, 'x = 1\n', '-m', mode)
    assert code == 0
    assert out
