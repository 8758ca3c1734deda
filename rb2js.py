#!/usr/bin/env python3
import sys
import argparse
import fileinput
import jsonschema
from lexer import tokenize, CompileError
from parser import parse
from node import UnsupportedConstruct
from generator import options_for, to_ast, generate
from preprocessor import read_magic_comments

def run_lexer(program):
    for tok in tokenize (program):
        print (tok)

def print_compile_error (program, filename, ce):
    idx = min (max (ce.idx, 0), len (program))
    lstart = program.rfind ('\n', 0, idx) + 1
    lend = program.find ('\n', idx)
    lend = lend if lend >= 0 else len (program)
    pos = idx - lstart + 1
    lnum = program[:idx].count ('\n') + 1
    print (f'{filename}:{lnum}:{pos}: {ce}')
    print (' ' + program[lstart:lend])
    print (f'{" " * pos}^')

def main():
    p = argparse.ArgumentParser (description="Ruby to JavaScript converter")

    p.add_argument ("-f", "--file", help="file to convert, otherwise stdin")
    p.add_argument(
        "-m",
        "--mode",
        choices=['lexer', 'parser', 'ast', 'js', 'preprocessor'],
        default='js',
        help='output mode'
        )
    p.add_argument(
        "-d",
        "--debug",
        default=False,
        action='store_true',
        help='passing debug to PLY'
        )
    p.add_argument(
        "-l",
        "--method-table",
        action='append',
        default=[],
        help="json file containing method rewrites, see METHOD_TABLE_SCHEMA in generator.py. This parameter can be repeated. The dictionaries will be merged in that case, giving more preference to the last occurences in case of key collisions."
        )
    p.add_argument(
        "--eslevel",
        type=int,
        default=None,
        help='JavaScript feature level, e.g. 2020 (default) or 2022'
        )
    p.add_argument(
        "--comparison",
        choices=['equality', 'identity'],
        default=None,
        help='"==" renders as "==" (equality) or as "===" (identity)'
        )
    p.add_argument(
        "--or",
        dest='or_',
        choices=['logical', 'nullish'],
        default=None,
        help='"||" renders as "||" (logical) or as "??" (nullish)'
        )
    p.add_argument(
        "--underscored-private",
        default=None,
        action='store_true',
        help='instance variables as "this._x" even when "#x" fields exist'
        )
    p.add_argument(
        "--no-respace",
        dest='respace',
        default=None,
        action='store_false',
        help='do not insert blank lines around blocks and comments'
        )
    p.add_argument(
        "--filter",
        action='append',
        default=None,
        help='AST filter to apply: camelcase, functions. This parameter can be repeated.'
        )

    args = p.parse_args()
    if args.file is not None:
        with open (args.file, 'r') as file:
            program = file.read()
        filename = args.file
    else:
        # '-' is required, so stdin parses no arguments
        program = ''.join (line for line in fileinput.input (files='-'))
        filename = 'stdin'

    if args.mode == 'preprocessor':
        settings, unknown = read_magic_comments (program)
        print (settings)
        for word in unknown:
            print (f'unknown: {word}')
        return 0

    if args.mode == 'lexer':
        run_lexer (program)
        return 0

    overrides = {}
    for key in ('eslevel', 'comparison', 'or_', 'underscored_private',
        'respace'):
        value = getattr (args, key)
        if value is not None:
            overrides[key] = value
    if args.filter is not None:
        overrides['filters'] = args.filter
    overrides['method_table_files'] = args.method_table

    try:
        options = options_for (program, **overrides)
    except jsonschema.ValidationError as e:
        print (f'invalid method table: {e.message}')
        return 1

    try:
        if args.mode == 'parser':
            tree, _ = parse (program, debug=args.debug)
            print (tree)
            return 0
        ast, comments = to_ast (program, options, args.debug)
    except CompileError as ce:
        print_compile_error (program, filename, ce)
        return 1
    except UnsupportedConstruct as uc:
        print (f'{filename}: {uc}')
        return 2

    if args.mode == 'ast':
        print (ast)
    else:
        print (generate (ast, options, comments))
    return 0

if __name__ == "__main__":
    sys.exit (main())
