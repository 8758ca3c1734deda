from preprocessor import read_magic_comments, PRESET

def test_settings():
    source = '# eslevel: 2021\n# filters: camelcase, functions\nx = 1\n'
    assert read_magic_comments (source) == (
        {'eslevel': 2021, 'filters': ['camelcase', 'functions']}, []
        )

def test_preset():
    settings, unknown = read_magic_comments ('# ruby2js: preset\n')
    assert unknown == []
    assert settings['eslevel'] == PRESET['eslevel']
    assert settings['comparison'] == 'identity'
    assert settings['or_'] == 'nullish'
    assert settings['filters'] == ['functions']

def test_preset_keeps_explicit_filters():
    source = '# filters: camelcase\n# ruby2js: preset\n'
    settings, _ = read_magic_comments (source)
    assert settings['filters'] == ['camelcase', 'functions']

def test_choices():
    source = '# comparison: identity\n# or: nullish\n# underscored_private: false\n'
    assert read_magic_comments (source) == (
        {'comparison': 'identity', 'or_': 'nullish', 'underscored_private': False},
        [],
        )

def test_unknown_values():
    source = '# ruby2js: turbo\n# comparison: fuzzy\n# eslevel: new\n'
    settings, unknown = read_magic_comments (source)
    assert settings == {}
    assert unknown == ['turbo', 'comparison: fuzzy', 'eslevel: new']

def test_stops_at_code():
    source = '\n# frozen_string_literal: true\nx = 1\n# eslevel: 2021\n'
    assert read_magic_comments (source) == ({}, [])

def test_preset_before_code():
    settings, unknown = read_magic_comments ('# ruby2js: preset\nx = 1\n')
    assert unknown == []
    assert settings['eslevel'] == 2022
    assert settings['underscored_private'] is True
