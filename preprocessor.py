import re

# Settings read from the comments heading a file, before any code:
#
#   # ruby2js: preset
#   # eslevel: 2021
#   # filters: camelcase, functions
#   # comparison: identity
#   # or: nullish
#   # underscored_private: true

PRESET = {
    'eslevel': 2022,
    'comparison': 'identity',
    'or_': 'nullish',
    'underscored_private': True,
    'filters': ['functions'],
}

_MAGIC = re.compile (r'^#\s*([A-Za-z0-9_]+)\s*:\s*(.*?)\s*$')
_CHOICES = {
    'comparison': ('comparison', ('equality', 'identity')),
    'or': ('or_', ('logical', 'nullish')),
}

def _words (value):
    return [w for w in re.split (r'[\s,]+', value) if w]

def _add_filters (settings, names):
    filters = settings.setdefault ('filters', [])
    for name in names:
        if name not in filters:
            filters.append (name)

def read_magic_comments (source):
    # returns the settings found and the words that were not understood
    settings = {}
    unknown = []
    for line in source.splitlines():
        stripline = line.strip()
        if stripline == '':
            continue
        if not stripline.startswith ('#'):
            break # code started
        m = _MAGIC.match (stripline)
        if m is None:
            continue
        key, value = m.groups()
        if key == 'ruby2js':
            for word in _words (value):
                if word == 'preset':
                    preset = dict (PRESET)
                    _add_filters (settings, preset.pop ('filters'))
                    settings.update (preset)
                else:
                    unknown.append (word)
        elif key == 'eslevel':
            if value.isdigit():
                settings['eslevel'] = int (value)
            else:
                unknown.append (f'eslevel: {value}')
        elif key == 'filters':
            _add_filters (settings, _words (value))
        elif key in _CHOICES:
            option, choices = _CHOICES[key]
            if value in choices:
                settings[option] = value
            else:
                unknown.append (f'{key}: {value}')
        elif key == 'underscored_private':
            if value in ('true', 'false'):
                settings['underscored_private'] = value == 'true'
            else:
                unknown.append (f'{key}: {value}')
        # anything else is an ordinary comment ("encoding:", "frozen_...")
    return settings, unknown
