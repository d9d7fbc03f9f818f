from importlib import import_module

modules = [
    'auth',
    'users',
    'text_entries',
    'history',
    'files',
    'progress',
    'glossary',
    'audit',
]

for m in modules:
    import_module(f'.{m}', __name__)

__all__ = modules
