# config/settings/__init__.py
"""
Settings module initialization.
Loads production settings when DJANGO_ENV=production, development otherwise.
"""
import environ

env = environ.Env(DJANGO_ENV=(str, 'development'))

if env('DJANGO_ENV') == 'production':
    from .production import *
else:
    from .development import *
