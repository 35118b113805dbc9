"""
Root pytest configuration for the Django project.

pytest-django reads DJANGO_SETTINGS_MODULE from pyproject.toml and the
app/ directory is put on sys.path through the pythonpath option. Shared
user fixtures are loaded for every app from authentication.tests.fixtures;
app-specific fixtures live in each app's tests/conftest.py.
"""

pytest_plugins = ["authentication.tests.fixtures"]
