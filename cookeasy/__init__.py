# cookeasy/__init__.py
