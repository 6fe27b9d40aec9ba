# cartflow/api/__init__.py
# HTTP surface: routers plus the dependencies they share (deps.py)
