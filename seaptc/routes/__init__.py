"""
seaptc/routes/__init__.py
HTTP routers. Each is a thin adapter over the conference store.
"""
