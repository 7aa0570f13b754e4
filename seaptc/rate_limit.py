"""
seaptc/rate_limit.py
Shared rate limiter, attached to the app and used by route decorators.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
