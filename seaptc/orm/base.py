"""
seaptc/orm/base.py
Base model for all ORM models
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Every record lives under this entity group. Versioned reads are scoped to it.
CONFERENCE_GROUP_ID = 1
