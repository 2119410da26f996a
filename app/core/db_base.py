# app/core/db_base.py
from sqlalchemy.orm import declarative_base

# Create base class shared by all models
Base = declarative_base()
