# app/db/base.py
from sqlalchemy.orm import DeclarativeBase

# Single Declarative Base used by ALL models.
# Model modules are imported in app/db/model_registry.py, not here.
class Base(DeclarativeBase):
    pass
