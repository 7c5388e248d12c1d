# app/datawarehouse/__init__.py
"""Access to the explored database: the SQLAlchemy DAO and the static schema registry."""
