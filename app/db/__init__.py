# app/db/__init__.py
