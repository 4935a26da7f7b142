# backend/wsgi.py
from pfand import create_app

app = create_app()
