# backend/wsgi.py
from posapp import create_app

app = create_app()
