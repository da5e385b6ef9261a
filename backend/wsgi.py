# backend/wsgi.py
from azwork import create_app

app = create_app()
