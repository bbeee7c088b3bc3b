# backend/wsgi.py
from pricebook import create_app

app = create_app()
