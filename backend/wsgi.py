# backend/wsgi.py
from pawnshop import create_app

app = create_app()
