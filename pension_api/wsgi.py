# pension_api/wsgi.py
import os
from pension_api import create_app

app = create_app(os.getenv("PENSION_API_CONFIG"))
