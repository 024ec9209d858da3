"""WSGI entry point for Gunicorn (gunicorn wsgi:app)."""
import os

from fabquote import create_app

# FABQUOTE_CONFIG selects the config class, e.g. config.TestConfig
app = create_app(os.getenv('FABQUOTE_CONFIG', 'config.Config'))

if __name__ == "__main__":
    app.run(port=int(os.getenv('PORT', '5000')))
