"""
Entry point for PharmaLens backend.
Run with: python wsgi.py
"""

import os

from pharmalens.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="127.0.0.1", port=int(os.environ.get("PORT", "3000")), debug=app.config.get("DEBUG", False))
