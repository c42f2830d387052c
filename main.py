# main.py
"""
Entry point: `uvicorn main:app --port 8080`
Fehlende Konfiguration bricht hier ab, bevor ein Request bedient wird.
"""
import logging, sys
from munich_rag.api import create_app

root = logging.getLogger()
if not root.handlers:
    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(h)
    root.setLevel(logging.INFO)

app = create_app()
