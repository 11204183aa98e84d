# apigen/main.py
from __future__ import annotations
import logging

from apigen.app_factory import create_app
from apigen.db import get_settings
from entities.book import Book

settings = get_settings()
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("apigen.main")

app = create_app([Book], settings)
logger.info("Serving %d entities", len(app.state.entities))
