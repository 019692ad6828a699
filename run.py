#!/usr/bin/env python3
"""
Run script for the VHouse AI conversation service
"""
import uvicorn

from vhouse_ai.config.settings import settings
from vhouse_ai.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
