"""
Entry point: `python main.py` or `uvicorn main:app`.
"""

import uvicorn

from config.logger import setup_logging

setup_logging()

from app import create_app  # noqa: E402
from config.settings import HOST, PORT, PRODUCTION  # noqa: E402

app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host=HOST, port=PORT, reload=not PRODUCTION, log_config=None)
