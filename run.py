"""
Entry point:  uvicorn run:app
"""

from wms.app import create_app

app = create_app()
