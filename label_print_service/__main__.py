"""
Label Print Service - Entry Point

Run:
    python -m label_print_service

Or with environment variables:
    LPS_PORT=5200 LPS_BRIDGE_URL=http://127.0.0.1:17777 python -m label_print_service
"""

import logging

from .app import create_app
from .config import PORT, HOST, DEBUG, BRIDGE_KIND, BRIDGE_URL
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def main():
    """Start the Label Print Service."""
    setup_logging()

    app = create_app()
    service = app.extensions['print_service']

    logger.info("Label Print Service starting on http://%s:%s", HOST, PORT)
    if BRIDGE_KIND == 'http':
        logger.info("Print bridge: %s", BRIDGE_URL)
    else:
        logger.info("Print bridge: direct %s", BRIDGE_KIND)

    try:
        app.run(host=HOST, port=PORT, debug=DEBUG, threaded=True, use_reloader=False)
    finally:
        service.close()


if __name__ == '__main__':
    main()
