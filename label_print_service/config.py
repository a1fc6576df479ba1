"""
Label Print Service Configuration
"""

import json
import os

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('LPS_PORT', 5110))
HOST = os.environ.get('LPS_HOST', '127.0.0.1')
DEBUG = os.environ.get('LPS_DEBUG', 'false').lower() == 'true'

# =============================================================================
# Bridge Configuration
# =============================================================================

# 'http' talks to the local bridge service, 'tcp' writes straight to port 9100
BRIDGE_KIND = os.environ.get('LPS_BRIDGE_KIND', 'http')
BRIDGE_URL = os.environ.get('LPS_BRIDGE_URL', 'http://127.0.0.1:17777')
BRIDGE_TIMEOUT = float(os.environ.get('LPS_BRIDGE_TIMEOUT', 5))

# Raw TCP printers: {"Front Counter": "192.168.0.100:9100", ...}
try:
    TCP_PRINTERS = json.loads(os.environ.get('LPS_TCP_PRINTERS', '{}'))
    if not isinstance(TCP_PRINTERS, dict):
        TCP_PRINTERS = {}
except ValueError:
    TCP_PRINTERS = {}

# ZPL/Network printer default port
RAW_PORT = 9100

# =============================================================================
# Delivery Defaults
# =============================================================================

RETRY_MAX_ATTEMPTS = int(os.environ.get('LPS_RETRY_MAX_ATTEMPTS', 3))
RETRY_BASE_SECONDS = float(os.environ.get('LPS_RETRY_BASE_SECONDS', 1.0))
RETRY_MAX_SECONDS = float(os.environ.get('LPS_RETRY_MAX_SECONDS', 30.0))
RETRY_FACTOR = float(os.environ.get('LPS_RETRY_FACTOR', 2.0))

# Batches larger than this go through the batch runner instead of a direct enqueue
DIRECT_PRINT_LIMIT = int(os.environ.get('LPS_DIRECT_PRINT_LIMIT', 10))

# Delivered jobs kept per queue for the status API
DELIVERED_HISTORY = 200

# =============================================================================
# Label Geometry (2" x 1" at 203 DPI)
# =============================================================================

DPI = 203
LABEL_WIDTH = 406
LABEL_HEIGHT = 203
LABEL_PADDING = 10

# Estimated glyph width as a fraction of the font height
CHAR_WIDTH_RATIO = 0.6
FONT_FLOOR = 8
FONT_CEILING = 60

# Zone 1 metadata box as a fraction of the inner width
METADATA_FRACTION = 0.35
# Barcode height relative to the tallest zone 1 text
BARCODE_HEIGHT_RATIO = 1.25
TITLE_MAX_LINES = 2
LINE_SPACING = 1.1

# =============================================================================
# Supported Device Formats
# =============================================================================

DEVICE_FORMATS = {
    'zpl': {
        'name': 'Zebra Programming Language',
        'dialect': 'zpl',
        'start': '^XA',
        'end': '^XZ',
        'printers': ['zebra', 'cab', 'rollo'],
    },
    'tspl': {
        'name': 'TSC Printer Language',
        'dialect': 'tspl',
        'start': 'SIZE',
        'end': 'PRINT',
        'printers': ['tsc', 'gainsha', 'gprinter'],
    },
}

DEFAULT_FORMAT = os.environ.get('LPS_DEFAULT_FORMAT', 'zpl')

# =============================================================================
# Storage & Logging
# =============================================================================

DATA_DIR = os.environ.get('LPS_DATA_DIR', os.path.expanduser('~/.label_print_service'))
LOG_DIR = os.environ.get('LPS_LOG_DIR', os.path.join(DATA_DIR, 'logs'))
LOG_LEVEL = os.environ.get('LPS_LOG_LEVEL', 'INFO').upper()
