#!/usr/bin/env python
"""
Label Print Service - Standalone Entry Point

Run directly:
    python main.py

Or with environment variables:
    LPS_PORT=5200 python main.py
"""

from label_print_service.__main__ import main


if __name__ == '__main__':
    main()
