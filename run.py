#!/usr/bin/env python3
"""
Roulette Group Strategy Optimizer - Entry Point
Start the Flask + SocketIO server.
"""

import os
import sys

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import HOST, PORT, DEBUG, USERDATA_DIR

os.makedirs(USERDATA_DIR, exist_ok=True)

from app import create_app, socketio

app = create_app()

if __name__ == '__main__':
    print("=" * 60)
    print("  Roulette Group Strategy Optimizer v1.0")
    print("=" * 60)
    print(f"  Server:    http://localhost:{PORT}")
    print(f"  Data dir:  {USERDATA_DIR}")
    print(f"  Debug:     {DEBUG}")
    print("=" * 60)
    print()

    socketio.run(app, host=HOST, port=PORT, debug=DEBUG, use_reloader=False)
