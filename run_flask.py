#!/usr/bin/env python3
"""Flask application entry point for the order intake API."""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from app import create_app

app = create_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 8000))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    print("Order intake API starting...")
    print(f"   Port: {port}")
    print(f"   Debug: {debug}")
    print("   API Endpoints:")
    print("      - POST   /api/wizard")
    print("      - GET    /api/wizard/<session_id>")
    print("      - POST   /api/wizard/<session_id>/advance")
    print("      - POST   /api/wizard/<session_id>/retreat")
    print("      - DELETE /api/wizard/<session_id>")
    print("      - GET    /api/catalog/items")
    print("      - GET    /api/catalog/resolve")
    print("      - GET    /health")
    print()

    app.run(
        host='0.0.0.0',
        port=port,
        debug=debug,
        threaded=True,
    )
