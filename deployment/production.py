#!/usr/bin/env python3
"""
Production deployment for the TeeGetha proxy.

Builds the WSGI application with production settings and serves it
with waitress.
"""

import os
import sys
from pathlib import Path
from typing import List


def create_production_app():
    """Create production Flask application with proper configuration."""
    # Set production environment
    os.environ['FLASK_ENV'] = 'production'

    # Import after setting environment
    from teegetha import create_app

    overrides = {
        'DEBUG': False,
        'TESTING': False,
        'LOG_FILE': os.environ.get('LOG_FILE', '/var/log/teegetha/app.log'),
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO'),
    }
    if os.environ.get('SECRET_KEY'):
        overrides['SECRET_KEY'] = os.environ['SECRET_KEY']

    return create_app('production', config_overrides=overrides)


def check_production_requirements() -> List[str]:
    """Check that production requirements are met."""
    errors = []

    if sys.version_info < (3, 9):
        errors.append("Python 3.9 or higher required")

    required_env_vars = [
        'SECRET_KEY', 'PRINTIFY_API_TOKEN', 'PRINTIFY_SHOP_ID',
        'STRIPE_SECRET_KEY', 'STRIPE_WEBHOOK_SECRET',
    ]
    for var in required_env_vars:
        if not os.environ.get(var):
            errors.append(f"Environment variable {var} is required")

    if not Path('config/catalog.yaml').exists() and not os.environ.get('PRINTIFY_VARIANTS_MEN'):
        errors.append("No garment catalog: add config/catalog.yaml or PRINTIFY_VARIANTS_* variables")

    return errors


if __name__ == '__main__':
    errors = check_production_requirements()
    if errors:
        print("❌ Production requirements not met:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    print("✅ Production requirements check passed")

    from waitress import serve

    app = create_production_app()

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', '8000'))
    threads = int(os.environ.get('THREADS', '4'))

    print(f"🚀 Starting TeeGetha on {host}:{port}")
    print(f"   Threads: {threads}")

    try:
        serve(
            app,
            host=host,
            port=port,
            threads=threads,
            # Background removal polls for up to a minute
            channel_timeout=120,
            cleanup_interval=30,
            connection_limit=1000,
            url_scheme='https' if os.environ.get('HTTPS', '').lower() == 'true' else 'http'
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down gracefully...")
