#!/usr/bin/env python3
"""
TeeGetha - Development Runner
Run this script to start the development proxy server
"""

import os
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Set environment defaults
os.environ.setdefault('FLASK_APP', 'teegetha')
os.environ.setdefault('FLASK_ENV', 'development')

try:
    from teegetha import create_app

    def main():
        """Main entry point"""
        print("=" * 60)
        print("TeeGetha - Development Server")
        print("=" * 60)

        # Create and configure the app
        app = create_app()
        services = app.extensions['teegetha']

        # Print startup info
        print(f"Environment: {app.config.get('FLASK_ENV', 'unknown')}")
        print(f"Debug mode: {app.config.get('DEBUG', False)}")
        print(f"Test mode: {app.config.get('TEST_MODE', False)}")
        print(f"Log level: {app.config.get('LOG_LEVEL', 'INFO')}")

        # Validate configuration files
        missing_configs = [f for f in ('config/settings.yaml', 'config/catalog.yaml') if not Path(f).exists()]
        if missing_configs:
            print(f"⚠️  Missing config files: {', '.join(missing_configs)}")
            print("   Catalog lookups will fail until PRINTIFY_* variables are set.")

        # Report vendor wiring
        if services.vision is None:
            print("⚠️  GEMINI_API_KEY not set; photo analysis and stylization are disabled")
        if services.remover is None:
            print("⚠️  Background removal not configured; /api/remove-background will return 500")
        if not services.fulfillment.is_live:
            print("⚠️  PRINTIFY_API_TOKEN not set; wizard orders use offline fulfillment")

        port = int(os.environ.get('PORT', '4000'))
        print("-" * 60)
        print("Starting development server...")
        print(f"Listening on: http://localhost:{port}")
        print("Press Ctrl+C to stop")
        print("-" * 60)

        # Run the development server
        app.run(
            host='0.0.0.0',
            port=port,
            debug=app.config.get('DEBUG', True),
            use_reloader=True,
            threaded=True
        )

    if __name__ == '__main__':
        main()

except ImportError as e:
    print(f"❌ Import error: {e}")
    print("\nPlease install the required dependencies:")
    print("  pip install -e .")
    sys.exit(1)
