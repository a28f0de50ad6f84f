import os
import sys
try:
    from . import create_app
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from __init__ import create_app

app = create_app()

if __name__ == '__main__':
    port = int(sys.argv[1]) if len(sys.argv) > 1 else int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    print(f" * Fleet CMS API running on http://{host}:{port}")
    app.run(host=host, port=port, debug=False)
