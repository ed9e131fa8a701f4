import os
from urlsweep import create_app

app = create_app()

if __name__ == '__main__':
    # Debug/reloader off by default so a restart never interrupts a running scan.
    debug_flag = os.environ.get('URLSWEEP_DEBUG_SERVER', '0') == '1'
    port = int(os.environ.get('URLSWEEP_PORT', '5000'))
    app.run(host='127.0.0.1', port=port, debug=debug_flag, use_reloader=debug_flag, threaded=True)
