from flask import Blueprint, request, jsonify, current_app
import logging, os

from .. import config
from ..engine import run_scan
from ..exceptions import UrlSweepException, ValidationError, error_response
from ..models import ScanRequest
from ..utils.io import rows_to_csv

bp = Blueprint('scan', __name__)

log = logging.getLogger('urlsweep.api')

# Custom limit (can be overridden via env)
SCAN_LIMIT = os.environ.get('URLSWEEP_SCAN_RATE_LIMIT') or config.rate_limit()


@bp.route('/scan', methods=['POST'])
def _scan_rate_wrapper():
    limiter = current_app.extensions.get('limiter')
    if limiter:
        # apply limit manually (since blueprint-level decorator sometimes loads before limiter)
        @limiter.limit(SCAN_LIMIT)
        def inner():
            return scan_impl()
        return inner()
    return scan_impl()


def scan_impl():
    data = request.get_json(silent=True)
    if data is None or not isinstance(data, dict):
        return jsonify(ValidationError('body', 'expected a JSON object').to_dict()), 400
    try:
        scan_request = ScanRequest.from_dict(data)
        log.info('/scan request path=%s concurrency=%s timeout=%s follow_redirect=%s format=%s',
                 scan_request.input_file_path, scan_request.concurrency, scan_request.timeout_seconds,
                 scan_request.follow_redirect, scan_request.input_format)
        response = run_scan(scan_request)
    except UrlSweepException as e:
        body, status = error_response(e)
        return jsonify(body), status
    if request.args.get('format') == 'csv':
        return rows_to_csv(response.rows)
    return jsonify(response.to_dict())


@bp.route('/healthz', methods=['GET'])
def healthz():
    return jsonify({'status': 'ok', 'version': current_app.config.get('URLSWEEP_VERSION')})
